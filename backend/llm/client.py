"""
Async wrapper around an OpenAI-compatible endpoint for vision and text calls.
"""

import asyncio
import base64
import logging

import openai

from backend import config

logger = logging.getLogger(__name__)


def image_part(data: bytes, mime_type: str = "image/jpeg") -> dict:
    """Build a chat content part carrying *data* as a base64 data URL."""
    encoded = base64.b64encode(data).decode("ascii")
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
    }


async def call_llm(
    messages: list[dict],
    model: str | None = None,
    temperature: float = 0,
    response_format: dict | None = None,
    max_retries: int | None = None,
) -> str | None:
    """
    Send *messages* and return the assistant's text.

    Returns ``None`` when the reply carries no content. Errors from the
    provider propagate once ``max_retries`` attempts are used up; ``0`` and
    ``1`` both mean a single attempt. The SDK's own retries are disabled.
    """
    model = model or config.VISION_MODEL
    if max_retries is None:
        max_retries = config.LLM_MAX_RETRIES
    max_retries = max(1, max_retries)

    kwargs: dict = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }
    if response_format is not None:
        kwargs["response_format"] = response_format

    for attempt in range(max_retries):
        try:
            async with openai.AsyncOpenAI(
                api_key=config.OPENAI_API_KEY,
                base_url=config.OPENAI_BASE_URL,
                timeout=config.LLM_TIMEOUT,
                max_retries=0,
            ) as client:
                response = await client.chat.completions.create(**kwargs)
            if not response.choices:
                return None
            content = response.choices[0].message.content
            return content.strip() if content else None
        except Exception as e:
            logger.warning("LLM call attempt %d/%d failed: %s", attempt + 1, max_retries, e)
            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
            else:
                raise
    return None  # unreachable, but keeps type checkers happy
