"""
Page transcription — one vision call per page image, run concurrently.
"""

import asyncio
import logging
from typing import Sequence

from backend import config
from backend.errors import TranscriptionDegradation
from backend.llm.client import call_llm, image_part
from backend.models import PageImage, PageTranscript

logger = logging.getLogger(__name__)

TRANSCRIBE_SYSTEM_PROMPT = (
    "You are an OCR engine. Transcribe all visible text in the image. "
    "Preserve the structure (headings, lists, tables, reading order) and "
    "return the result as Markdown only, without commentary."
)


async def transcribe_page(page: PageImage, *, strict: bool = False) -> PageTranscript:
    """
    Transcribe one page image into Markdown.

    A failed call or an empty reply yields an empty transcript, unless
    *strict* is set, in which case ``TranscriptionDegradation`` is raised.
    """
    messages = [
        {"role": "system", "content": TRANSCRIBE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": f"Transcribe page {page.page_index + 1}."},
                image_part(page.data, page.mime_type),
            ],
        },
    ]

    try:
        text = await call_llm(messages, model=config.VISION_MODEL)
    except Exception as e:
        if strict:
            raise TranscriptionDegradation(
                f"page {page.page_index} transcription failed: {e}", page.page_index
            ) from e
        logger.warning("Page %d transcription failed, using empty text: %s", page.page_index, e)
        return PageTranscript(page_index=page.page_index, text="")

    if not text:
        if strict:
            raise TranscriptionDegradation(
                f"page {page.page_index} transcription returned no content", page.page_index
            )
        logger.warning("Page %d transcription returned no content", page.page_index)
        return PageTranscript(page_index=page.page_index, text="")

    return PageTranscript(page_index=page.page_index, text=text)


async def transcribe_pages(
    pages: Sequence[PageImage],
    *,
    strict: bool = False,
) -> list[PageTranscript]:
    """Transcribe all *pages* concurrently; the result is ordered by page index."""
    transcripts = await asyncio.gather(
        *(transcribe_page(page, strict=strict) for page in pages)
    )
    return sorted(transcripts, key=lambda t: t.page_index)
