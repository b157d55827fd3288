"""
Structured field extraction — asks the model for a strict JSON record.

Two entry points share one system prompt and one response schema:
``extract_from_text`` works on a consolidated transcript, and
``extract_from_image`` is the single-page fast path that skips transcription.
"""

import json
import logging
import re

from backend import config
from backend.errors import ExtractionError
from backend.ingest.consolidator import PAGE_SEPARATOR
from backend.ingest.validator import PHONE_RE
from backend.llm.client import call_llm, image_part
from backend.models import NOT_AVAILABLE, ConsolidatedDocument, PageImage

logger = logging.getLogger(__name__)

RECORD_FIELDS = ("name", "email", "phone", "companies")

EXTRACT_SYSTEM_PROMPT = f"""You extract contact details from a CV (résumé).

Return a JSON object with exactly these fields:
- name: the candidate's full name.
- email: the candidate's email address.
- phone: the candidate's mobile phone number.
- companies: the companies the candidate has worked for, most recent first.
  Use an empty list when there are none.

Phone rules:
- Indonesian mobile numbers that start with a leading "0" must be rewritten
  with the "+62" prefix and the leading zero dropped,
  e.g. "081228051404" becomes "+6281228051404".
- Remove spaces, dashes and brackets from the number.
- If the number is not an Indonesian mobile number, return "{NOT_AVAILABLE}".

If a field cannot be determined, return "{NOT_AVAILABLE}" for it. Never guess
and never omit a field."""

RECORD_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "cv_record",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "email": {"type": "string"},
                "phone": {"type": "string"},
                "companies": {"type": "array", "items": {"type": "string"}},
            },
            "required": list(RECORD_FIELDS),
            "additionalProperties": False,
        },
    },
}

_PHONE_NOISE_RE = re.compile(r"[\s\-().]")
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def normalize_phone(raw: str) -> str:
    """
    Rewrite an Indonesian mobile number to ``+628…`` form.

    ``"0812 2805 1404"`` → ``"+6281228051404"``. Anything that is not an
    Indonesian mobile number becomes ``"N/A"``.
    """
    value = _PHONE_NOISE_RE.sub("", raw.strip())
    if not value or value.upper() == NOT_AVAILABLE:
        return NOT_AVAILABLE

    if value.startswith("+62"):
        rest = value[3:]
    elif value.startswith("62"):
        rest = value[2:]
    elif value.startswith("0"):
        rest = value[1:]
    else:
        return NOT_AVAILABLE

    candidate = "+62" + rest
    return candidate if PHONE_RE.fullmatch(candidate) else NOT_AVAILABLE


async def extract_from_text(document: ConsolidatedDocument) -> dict:
    """Extract a record candidate from a consolidated transcript."""
    if not document.text.replace(PAGE_SEPARATOR, "").strip():
        raise ExtractionError("No transcribed text to extract from")

    messages = [
        {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
        {"role": "user", "content": document.text},
    ]
    return await _request_record(messages)


async def extract_from_image(page: PageImage) -> dict:
    """Extract a record candidate directly from one page image."""
    messages = [
        {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "Extract the fields from this CV page."},
                image_part(page.data, page.mime_type),
            ],
        },
    ]
    return await _request_record(messages)


async def _request_record(messages: list[dict]) -> dict:
    try:
        reply = await call_llm(
            messages,
            model=config.EXTRACTION_MODEL,
            response_format=RECORD_RESPONSE_FORMAT,
        )
    except Exception as e:
        raise ExtractionError(f"Extraction call failed: {e}") from e

    if not reply:
        raise ExtractionError("Extraction call returned no content")

    return parse_reply(reply)


def parse_reply(reply: str) -> dict:
    """
    Parse the model's JSON reply into a record candidate.

    The reply must be an object with exactly the four record fields. The
    phone number is normalised; everything else is left to validation.
    """
    text = _CODE_FENCE_RE.sub("", reply.strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError(f"Reply is a {type(data).__name__}, expected an object")

    missing = [f for f in RECORD_FIELDS if f not in data]
    extra = sorted(set(data) - set(RECORD_FIELDS))
    if missing or extra:
        raise ExtractionError(
            f"Reply does not match the record shape (missing={missing}, extra={extra})"
        )

    if isinstance(data["phone"], str):
        data["phone"] = normalize_phone(data["phone"])
    return data
