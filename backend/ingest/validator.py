"""
Field rules an extracted record must satisfy before it reaches the ledger.
"""

import re
from typing import Any, Mapping

from backend.errors import ValidationError
from backend.models import NOT_AVAILABLE, ExtractedRecord

PHONE_RE = re.compile(r"\+628[0-9]{8,11}")
EMAIL_RE = re.compile(
    r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?)*\.[A-Za-z]{2,}"
)


def validate_record(candidate: Mapping[str, Any] | ExtractedRecord) -> ExtractedRecord:
    """
    Check every field rule and return the trusted record.

    All violations are collected before raising, so ``ValidationError.details``
    lists each broken rule as ``"<field>: <rule>"``.
    """
    if isinstance(candidate, ExtractedRecord):
        candidate = candidate.model_dump()

    details: list[str] = []

    name = candidate.get("name")
    if not isinstance(name, str) or not name.strip():
        details.append("name: must be a non-empty string")

    email = candidate.get("email")
    if not isinstance(email, str):
        details.append("email: must be a string")
    elif email != NOT_AVAILABLE and not EMAIL_RE.fullmatch(email):
        details.append(f"email: '{email}' is not a valid address or '{NOT_AVAILABLE}'")

    phone = candidate.get("phone")
    if not isinstance(phone, str):
        details.append("phone: must be a string")
    elif phone != NOT_AVAILABLE and not PHONE_RE.fullmatch(phone):
        details.append(
            f"phone: '{phone}' must be '+628' followed by 8-11 digits or '{NOT_AVAILABLE}'"
        )

    companies = candidate.get("companies")
    if not isinstance(companies, list):
        details.append("companies: must be a list")
    elif not all(isinstance(c, str) for c in companies):
        details.append("companies: every entry must be a string")

    extra = sorted(set(candidate) - set(ExtractedRecord.model_fields))
    if extra:
        details.append(f"record: unexpected fields {extra}")

    if details:
        raise ValidationError(details)

    return ExtractedRecord(
        name=name,
        email=email,
        phone=phone,
        companies=list(companies),
    )
