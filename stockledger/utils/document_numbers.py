from __future__ import annotations

import secrets
from datetime import datetime
from typing import Dict, TypedDict

from .timezone_utils import TimezoneUtils

__all__ = [
    "DOCUMENT_PREFIXES",
    "generate_document_number",
    "parse_document_number",
    "validate_document_number",
]

BASE36_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

DOCUMENT_PREFIXES: Dict[str, str] = {
    "adjustment": "ADJ",
    "transfer": "TRF",
    "landed_cost": "LC",
    "receipt": "RCV",
    "physical_count": "PC",
}


class ParsedDocumentNumber(TypedDict):
    prefix: str | None
    document_type: str | None
    date: str | None
    suffix: str | None


def _int_to_base36(num: int) -> str:
    if num == 0:
        return "0"

    digits = []
    while num:
        num, remainder = divmod(num, 36)
        digits.append(BASE36_CHARS[remainder])

    return "".join(reversed(digits))


def _generate_suffix(entity_id: int | None = None) -> str:
    entity_component = _int_to_base36(abs(entity_id or 0)).rjust(2, "0")[-2:]
    random_component = _int_to_base36(secrets.randbelow(36**4)).rjust(4, "0")
    return f"{entity_component}{random_component}"


def generate_document_number(
    document_type: str,
    *,
    when: datetime | None = None,
    entity_id: int | None = None,
) -> str:
    """Build a human readable number such as ``ADJ-20260114-0A9F3K``."""
    normalized = (document_type or "").strip().lower()
    prefix = DOCUMENT_PREFIXES.get(normalized)
    if prefix is None:
        raise ValueError(f"Unknown document type {document_type!r}")
    stamp = (when or TimezoneUtils.utc_now()).strftime("%Y%m%d")
    return f"{prefix}-{stamp}-{_generate_suffix(entity_id)}"


def parse_document_number(number: str) -> ParsedDocumentNumber:
    parts = (number or "").split("-")
    if len(parts) != 3:
        return {"prefix": None, "document_type": None, "date": None, "suffix": None}

    prefix, stamp, suffix = parts
    document_type = next((name for name, value in DOCUMENT_PREFIXES.items() if value == prefix), None)
    return {"prefix": prefix, "document_type": document_type, "date": stamp, "suffix": suffix}


def validate_document_number(number: str) -> bool:
    parsed = parse_document_number(number)
    if parsed["document_type"] is None:
        return False
    return len(parsed["date"] or "") == 8 and (parsed["date"] or "").isdigit()
