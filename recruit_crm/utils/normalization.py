"""Data normalization utilities for consistent data quality."""

import re
from typing import Optional

from recruit_crm.core.constants import COUNTRY_DIALING_CODES, FALLBACK_COUNTRY_CODE


def dialing_code_for(country_code: Optional[str]) -> str:
    """Dialing prefix for an ISO-ish country code; unknown codes use the fallback country."""
    key = (country_code or "").strip().upper()
    return COUNTRY_DIALING_CODES.get(key, COUNTRY_DIALING_CODES[FALLBACK_COUNTRY_CODE])


def normalize_phone(phone: Optional[str], default_country_code: Optional[str] = None) -> Optional[str]:
    """
    Normalize phone to an E.164-like form (+32470123456).

    - Strip everything except digits and +; a + first in what remains marks an international number
    - +prefixed: returned unchanged
    - 00prefixed: 00 replaced by +
    - otherwise: one leading trunk 0 dropped, dialing code of
      default_country_code prepended

    Approximate by design: number length and numbering plans are not
    validated, so "+1234" passes through as-is.

    Args:
        phone: Raw phone input
        default_country_code: Country used for numbers without international prefix

    Returns:
        Normalized phone or None if no digits remain
    """
    if not phone:
        return None

    cleaned = re.sub(r"[^\d+]", "", phone)
    has_plus = cleaned.startswith("+")
    digits = re.sub(r"\D", "", cleaned)
    if not digits:
        return None

    if has_plus:
        return f"+{digits}"

    if digits.startswith("00"):
        return f"+{digits[2:]}"

    if digits.startswith("0"):
        digits = digits[1:]

    return f"{dialing_code_for(default_country_code or FALLBACK_COUNTRY_CODE)}{digits}"


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Args:
        email: Raw email input

    Returns:
        Lowercased email or None if empty
    """
    if not email:
        return None
    normalized = email.strip().lower()
    return normalized or None


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Strip whitespace and collapse internal runs."""
    if not name:
        return None
    return " ".join(name.split()) or None


def sanitize_filename(filename: Optional[str]) -> str:
    """Filesystem/object-key safe version of an uploaded filename."""
    base = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", base).strip("._")
    return safe[:200] or "file"
