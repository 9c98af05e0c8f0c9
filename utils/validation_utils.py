"""
utils/validation_utils.py

Purpose: Input validation

- Phone number normalisation for pairing requests
- Masking numbers for logs
"""

import re
from typing import Optional


def normalize_phone_number(phone: Optional[str]) -> str:
    """
    Strips everything that is not a digit from a phone number.

    The client library expects the bare international number
    (country code included, no '+', spaces or separators).

    Args:
        phone: Raw phone number as received from the caller

    Returns:
        Digits only; empty string if nothing is left
    """
    if not phone:
        return ""

    return re.sub(r"[^0-9]", "", str(phone))


def validate_phone_number(phone: Optional[str]) -> bool:
    """
    Checks that a phone number still has digits after normalisation.

    Args:
        phone: Phone number string

    Returns:
        True if the number can be used for pairing
    """
    return bool(normalize_phone_number(phone))


def mask_phone_number(phone: str) -> str:
    """
    Masks all but the last four digits for logs.

    Example: 919876543210 -> ********3210
    """
    if not phone:
        return ""

    if len(phone) <= 4:
        return phone

    return "*" * (len(phone) - 4) + phone[-4:]
