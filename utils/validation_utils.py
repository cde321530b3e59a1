"""
utils/validation_utils.py

Purpose: Input validation

- ZIP code and username formats
- Password rules
- {value, custom} profile choice fields
- Safe search patterns
"""

import re
from typing import Any, Dict, Optional, Tuple

from utils.constants import MIN_PASSWORD_LENGTH, PROFILE_CHOICES

ZIP_PATTERN = re.compile(r"^\d{5}$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")


def validate_zip(zip_code: str) -> bool:
    """
    Validates a US 5-digit ZIP code.

    Args:
        zip_code: ZIP string

    Returns:
        True if exactly five digits
    """
    if not zip_code:
        return False
    return bool(ZIP_PATTERN.match(zip_code.strip()))


def validate_username(username: str) -> bool:
    if not username:
        return False
    return bool(USERNAME_PATTERN.match(username))


def validate_password(password: str) -> bool:
    """
    Passwords only need a minimum length.
    """
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def search_pattern(term: str) -> Dict[str, str]:
    """
    Builds a case-insensitive Mongo regex that matches ``term`` literally.

    Args:
        term: Raw search text

    Returns:
        A ``$regex`` query fragment
    """
    return {"$regex": re.escape(term.strip()), "$options": "i"}


def validate_choice_field(field: str, raw: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
    """
    Validates a {value, custom} profile field.

    A plain string is accepted as the value. The value must be one of the
    allowed choices for the field (or null), and ``custom`` is kept only
    when the value is "Other" or a CUSTOM_* code.

    Args:
        field: Profile field name
        raw: Submitted value

    Returns:
        (is_valid, normalized dict)
    """
    if raw is None:
        return True, {"value": None, "custom": None}

    if isinstance(raw, str):
        raw = {"value": raw}
    if not isinstance(raw, dict):
        return False, None

    value = raw.get("value")
    custom = raw.get("custom")

    allowed = PROFILE_CHOICES.get(field)
    if allowed is not None and value is not None and value not in allowed:
        return False, None

    if custom is not None and not isinstance(custom, str):
        return False, None

    if allowed is not None:
        keeps_custom = value == "Other" or (isinstance(value, str) and value.startswith("CUSTOM_"))
        if not keeps_custom:
            custom = None

    return True, {"value": value, "custom": custom.strip() if custom else custom}
