"""Shared validation and normalization utilities"""

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: dict[str, Any] = {
    "preferredStylists": [],
    "preferredServices": [],
    "preferredProducts": [],
    "allergies": [],
    "notes": "",
}


def normalize_phone(phone: Optional[str]) -> str:
    """
    Reduce a phone number to its digits.

    This is the only key used to compare phone numbers, so "+974 3071 2345",
    "97430712345" and "9743071-2345" are the same number.

    Args:
        phone: Phone number in any format

    Returns:
        Digits only; empty string for empty input
    """
    if not phone:
        return ""
    return re.sub(r"\D", "", phone)


def normalize_name(name: Optional[str]) -> str:
    """Trim and lowercase a client name for comparison"""
    if not name:
        return ""
    return name.strip().lower()


def generate_initials(name: str) -> str:
    """
    Build the two-letter avatar shown next to a client.

    "Jane Doe" -> "JD", "Madonna" -> "MA".
    """
    name_parts = name.strip().split(" ")
    if len(name_parts) > 1 and name_parts[0] and name_parts[1]:
        return f"{name_parts[0][0]}{name_parts[1][0]}".upper()
    return name_parts[0][:2].upper()


def parse_preferences(raw: Optional[str], client_label: str = "") -> dict[str, Any]:
    """
    Deserialize a stored preference document.

    Malformed documents are logged and replaced with DEFAULT_PREFERENCES
    instead of failing the request.
    """
    if not raw:
        return dict(DEFAULT_PREFERENCES)

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Invalid JSON in preferences for client {client_label}: {raw[:200]}")
        return dict(DEFAULT_PREFERENCES)

    if not isinstance(parsed, dict):
        logger.warning(f"⚠️ Preferences for client {client_label} are not an object, using defaults")
        return dict(DEFAULT_PREFERENCES)

    return parsed


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email
