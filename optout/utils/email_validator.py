"""Email validation utilities."""

import re
from typing import Tuple

# RFC 5322 simplified email regex
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}"
    r"[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def validate_email(email: str | None) -> Tuple[bool, str | None]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
        If valid, error_message is None
    """
    if not email or not email.strip():
        return False, "A valid email address is required"

    email = email.strip()

    if len(email) > 200:
        return False, "Email address is too long (max 200 characters)"

    if not EMAIL_REGEX.match(email):
        return False, "Invalid email address format"

    local, _, domain = email.partition("@")

    if len(local) > 64:
        return False, "Email local part is too long (max 64 characters)"

    if ".." in email:
        return False, "Email address cannot contain consecutive dots"

    if "." not in domain:
        return False, "Email domain must contain at least one dot"

    return True, None


def normalize_email(email: str) -> str:
    """Trim and lowercase the domain part, keeping the local part as typed."""
    local, _, domain = email.strip().partition("@")
    return f"{local}@{domain.lower()}"
