"""
Input validation utilities.

Visitor-supplied text is checked against common SQL injection and XSS
signatures before anything is persisted or sent to the AI responder.
"""

from __future__ import annotations

import re

# Signatures are deliberately coarse; a hit means "treat as an attack".
MALICIOUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"\sUNION\s", re.IGNORECASE),
    re.compile(r"\sSELECT\s", re.IGNORECASE),
    re.compile(r"\sDROP\s", re.IGNORECASE),
    re.compile(r"\sOR\s+1\s*=\s*1", re.IGNORECASE),
    re.compile(r"--"),
]

EMAIL_PATTERN = re.compile(r"^[^@\s<>\"']+@[^@\s<>\"']+\.[^@\s<>\"']+$")
MAX_EMAIL_LENGTH = 254


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


def is_malicious(value: str | None) -> bool:
    """
    True if the text matches any injection/XSS signature.

    Non-strings and empty strings are never malicious.
    """
    if not value or not isinstance(value, str):
        return False
    return any(pattern.search(value) for pattern in MALICIOUS_PATTERNS)


def any_malicious(*values: str | None) -> bool:
    return any(is_malicious(value) for value in values)


def validate_email(email: str | None) -> str | None:
    """
    Normalize and validate an email address.

    Returns:
        The trimmed, lowercased address, or None if input was empty

    Raises:
        ValidationError: If the address is malformed
    """
    if email is None:
        return None

    email = email.strip().lower()
    if not email:
        return None

    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email exceeds maximum length of {MAX_EMAIL_LENGTH}")

    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address format")

    return email


def looks_like_email(value: str | None) -> bool:
    """True if the value is shaped like an email address."""
    return bool(value) and EMAIL_PATTERN.match(value.strip().lower()) is not None
