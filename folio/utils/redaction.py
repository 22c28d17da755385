"""
Redaction helpers for log lines and telemetry.

Emails and free text from visitors are hashed so log entries can be
correlated without storing the raw value in log output.
"""

from __future__ import annotations

from hashlib import sha256


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"
