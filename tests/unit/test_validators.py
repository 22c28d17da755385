"""Unit tests for input validation

Tests cover:
- Injection and XSS signatures are detected
- Ordinary messages pass
- Email normalization and rejection
"""

from __future__ import annotations

import pytest

from folio.utils.validators import (
    ValidationError,
    any_malicious,
    is_malicious,
    looks_like_email,
    validate_email,
)


@pytest.mark.parametrize(
    "text",
    [
        "<script>alert(1)</script>",
        "<SCRIPT src=x>",
        "javascript:alert(1)",
        "x' UNION SELECT password FROM users",
        "Robert'); DROP TABLE users;",
        "admin' OR 1=1",
        "name -- comment",
    ],
)
def test_malicious_signatures(text):
    """Known attack shapes are flagged"""
    assert is_malicious(text)


@pytest.mark.parametrize(
    "text",
    [
        "Hi, could you share your resume for a backend role?",
        "We met at PyCon - loved the talk!",
        "Company: Acme & Sons",
        "",
        None,
    ],
)
def test_benign_text(text):
    """Everyday messages pass"""
    assert not is_malicious(text)


def test_any_malicious():
    """One bad field is enough"""
    assert any_malicious("Ann", None, "<script>")
    assert not any_malicious("Ann", None, "Acme")


def test_validate_email_normalizes():
    """Trimmed and lowercased"""
    assert validate_email("  Ann@Example.COM ") == "ann@example.com"


def test_validate_email_empty_is_none():
    """Empty input means no email"""
    assert validate_email(None) is None
    assert validate_email("   ") is None


@pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@example.com", "<a@example.com>"])
def test_validate_email_rejects(email):
    """Malformed addresses raise"""
    with pytest.raises(ValidationError):
        validate_email(email)


def test_validate_email_length():
    """Over-long addresses raise"""
    with pytest.raises(ValidationError):
        validate_email("a" * 250 + "@example.com")


def test_looks_like_email():
    assert looks_like_email("Vip@Example.com")
    assert not looks_like_email("3f2b6a1e-uuid")
    assert not looks_like_email(None)
    assert not looks_like_email("")
