"""
Signed link tokens (HS256 JWT).

Four kinds of token, each with its own secret or scope:
- admin: ``{"role": "admin"}`` signed with the admin secret, short-lived
- unsubscribe: ``{"email"}`` signed with the user secret, no expiry
- return: ``{"email", "scope": "whitelist"}`` signed with the user secret,
  effectively permanent
- trap (honeypot): ``{"email", "action": "blacklist"}`` signed with the
  trap secret, one hour

Verification never leaks why a token failed beyond expired vs invalid.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from folio.config import (
    ADMIN_TOKEN_TTL,
    RETURN_TOKEN_TTL,
    TOKEN_ALGORITHM,
    TRAP_TOKEN_TTL,
)
from folio.infrastructure.settings import Settings

WHITELIST_SCOPE = "whitelist"
TRAP_ACTION = "blacklist"
ADMIN_ROLE = "admin"


class InvalidTokenError(ValueError):
    """Token is malformed, tampered with, or has the wrong purpose."""


class ExpiredTokenError(InvalidTokenError):
    """Token signature is valid but it has expired."""


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """Issue and verify every signed link the service hands out."""

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utc_now) -> None:
        self.settings = settings
        self.clock = clock

    # --- encode / decode ---

    def _encode(self, claims: dict[str, Any], secret: str, ttl: timedelta | None) -> str:
        payload = dict(claims)
        now = self.clock()
        payload["iat"] = int(now.timestamp())
        if ttl is not None:
            payload["exp"] = int((now + ttl).timestamp())
        return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)

    def _decode(self, token: str | None, secret: str) -> dict[str, Any]:
        if not token:
            raise InvalidTokenError("Missing token")
        try:
            return jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

    # --- admin ---

    def issue_admin_token(self, ttl: timedelta = ADMIN_TOKEN_TTL) -> str:
        return self._encode({"role": ADMIN_ROLE}, self.settings.admin_secret, ttl)

    def verify_admin_token(self, token: str | None) -> dict[str, Any]:
        """
        Raises:
            ExpiredTokenError: Signature valid but past expiry (caller may renew)
            InvalidTokenError: Anything else
        """
        claims = self._decode(token, self.settings.admin_secret)
        if claims.get("role") != ADMIN_ROLE:
            raise InvalidTokenError("Invalid token")
        return claims

    # --- visitor links ---

    def issue_unsubscribe_token(self, email: str) -> str:
        return self._encode({"email": email}, self.settings.jwt_secret, None)

    def verify_unsubscribe_token(self, token: str | None) -> str:
        claims = self._decode(token, self.settings.jwt_secret)
        return self._email_claim(claims)

    def issue_return_token(self, email: str, ttl: timedelta = RETURN_TOKEN_TTL) -> str:
        return self._encode({"email": email, "scope": WHITELIST_SCOPE}, self.settings.jwt_secret, ttl)

    def verify_return_token(self, token: str | None) -> str:
        claims = self._decode(token, self.settings.jwt_secret)
        if claims.get("scope") != WHITELIST_SCOPE:
            raise InvalidTokenError("Invalid token")
        return self._email_claim(claims)

    # --- honeypot ---

    def issue_trap_token(self, email: str, ttl: timedelta = TRAP_TOKEN_TTL) -> str:
        return self._encode({"email": email, "action": TRAP_ACTION}, self.settings.trap_secret, ttl)

    def verify_trap_token(self, token: str | None) -> str:
        claims = self._decode(token, self.settings.trap_secret)
        if claims.get("action") != TRAP_ACTION:
            raise InvalidTokenError("Invalid token")
        return self._email_claim(claims)

    @staticmethod
    def _email_claim(claims: dict[str, Any]) -> str:
        email = claims.get("email")
        if not isinstance(email, str) or not email:
            raise InvalidTokenError("Invalid token")
        return email

    # --- links ---

    def admin_link(self, token: str | None = None) -> str:
        return f"{self.settings.base_url}/admin/users?token={token or self.issue_admin_token()}"

    def unsubscribe_link(self, email: str) -> str:
        return f"{self.settings.base_url}/api/unsubscribe?token={self.issue_unsubscribe_token(email)}"

    def return_link(self, email: str) -> str:
        return f"{self.settings.base_url}/api/security/whitelist?token={self.issue_return_token(email)}"

    def trap_link(self, email: str) -> str:
        return f"{self.settings.base_url}/api/security/verify?token={self.issue_trap_token(email)}"
