"""
Service wiring for route handlers.

``create_app`` builds one ``Services`` container and stores it on
``app.state``; handlers reach it through ``Depends(get_services)``.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Header, HTTPException, Query, Request, status

from folio.content.store import ContentStore
from folio.infrastructure.settings import Settings
from folio.notifications.mailer import Mailer
from folio.observability.logging import get_logger
from folio.requests.processing import RequestProcessor
from folio.security.moderation import ModerationService
from folio.security.tokens import ExpiredTokenError, InvalidTokenError, TokenService
from folio.tasks.queue import TaskQueue

logger = get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    tokens: TokenService
    store: ContentStore
    queue: TaskQueue
    mailer: Mailer
    processor: RequestProcessor
    moderation: ModerationService


def get_services(request: Request) -> Services:
    return request.app.state.services


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def require_admin(
    token: str | None = Query(default=None),
    x_admin_token: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Dependency for endpoints that require a signed admin token.

    An expired token queues a fresh admin link to the owner and answers 401
    with ``renewed`` set, so the owner can recover from the email.
    """
    raw = token or x_admin_token
    try:
        return services.tokens.verify_admin_token(raw)
    except ExpiredTokenError as e:
        renewed = services.moderation.renew_admin_link()
        logger.info("Expired admin token presented, renewal queued=%s", renewed)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Token expired", "renewed": renewed},
        ) from e
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        ) from e


def require_admin_password(
    x_admin_password: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> bool:
    """
    Dependency for the content upload: static shared secret in X-Admin-Password.

    With no ADMIN_PASSWORD configured every request is refused.
    """
    expected = services.settings.admin_password
    if not expected or not x_admin_password:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    # Timing-safe comparison
    if not secrets.compare_digest(x_admin_password.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return True
