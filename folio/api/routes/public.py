"""
Public API endpoints.

Provides endpoints for:
- Reading the portfolio filtered to the visitor's level
- Submitting contact / resume / access requests
- Unsubscribe, whitelist (return) and honeypot links
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from folio.api.dependencies import Services, client_ip, get_services
from folio.api.models import (
    Acknowledgement,
    ContentMeta,
    PortfolioResponse,
    RequestAccepted,
    VisitorRequest,
)
from folio.content.filter import ContentTooComplexError, filter_content
from folio.notifications.templates import unsubscribe_page, whitelist_page
from folio.observability.logging import get_logger
from folio.requests.gate import (
    AdmissionError,
    MaliciousInputError,
    Submission,
    admit,
    identify_viewer,
)
from folio.security.audit import AccessLog
from folio.security.tokens import InvalidTokenError
from folio.utils.validators import is_malicious

router = APIRouter(prefix="/api", tags=["public"])
logger = get_logger(__name__)

PORTFOLIO_VIEW = "Portfolio View"


def _visible_content(services: Services, level: int) -> Any:
    try:
        return filter_content(services.store.load(), level)
    except ContentTooComplexError as e:
        logger.error("Content document rejected by filter guard: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content temporarily unavailable",
        ) from e


@router.get("/portfolio", response_model=PortfolioResponse)
async def get_portfolio(
    request: Request,
    uuid: str | None = Query(default=None, max_length=254),
    x_access_token: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> PortfolioResponse:
    """
    Portfolio content at the caller's level.

    The identity token comes from the X-Access-Token header or the uuid
    query parameter; without one the caller is public.
    """
    token = x_access_token or uuid
    viewer = identify_viewer(token)

    if token and not is_malicious(token):
        AccessLog.append(
            uuid=token,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            payload=PORTFOLIO_VIEW,
        )

    return PortfolioResponse(
        content=_visible_content(services, viewer.level),
        meta=ContentMeta(registered=viewer.registered, level=viewer.level),
    )


@router.post("/request", response_model=None)
async def submit_request(
    body: VisitorRequest,
    request: Request,
    x_access_token: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> RequestAccepted | Acknowledgement | JSONResponse:
    """
    Admit a visitor request and queue its processing.

    Answers immediately with the content visible at the visitor's level; the
    AI reply and emails happen in the background.
    """
    submission = Submission(
        name=body.name,
        message=body.message,
        request_type=body.type,
        email=body.email,
        company=body.company,
    )

    try:
        admission = admit(
            submission,
            token=x_access_token,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except MaliciousInputError:
        return Acknowledgement()
    except AdmissionError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.public_message})

    services.queue.enqueue(
        services.processor.operation_for(submission, admission.uuid),
        label=f"request:{submission.request_type}",
    )

    return RequestAccepted(
        content=_visible_content(services, admission.level),
        uuid=admission.uuid,
        meta=ContentMeta(registered=True, level=admission.level),
    )


@router.get("/unsubscribe", response_class=HTMLResponse)
async def unsubscribe(
    token: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    """Stop all emails to the address in the token and offer a way back."""
    try:
        result = services.moderation.unsubscribe(token)
    except InvalidTokenError:
        return HTMLResponse("This link seems invalid or broken.", status_code=400)

    return HTMLResponse(unsubscribe_page(result.email, result.return_link))


@router.get("/security/whitelist", response_class=HTMLResponse)
async def whitelist(
    request: Request,
    token: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    """Restore an unsubscribed address from its return link."""
    try:
        email = services.moderation.restore(
            token, ip=client_ip(request), user_agent=request.headers.get("user-agent")
        )
    except InvalidTokenError:
        return HTMLResponse("Link expired.", status_code=400)

    return HTMLResponse(whitelist_page(email))


@router.get("/security/verify", response_class=HTMLResponse)
async def verify_trap(
    token: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    """Honeypot: only automated link followers ever land here."""
    try:
        services.moderation.trip_honeypot(token)
    except InvalidTokenError:
        return HTMLResponse("Invalid", status_code=400)

    return HTMLResponse("<h1>Banned</h1>")
