"""
Admin API endpoints.

User management is guarded by a short-lived signed admin token (query
``token`` or ``X-Admin-Token`` header). The content upload is guarded by the
static ``X-Admin-Password`` secret instead.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from folio.api.dependencies import Services, get_services, require_admin, require_admin_password
from folio.api.models import AdminUser, AdminUserList, LevelUpdate, StatusResponse
from folio.config import ADMIN_USER_LIST_LIMIT
from folio.content.store import ContentStoreError
from folio.observability.logging import get_logger
from folio.security.access import AccessControl, UserNotFoundError
from folio.users.repository import UserRepository

router = APIRouter(prefix="/admin", tags=["admin"])
logger = get_logger(__name__)


@router.get("/users", response_model=AdminUserList)
async def list_users(_claims: dict[str, Any] = Depends(require_admin)) -> AdminUserList:
    """Most recently seen users first, with level labels."""
    users = [AdminUser.from_user(u) for u in UserRepository.list_recent(ADMIN_USER_LIST_LIMIT)]
    return AdminUserList(users=users, count=len(users))


@router.post("/users/{user_uuid}/level", response_model=AdminUser)
async def update_level(
    user_uuid: str,
    body: LevelUpdate,
    _claims: dict[str, Any] = Depends(require_admin),
) -> AdminUser:
    """Set a user's level; blocking also blacklists their email, anything else lifts it."""
    try:
        AccessControl.set_level(user_uuid, body.level)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from e

    user = UserRepository.get_by_uuid(user_uuid)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return AdminUser.from_user(user)


@router.delete("/users/{user_uuid}", response_model=StatusResponse)
async def delete_user(
    user_uuid: str,
    _claims: dict[str, Any] = Depends(require_admin),
) -> StatusResponse:
    try:
        AccessControl.delete_user(user_uuid)
    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from e
    return StatusResponse(status="deleted")


@router.post("/data", response_model=StatusResponse)
async def replace_content(
    document: dict[str, Any] | list[Any] = Body(...),
    _authorized: bool = Depends(require_admin_password),
    services: Services = Depends(get_services),
) -> StatusResponse:
    """Replace the whole content document. The previous file is backed up first."""
    try:
        services.store.save(document)
    except ContentStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save content",
        ) from e

    logger.info("Content document replaced via admin upload")
    return StatusResponse(status="updated")
