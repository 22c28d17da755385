"""Pydantic request/response models for the Folio API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from folio.config import (
    ADMIN_LEVEL_CHOICES,
    REQUEST_COMPANY_MAX,
    REQUEST_MESSAGE_MAX,
    REQUEST_NAME_MAX,
)
from folio.users.models import User, level_label
from folio.utils.validators import validate_email

RequestType = Literal["resume", "contact", "access_request"]


class VisitorRequest(BaseModel):
    """Body of POST /api/request"""

    email: str | None = Field(default=None, max_length=254)
    name: str = Field(..., min_length=1, max_length=REQUEST_NAME_MAX)
    message: str = Field(default="", max_length=REQUEST_MESSAGE_MAX)
    company: str | None = Field(default=None, max_length=REQUEST_COMPANY_MAX)
    type: RequestType

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return validate_email(value)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class ContentMeta(BaseModel):
    registered: bool
    level: int


class PortfolioResponse(BaseModel):
    content: Any = None
    meta: ContentMeta


class RequestAccepted(PortfolioResponse):
    uuid: str


class Acknowledgement(BaseModel):
    status: str = "Received"


class LevelUpdate(BaseModel):
    level: int

    @field_validator("level")
    @classmethod
    def known_level(cls, value: int) -> int:
        if value not in ADMIN_LEVEL_CHOICES:
            raise ValueError(f"Level must be one of {ADMIN_LEVEL_CHOICES}")
        return value


class AdminUser(BaseModel):
    uuid: str
    email: str | None = None
    name: str | None = None
    access_level: int
    label: str
    notes: str | None = None
    created_at: datetime | None = None
    last_seen: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> AdminUser:
        return cls(
            uuid=user.uuid,
            email=user.email,
            name=user.name,
            access_level=user.access_level,
            label=level_label(user.access_level),
            notes=user.notes,
            created_at=user.created_at,
            last_seen=user.last_seen,
        )


class AdminUserList(BaseModel):
    users: list[AdminUser]
    count: int


class StatusResponse(BaseModel):
    status: str
