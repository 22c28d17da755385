"""
Visitor identity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from folio.config import BLOCKED_LEVEL, PUBLIC_LEVEL, VIP_LEVEL


def level_label(level: int) -> str:
    """Human label used by the admin listing."""
    if level <= BLOCKED_LEVEL:
        return "Block"
    if level == PUBLIC_LEVEL:
        return "Public"
    if level >= VIP_LEVEL:
        return "VIP"
    return f"Lvl {level}"


class User(BaseModel):
    """A visitor, anonymous (uuid only) or identified by email."""

    model_config = ConfigDict(frozen=True)

    uuid: str = Field(..., description="Stable visitor identity")
    email: str | None = Field(default=None, description="Unique when present")
    name: str | None = None
    access_level: int = Field(default=PUBLIC_LEVEL, description="-1 blocked, 0 public, 1+ tiers")
    notes: str | None = None
    created_at: datetime | None = None
    last_seen: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.access_level <= BLOCKED_LEVEL

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> User:
        return cls(
            uuid=row["uuid"],
            email=row.get("email"),
            name=row.get("name"),
            access_level=row.get("access_level") or PUBLIC_LEVEL,
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            last_seen=row.get("last_seen"),
        )


class BlacklistEntry(BaseModel):
    email: str
    reason: str | None = None
    timestamp: datetime | None = None
