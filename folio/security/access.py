"""
Access control - administrative state changes that touch more than one table.

A user's visibility is decided by ``users.access_level`` alone, but bans are
also recorded on the blacklist so an email stays refused even before a user
row exists. Every ban/unban goes through here so both tables move together.
"""

from __future__ import annotations

from folio.config import BLOCKED_LEVEL, PUBLIC_LEVEL
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter
from folio.security.blacklist import Blacklist
from folio.users.repository import UserRepository
from folio.utils.redaction import redact

logger = get_logger(__name__)

ADMIN_BLOCK_REASON = "Admin Block"


class AccessControlError(Exception):
    """Base exception for access control errors."""

    pass


class UserNotFoundError(AccessControlError):
    """No user row for the given uuid."""

    pass


class AccessControl:
    """Ban, unban and re-tier users."""

    @staticmethod
    def ban(email: str, reason: str) -> None:
        """Blacklist the email and drop any matching user to the blocked level."""
        Blacklist.add(email, reason)
        UserRepository.set_access_level_by_email(email, BLOCKED_LEVEL)
        counter("access.ban")

    @staticmethod
    def unban(email: str) -> None:
        """Lift the ban and return the user (if any) to the public level."""
        Blacklist.remove(email)
        UserRepository.set_access_level_by_email(email, PUBLIC_LEVEL)
        counter("access.unban")

    @staticmethod
    def set_level(user_uuid: str, level: int) -> None:
        """
        Set a user's access level and keep the blacklist in step.

        Moving to the blocked level blacklists the user's email; any other
        level removes it from the blacklist.

        Raises:
            UserNotFoundError: If the uuid is unknown
        """
        user = UserRepository.get_by_uuid(user_uuid)
        if user is None:
            raise UserNotFoundError(f"User not found: {user_uuid}")

        UserRepository.set_access_level(user_uuid, level)

        if user.email:
            if level <= BLOCKED_LEVEL:
                Blacklist.add(user.email, ADMIN_BLOCK_REASON)
            else:
                Blacklist.remove(user.email)

        logger.info(
            "Access level for %s (%s) set to %s", user_uuid, redact(user.email), level
        )

    @staticmethod
    def delete_user(user_uuid: str) -> None:
        """
        Raises:
            UserNotFoundError: If the uuid is unknown
        """
        if not UserRepository.delete(user_uuid):
            raise UserNotFoundError(f"User not found: {user_uuid}")
        logger.info("Deleted user %s", user_uuid)
