"""
User directory - CRUD operations for the users table.

Every write is a single statement; uniqueness of email is enforced by the
schema, not by application locks.
"""

from __future__ import annotations

import sqlite3
import uuid as uuid_lib

from folio.config import ADMIN_USER_LIST_LIMIT, PUBLIC_LEVEL
from folio.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from folio.observability.logging import get_logger
from folio.users.models import User
from folio.utils.redaction import redact
from folio.utils.validators import looks_like_email

logger = get_logger(__name__)


class UserRepository:
    """
    Repository for User rows.

    All methods use the shared connection pool.
    """

    @staticmethod
    def get_by_uuid(user_uuid: str) -> User | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE uuid = ?", (user_uuid,)).fetchone()
        return User.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_by_email(email: str) -> User | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return User.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_by_token(token: str | None) -> User | None:
        """
        Resolve an opaque identity token. Tokens are user uuids; an email
        address is never accepted in their place.
        """
        if not token:
            return None
        return UserRepository.get_by_uuid(token)

    @staticmethod
    def get_access_level(token: str | None) -> int:
        """
        Access level for a token; unknown or missing tokens are public (0).
        """
        user = UserRepository.get_by_token(token)
        return user.access_level if user else PUBLIC_LEVEL

    @staticmethod
    @retry_on_db_lock()
    def create(
        user_uuid: str | None = None,
        email: str | None = None,
        name: str | None = None,
        access_level: int = PUBLIC_LEVEL,
    ) -> User:
        """
        Insert a new user.

        Raises:
            sqlite3.IntegrityError: If the uuid or email already exists
        """
        user_uuid = user_uuid or str(uuid_lib.uuid4())
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO users (uuid, email, name, access_level) VALUES (?, ?, ?, ?)",
                (user_uuid, email or None, name or "Anonymous", access_level),
            )

        logger.info("Created user %s (email=%s)", user_uuid, redact(email))
        user = UserRepository.get_by_uuid(user_uuid)
        assert user is not None
        return user

    @staticmethod
    @retry_on_db_lock()
    def touch(user_uuid: str) -> None:
        """Bump last_seen."""
        with db_transaction() as conn:
            conn.execute(
                "UPDATE users SET last_seen = CURRENT_TIMESTAMP WHERE uuid = ?", (user_uuid,)
            )

    @staticmethod
    @retry_on_db_lock()
    def backfill_email(user_uuid: str, email: str, name: str | None) -> None:
        """
        Attach an email (and name) to a previously anonymous user.

        Raises:
            sqlite3.IntegrityError: If another user already owns the email
        """
        with db_transaction() as conn:
            conn.execute(
                "UPDATE users SET email = ?, name = COALESCE(?, name), "
                "last_seen = CURRENT_TIMESTAMP WHERE uuid = ?",
                (email, name, user_uuid),
            )

    @staticmethod
    @retry_on_db_lock()
    def set_access_level(user_uuid: str, level: int) -> bool:
        """Returns True if a row was updated."""
        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET access_level = ? WHERE uuid = ?", (level, user_uuid)
            )
            return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def set_access_level_by_email(email: str, level: int) -> bool:
        """Returns True if a row was updated."""
        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE users SET access_level = ? WHERE email = ?", (level, email)
            )
            return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def delete(user_uuid: str) -> bool:
        """Returns True if a row was deleted."""
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM users WHERE uuid = ?", (user_uuid,))
            return cursor.rowcount > 0

    @staticmethod
    def list_recent(limit: int = ADMIN_USER_LIST_LIMIT) -> list[User]:
        """Most recently seen users first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM users ORDER BY last_seen DESC, created_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [User.from_db_row(dict(row)) for row in rows]


def resolve_or_create_identity(
    email: str | None = None,
    name: str | None = None,
    existing_uuid: str | None = None,
) -> str:
    """
    Find the visitor's identity or create one, returning its uuid.

    Lookup is by email first, then by the supplied uuid. A known user gets
    its email backfilled if it had none; otherwise only last_seen moves. An
    unknown visitor is inserted at the public level under the supplied uuid
    or a fresh one.

    If a concurrent request inserts the same email first, the unique
    constraint fires and the winning row's uuid is adopted.

    A client-held token shaped like an email is not a uuid and is ignored,
    so an address can never become a row key.
    """
    if looks_like_email(existing_uuid):
        logger.info("Ignoring email-shaped identity token")
        existing_uuid = None

    user = UserRepository.get_by_email(email) if email else None
    if user is None and existing_uuid:
        user = UserRepository.get_by_uuid(existing_uuid)

    if user is not None:
        if email and not user.email:
            try:
                UserRepository.backfill_email(user.uuid, email, name)
            except sqlite3.IntegrityError:
                return _adopt_existing(email, fallback=user.uuid)
        else:
            UserRepository.touch(user.uuid)
        return user.uuid

    try:
        return UserRepository.create(user_uuid=existing_uuid, email=email, name=name).uuid
    except sqlite3.IntegrityError:
        logger.info("Identity insert lost a race (email=%s), re-resolving", redact(email))
        return _adopt_existing(email, fallback=existing_uuid)


def _adopt_existing(email: str | None, fallback: str | None) -> str:
    winner = UserRepository.get_by_email(email) if email else None
    if winner is not None:
        UserRepository.touch(winner.uuid)
        return winner.uuid
    if fallback:
        return fallback
    raise RuntimeError("Identity could not be resolved after a uniqueness conflict")
