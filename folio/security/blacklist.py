"""
Blacklist of banned email addresses.

Independent of the users table, but every administrative ban/unban goes
through folio.security.access.AccessControl so the two stay consistent.
"""

from __future__ import annotations

from folio.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from folio.observability.logging import get_logger
from folio.observability.telemetry import log_event
from folio.users.models import BlacklistEntry
from folio.utils.redaction import redact

logger = get_logger(__name__)

DEFAULT_REASON = "General Ban"


class Blacklist:
    """Single-statement operations on the blacklist table."""

    @staticmethod
    def is_blacklisted(email: str | None) -> bool:
        if not email:
            return False
        with get_db_connection() as conn:
            row = conn.execute("SELECT 1 FROM blacklist WHERE email = ?", (email,)).fetchone()
        return row is not None

    @staticmethod
    @retry_on_db_lock()
    def add(email: str, reason: str = DEFAULT_REASON) -> bool:
        """
        Ban an email. Adding an email that is already banned is a no-op.

        Returns:
            True if a new row was inserted
        """
        with db_transaction() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO blacklist (email, reason) VALUES (?, ?)", (email, reason)
            )
            inserted = cursor.rowcount > 0

        if inserted:
            logger.info("Banned %s: %s", redact(email), reason)
            log_event("security.banned", email=redact(email), reason=reason)
        return inserted

    @staticmethod
    @retry_on_db_lock()
    def remove(email: str) -> bool:
        """
        Lift a ban.

        Returns:
            True iff a row was actually deleted
        """
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM blacklist WHERE email = ?", (email,))
            removed = cursor.rowcount > 0

        if removed:
            logger.info("Unbanned %s", redact(email))
            log_event("security.unbanned", email=redact(email))
        return removed

    @staticmethod
    def get(email: str) -> BlacklistEntry | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT email, reason, timestamp FROM blacklist WHERE email = ?", (email,)
            ).fetchone()
        return BlacklistEntry(**dict(row)) if row else None
