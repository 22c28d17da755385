"""
Append-only access log.

Records portfolio views, attacks and notable user actions with the uuid,
email, ip and a short payload.
"""

from __future__ import annotations

from typing import Any

from folio.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


class AccessLog:
    @staticmethod
    @retry_on_db_lock()
    def append(
        *,
        uuid: str | None = None,
        email: str | None = None,
        name: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        payload: str | None = None,
    ) -> int | None:
        with db_transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO access_logs (uuid, email, name, ip, user_agent, payload) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (uuid, email, name, ip, user_agent, payload),
            )
            return cursor.lastrowid

    @staticmethod
    def recent(limit: int = 100) -> list[dict[str, Any]]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM access_logs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [dict(row) for row in rows]
