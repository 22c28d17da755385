"""
Persisted cooldown timestamps.

Used to rate-limit outbound emails per address across restarts, e.g. the
"settings updated" email sent on unsubscribe.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta

from folio.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


def _now_ms() -> int:
    return int(time.time() * 1000)


class CooldownRepository:
    """Cooldown rows keyed by an arbitrary string (e.g. ``unsub_email:<email>``)."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self.clock = clock

    def last_fired(self, key: str) -> int | None:
        """Epoch milliseconds of the last recorded event, or None."""
        with get_db_connection() as conn:
            row = conn.execute("SELECT timestamp FROM cooldowns WHERE key = ?", (key,)).fetchone()
        return row["timestamp"] if row else None

    def is_cooling_down(self, key: str, period: timedelta) -> bool:
        last = self.last_fired(key)
        if last is None:
            return False
        return self.clock() - last <= period.total_seconds() * 1000

    @retry_on_db_lock()
    def touch(self, key: str) -> None:
        now = self.clock()
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO cooldowns (key, timestamp) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET timestamp = excluded.timestamp",
                (key, now),
            )
