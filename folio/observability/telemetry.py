"""
Structured event logging and in-memory counters.

Nothing is shipped to an external metrics backend; events go to the
``folio.telemetry`` logger and counters live in process memory so tests can
assert on instrumentation (security events, queue outcomes).
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("folio.telemetry")

_COUNTERS: dict[str, int] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Caller must redact emails and free text.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """
    Increment an in-memory counter and emit a debug log.

    Side Effects:
        - Modifies _COUNTERS dict (in-memory state)
    """
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def reset_counters() -> None:
    """Clear all counters (used by tests)."""
    _COUNTERS.clear()


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Log how long the wrapped block took, in seconds, at debug level."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logger.debug("timing=%s seconds=%.6f", metric_name, elapsed)
