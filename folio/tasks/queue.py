"""
Single-consumer background task queue.

Outbound work (AI drafts, email sends) runs here one task at a time so a slow
or rate-limited external call can never cause two sends to overlap.

Lifecycle per task:
    queued -> running -> completed
                      -> rescheduled(delay) -> queued
                      -> dropped (fatal, or retries exhausted)

Failures are classified by type and message text. Fatal errors (missing
resources, bad requests, credential problems) are dropped immediately;
everything else is retried with exponential backoff
(``base_delay * 2**retries``: 60, 120, 240, 480, 960 seconds) and dropped
after the final retry fails.

Nothing is persisted. Tasks are notification side effects, so losing the
backlog on restart is acceptable; users and blacklist rows are written
synchronously before anything is enqueued.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from folio.config import QUEUE_BASE_DELAY_SECONDS, QUEUE_MAX_RETRIES
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter, log_event

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]

# Lowercased substrings that mark an error as not worth retrying
FATAL_MARKERS: tuple[str, ...] = (
    "not found",
    "404",
    "400",
    "api key",
    "api_key",
    "authentication",
)


class FatalTaskError(Exception):
    """Raise from a task to drop it without retrying."""

    pass


def is_fatal(error: BaseException) -> bool:
    """True if a failed task should be dropped rather than retried."""
    if isinstance(error, FatalTaskError):
        return True
    text = f"{type(error).__name__}: {error}".lower()
    return any(marker in text for marker in FATAL_MARKERS)


class DelayScheduler(Protocol):
    """Runs a callback after a delay without blocking the caller."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> None: ...


class LoopScheduler:
    """Default scheduler: a timer on the running event loop."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class QueuedTask:
    operation: Operation
    label: str = "task"
    retries: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


class TaskQueue:
    """
    FIFO backlog with a single busy flag.

    ``enqueue`` must be called from code running on the event loop (route
    handlers, other tasks, scheduler callbacks).
    """

    def __init__(
        self,
        scheduler: DelayScheduler | None = None,
        *,
        max_retries: int = QUEUE_MAX_RETRIES,
        base_delay: float = QUEUE_BASE_DELAY_SECONDS,
    ) -> None:
        self.scheduler = scheduler or LoopScheduler()
        self.max_retries = max_retries
        self.base_delay = base_delay

        self._backlog: deque[QueuedTask] = deque()
        self._busy = False
        self._drainer: asyncio.Task[None] | None = None
        self._waiting_retry = 0

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending(self) -> int:
        """Tasks waiting in the backlog (not counting scheduled retries)."""
        return len(self._backlog)

    @property
    def scheduled_retries(self) -> int:
        return self._waiting_retry

    def enqueue(self, operation: Operation, label: str = "task") -> QueuedTask:
        """Append a new task and start draining if idle."""
        task = QueuedTask(operation=operation, label=label)
        self._push(task)
        return task

    def _push(self, task: QueuedTask) -> None:
        self._backlog.append(task)
        log_event("queue.task_enqueued", task_id=task.id, label=task.label, retries=task.retries)
        counter("queue.enqueued")
        self._start_drain()

    def _start_drain(self) -> None:
        if self._drainer is not None:
            return
        self._drainer = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._backlog:
                task = self._backlog.popleft()
                self._busy = True
                try:
                    await self._run(task)
                finally:
                    self._busy = False
        finally:
            self._drainer = None

    async def _run(self, task: QueuedTask) -> None:
        try:
            await task.operation()
        except Exception as e:
            try:
                self._handle_failure(task, e)
            except Exception:
                logger.exception(
                    "Task %s (%s) could not be rescheduled, dropping", task.id, task.label
                )
                log_event(
                    "queue.task_dropped", task_id=task.id, label=task.label, reason="unschedulable"
                )
                counter("queue.dropped_unschedulable")
            return

        logger.info("Task %s (%s) completed", task.id, task.label)
        log_event("queue.task_completed", task_id=task.id, label=task.label, retries=task.retries)
        counter("queue.completed")

    def _handle_failure(self, task: QueuedTask, error: Exception) -> None:
        if is_fatal(error):
            logger.error("Task %s (%s) failed fatally, dropping: %s", task.id, task.label, error)
            log_event("queue.task_dropped", task_id=task.id, label=task.label, reason="fatal")
            counter("queue.dropped_fatal")
            return

        if task.retries >= self.max_retries:
            logger.error(
                "Task %s (%s) exhausted %d retries, dropping: %s",
                task.id,
                task.label,
                self.max_retries,
                error,
            )
            log_event("queue.task_dropped", task_id=task.id, label=task.label, reason="exhausted")
            counter("queue.dropped_exhausted")
            return

        delay = self.base_delay * (2**task.retries)
        task.retries += 1
        logger.warning(
            "Task %s (%s) failed, retry %d/%d in %.0fs: %s",
            task.id,
            task.label,
            task.retries,
            self.max_retries,
            delay,
            error,
        )
        log_event("queue.task_rescheduled", task_id=task.id, label=task.label, delay=delay)
        counter("queue.rescheduled")

        self._waiting_retry += 1
        try:
            self.scheduler.schedule(delay, lambda: self._requeue(task))
        except Exception:
            self._waiting_retry -= 1
            raise

    def _requeue(self, task: QueuedTask) -> None:
        self._waiting_retry -= 1
        self._push(task)

    async def join(self) -> None:
        """Wait until the backlog is drained. Scheduled retries are not awaited."""
        while self._drainer is not None:
            await asyncio.shield(self._drainer)
