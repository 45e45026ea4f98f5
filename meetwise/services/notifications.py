# meetwise/services/notifications.py
"""
Post-commit notification dispatch.

The booking engine calls ``dispatcher.notify(meeting_id, operation)`` only
after its transaction has committed. Every registered sink runs as its own
asyncio task with its own database session; failures are logged through the
error aggregator and never reach the caller.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meetwise.core.errors import ErrorSeverity, log_error
from meetwise.core.logging import get_logger
from meetwise.db.session import AsyncSessionLocal

logger = get_logger(__name__)


class Operation(str, Enum):
    BOOKED = "booked"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    REMINDER = "reminder"


Sink = Callable[[AsyncSession, int, Operation], Awaitable[None]]


class NotificationDispatcher:
    def __init__(
        self,
        sinks: Optional[dict[str, Sink]] = None,
        session_factory: async_sessionmaker = AsyncSessionLocal,
    ):
        self.sinks: dict[str, Sink] = dict(sinks or {})
        self.session_factory = session_factory
        self.sent = 0
        self.failures = 0
        self._tasks: set[asyncio.Task] = set()

    def register(self, name: str, sink: Sink) -> None:
        self.sinks[name] = sink

    def notify(self, meeting_id: int, operation: Operation) -> list[asyncio.Task]:
        """Fire every sink for a committed change and return without waiting."""
        operation = Operation(operation)
        tasks = []
        for name, sink in self.sinks.items():
            task = asyncio.create_task(self._run(name, sink, meeting_id, operation))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        logger.info("notification_dispatched", meeting_id=meeting_id, operation=operation.value, sinks=len(tasks))
        return tasks

    async def _run(self, name: str, sink: Sink, meeting_id: int, operation: Operation) -> None:
        try:
            async with self.session_factory() as db:
                await sink(db, meeting_id, operation)
            self.sent += 1
        except Exception as e:
            self.failures += 1
            log_error(
                e,
                {"operation": operation.value, "sink": name, "meeting_id": meeting_id},
                ErrorSeverity.MEDIUM,
            )

    async def drain(self) -> None:
        """Wait for in-flight sink tasks (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stats(self) -> dict:
        return {"sent": self.sent, "failures": self.failures, "in_flight": len(self._tasks)}


def _default_sinks() -> dict[str, Sink]:
    from meetwise.services.email import email_sink
    from meetwise.services.google_calendar import calendar_sink

    return {"calendar": calendar_sink, "email": email_sink}


dispatcher = NotificationDispatcher(_default_sinks())
