# meetwise/services/tasks.py
"""
Periodic maintenance:
- purge_expired_locks: drops slot locks whose TTL has passed
- complete_past_meetings: confirmed meetings that have ended become completed
- send_due_reminders: one reminder per confirmed meeting, REMINDER_HOURS_BEFORE ahead
"""
from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meetwise.core.clock import Clock, system_clock
from meetwise.core.config import settings
from meetwise.core.errors import ErrorSeverity, log_error
from meetwise.core.logging import get_logger
from meetwise.crud.slot_lock import purge_expired
from meetwise.db.models.meeting import Meeting, MeetingStatus
from meetwise.services.notifications import NotificationDispatcher, Operation, dispatcher

logger = get_logger(__name__)


async def purge_expired_locks(db: AsyncSession, *, clock: Clock = system_clock) -> int:
    removed = await purge_expired(db, now=clock.now())
    await db.commit()
    if removed:
        logger.info("expired_locks_purged", count=removed)
    return removed


async def complete_past_meetings(db: AsyncSession, *, clock: Clock = system_clock) -> int:
    res = await db.execute(
        sa.update(Meeting)
        .where(
            Meeting.status == MeetingStatus.CONFIRMED.value,
            Meeting.end_time <= clock.now(),
        )
        .values(status=MeetingStatus.COMPLETED.value, updated_at=clock.now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    count = res.rowcount or 0
    if count:
        logger.info("meetings_completed", count=count)
    return count


async def send_due_reminders(
    db: AsyncSession,
    *,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> list[int]:
    """
    Stamp and notify confirmed meetings starting within
    [now + REMINDER_HOURS_BEFORE, +1h) that have not had a reminder yet.
    """
    window_start = clock.now() + timedelta(hours=settings.REMINDER_HOURS_BEFORE)
    window_end = window_start + timedelta(hours=1)
    res = await db.execute(
        sa.select(Meeting)
        .where(
            Meeting.status == MeetingStatus.CONFIRMED.value,
            Meeting.reminder_sent_at.is_(None),
            Meeting.start_time >= window_start,
            Meeting.start_time < window_end,
        )
        .order_by(Meeting.start_time)
    )
    due = list(res.scalars().all())
    for meeting in due:
        meeting.reminder_sent_at = clock.now()
    meeting_ids = [m.id for m in due]
    await db.commit()

    for meeting_id in meeting_ids:
        notifier.notify(meeting_id, Operation.REMINDER)
    if meeting_ids:
        logger.info("reminders_sent", count=len(meeting_ids))
    return meeting_ids


async def run_maintenance(
    db: AsyncSession,
    *,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> dict:
    return {
        "expired_locks": await purge_expired_locks(db, clock=clock),
        "completed": await complete_past_meetings(db, clock=clock),
        "reminders": len(await send_due_reminders(db, clock=clock, notifier=notifier)),
    }


async def maintenance_loop(
    session_factory: async_sessionmaker,
    *,
    interval_seconds: Optional[int] = None,
    clock: Clock = system_clock,
) -> None:
    """Run maintenance forever; a failed round is logged and the next one still runs."""
    interval = settings.MAINTENANCE_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
    if interval <= 0:
        logger.info("maintenance_disabled")
        return

    logger.info("maintenance_loop_started", interval_seconds=interval)
    while True:
        try:
            async with session_factory() as db:
                await run_maintenance(db, clock=clock)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_error(e, {"operation": "maintenance"}, ErrorSeverity.HIGH)
        await asyncio.sleep(interval)
