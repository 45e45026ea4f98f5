#!/usr/bin/env python3
"""
Tests for the periodic maintenance jobs.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from conftest import at, make_meeting
from meetwise.core.clock import FixedClock
from meetwise.crud.meeting import get_meeting
from meetwise.schemas.meeting import LockSlotRequest
from meetwise.services.booking import lock_slot
from meetwise.services.tasks import (
    complete_past_meetings,
    maintenance_loop,
    purge_expired_locks,
    run_maintenance,
    send_due_reminders,
)

SUNDAY_MORNING = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)


class TestMaintenanceJobs:
    """Lock purge, completion and reminders"""

    @pytest.mark.asyncio
    async def test_expired_locks_are_purged(self, db, host, event_type, clock):
        await lock_slot(
            db,
            LockSlotRequest(
                host_user_id=host.id, event_type_id=event_type.id, start_time=at(10), end_time=at(10, 30), lock_id="tab-1"
            ),
            clock=clock,
        )

        assert await purge_expired_locks(db, clock=clock) == 0
        clock.advance(minutes=3)
        assert await purge_expired_locks(db, clock=clock) == 1

    @pytest.mark.asyncio
    async def test_ended_meetings_are_completed(self, db, host, event_type, session_factory):
        done = await make_meeting(db, host, event_type, at(9))
        cancelled = await make_meeting(db, host, event_type, at(9, 30), status="cancelled")
        later = await make_meeting(db, host, event_type, at(11))

        count = await complete_past_meetings(db, clock=FixedClock(at(10, 30)))

        assert count == 1
        async with session_factory() as session:
            assert (await get_meeting(session, done.id)).status == "completed"
            assert (await get_meeting(session, cancelled.id)).status == "cancelled"
            assert (await get_meeting(session, later.id)).status == "confirmed"

    @pytest.mark.asyncio
    async def test_reminder_sent_once(self, db, host, event_type, notifier, recorder):
        """Test that a meeting 24h away is reminded exactly once"""
        meeting = await make_meeting(db, host, event_type, at(10))
        await make_meeting(db, host, event_type, at(11, 30))
        clock = FixedClock(SUNDAY_MORNING)

        first = await send_due_reminders(db, clock=clock, notifier=notifier)
        second = await send_due_reminders(db, clock=clock, notifier=notifier)
        await notifier.drain()

        assert first == [meeting.id]
        assert second == []
        assert recorder.calls == [(meeting.id, "reminder")]

    @pytest.mark.asyncio
    async def test_run_maintenance_reports_counts(self, db, host, event_type, notifier):
        await make_meeting(db, host, event_type, at(10))

        report = await run_maintenance(db, clock=FixedClock(SUNDAY_MORNING), notifier=notifier)
        await notifier.drain()

        assert report == {"expired_locks": 0, "completed": 0, "reminders": 1}


class TestMaintenanceLoop:
    """Background loop lifecycle"""

    @pytest.mark.asyncio
    async def test_disabled_loop_returns(self, session_factory):
        await asyncio.wait_for(maintenance_loop(session_factory, interval_seconds=0), timeout=1)

    @pytest.mark.asyncio
    async def test_failed_round_does_not_stop_the_loop(self, session_factory):
        rounds = AsyncMock(side_effect=[RuntimeError("db down"), asyncio.CancelledError()])

        with patch("meetwise.services.tasks.run_maintenance", rounds), \
             patch("meetwise.services.tasks.log_error") as mock_log:
            with pytest.raises(asyncio.CancelledError):
                await maintenance_loop(session_factory, interval_seconds=1)

        assert rounds.await_count == 2
        mock_log.assert_called_once()
