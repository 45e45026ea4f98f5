#!/usr/bin/env python3
"""
Tests for rescheduling and cancelling meetings, including who may do it.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import at, make_host
from meetwise.core.errors import ErrorCode
from meetwise.crud.dashboard_share import grant_access
from meetwise.crud.meeting import get_meeting
from meetwise.db.models.meeting import MeetingStatus
from meetwise.schemas.meeting import BookMeetingRequest, CancelRequest, RescheduleRequest
from meetwise.services.booking import book_meeting, cancel_meeting, reschedule_meeting


@pytest_asyncio.fixture
async def booked(db, event_type, clock, notifier):
    """A confirmed 10:00 meeting booked by a guest; returns (meeting_id, guest token)."""
    result = await book_meeting(
        db,
        BookMeetingRequest(
            event_type_id=event_type.id,
            host_user_id=event_type.user_id,
            start_time=at(10),
            participant_name="Jane Doe",
            participant_email="jane@example.com",
        ),
        clock=clock,
        notifier=notifier,
    )
    assert result.success
    await notifier.drain()
    return result.meeting_id, result.participant_token


async def fresh_meeting(session_factory, meeting_id):
    async with session_factory() as session:
        return await get_meeting(session, meeting_id)


class TestRescheduleMeeting:
    """Moving a meeting to a new start"""

    @pytest.mark.asyncio
    async def test_guest_reschedules_with_token(self, db, booked, clock, notifier, recorder, session_factory):
        meeting_id, token = booked

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(11), participant_token=token),
            clock=clock,
            notifier=notifier,
        )

        assert result.success is True
        meeting = await fresh_meeting(session_factory, meeting_id)
        assert meeting.start_time == at(11)
        assert meeting.end_time == at(11, 30)
        assert meeting.reminder_sent_at is None

        await notifier.drain()
        assert recorder.calls[-1] == (meeting_id, "rescheduled")

    @pytest.mark.asyncio
    async def test_overlapping_its_own_old_time_is_allowed(self, db, booked, clock, notifier):
        """Test that a meeting does not conflict with itself when moved by half its length"""
        meeting_id, token = booked

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(10, 15), participant_token=token),
            clock=clock,
            notifier=notifier,
        )

        assert result.success is True
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_host_reschedules_without_token(self, db, host, booked, clock, notifier):
        meeting_id, _ = booked

        result = await reschedule_meeting(
            db, meeting_id, RescheduleRequest(new_start_time=at(9)), acting_user_id=host.id, clock=clock, notifier=notifier
        )

        assert result.success is True
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_edit_delegate_may_reschedule(self, db, host, booked, clock, notifier):
        assistant = await make_host(db, username="assistant", rules=())
        await grant_access(db, owner_user_id=host.id, shared_with_user_id=assistant.id, permission_level="edit")
        meeting_id, _ = booked

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(9)),
            acting_user_id=assistant.id,
            clock=clock,
            notifier=notifier,
        )

        assert result.success is True
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_view_delegate_is_unauthorized(self, db, host, booked, clock, notifier, session_factory):
        viewer = await make_host(db, username="viewer", rules=())
        await grant_access(db, owner_user_id=host.id, shared_with_user_id=viewer.id, permission_level="view")
        meeting_id, _ = booked

        result = await reschedule_meeting(
            db, meeting_id, RescheduleRequest(new_start_time=at(9)), acting_user_id=viewer.id, clock=clock, notifier=notifier
        )

        assert result.error == ErrorCode.UNAUTHORIZED
        meeting = await fresh_meeting(session_factory, meeting_id)
        assert meeting.start_time == at(10)

    @pytest.mark.asyncio
    async def test_wrong_token_is_unauthorized(self, db, booked, clock, notifier):
        meeting_id, _ = booked

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(9), participant_token="guessed"),
            clock=clock,
            notifier=notifier,
        )

        assert result.error == ErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_new_time_must_be_free(self, db, host, event_type, booked, clock, notifier):
        meeting_id, token = booked
        other = await book_meeting(
            db,
            BookMeetingRequest(
                event_type_id=event_type.id,
                host_user_id=host.id,
                start_time=at(11),
                participant_name="Sam Roe",
                participant_email="sam@example.com",
            ),
            clock=clock,
            notifier=notifier,
        )
        assert other.success

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(11), participant_token=token),
            clock=clock,
            notifier=notifier,
        )

        assert result.error == ErrorCode.SLOT_CONFLICT
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_new_time_respects_notice(self, db, booked, clock, notifier):
        meeting_id, token = booked

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=clock.now() + timedelta(hours=1), participant_token=token),
            clock=clock,
            notifier=notifier,
        )

        assert result.error == ErrorCode.NOTICE_VIOLATION

    @pytest.mark.asyncio
    async def test_cancelled_meeting_cannot_move(self, db, booked, clock, notifier, session_factory):
        meeting_id, token = booked
        await cancel_meeting(db, meeting_id, CancelRequest(participant_token=token), clock=clock, notifier=notifier)

        result = await reschedule_meeting(
            db,
            meeting_id,
            RescheduleRequest(new_start_time=at(11), participant_token=token),
            clock=clock,
            notifier=notifier,
        )

        assert result.error == ErrorCode.INVALID_STATE
        meeting = await fresh_meeting(session_factory, meeting_id)
        assert meeting.start_time == at(10)
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_unknown_meeting(self, db, clock, notifier):
        result = await reschedule_meeting(
            db, 999, RescheduleRequest(new_start_time=at(11), participant_token="x"), clock=clock, notifier=notifier
        )

        assert result.error == ErrorCode.NOT_FOUND


class TestCancelMeeting:
    """Cancelling frees the slot and keeps the meeting's times"""

    @pytest.mark.asyncio
    async def test_guest_cancels(self, db, booked, clock, notifier, recorder, session_factory):
        meeting_id, token = booked

        result = await cancel_meeting(
            db, meeting_id, CancelRequest(participant_token=token, reason="conflict"), clock=clock, notifier=notifier
        )

        assert result.success is True
        assert result.already_cancelled is False
        meeting = await fresh_meeting(session_factory, meeting_id)
        assert meeting.status == MeetingStatus.CANCELLED.value
        assert meeting.cancelled_at == clock.now()
        assert meeting.start_time == at(10)

        await notifier.drain()
        assert recorder.calls[-1] == (meeting_id, "cancelled")

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_booked_again(self, db, host, event_type, booked, clock, notifier):
        meeting_id, token = booked
        await cancel_meeting(db, meeting_id, CancelRequest(participant_token=token), clock=clock, notifier=notifier)

        result = await book_meeting(
            db,
            BookMeetingRequest(
                event_type_id=event_type.id,
                host_user_id=host.id,
                start_time=at(10),
                participant_name="Sam Roe",
                participant_email="sam@example.com",
            ),
            clock=clock,
            notifier=notifier,
        )

        assert result.success is True
        await notifier.drain()

    @pytest.mark.asyncio
    async def test_second_cancel_is_idempotent(self, db, booked, clock, notifier, recorder):
        """Test that cancelling twice succeeds without a second notification"""
        meeting_id, token = booked
        await cancel_meeting(db, meeting_id, CancelRequest(participant_token=token), clock=clock, notifier=notifier)

        again = await cancel_meeting(
            db, meeting_id, CancelRequest(participant_token=token), clock=clock, notifier=notifier
        )

        assert again.success is True
        assert again.already_cancelled is True
        await notifier.drain()
        assert [op for _, op in recorder.calls].count("cancelled") == 1

    @pytest.mark.asyncio
    async def test_completed_meeting_cannot_be_cancelled(self, db, booked, clock, notifier, session_factory):
        meeting_id, token = booked
        async with session_factory() as session:
            meeting = await get_meeting(session, meeting_id)
            meeting.status = MeetingStatus.COMPLETED.value
            await session.commit()

        result = await cancel_meeting(
            db, meeting_id, CancelRequest(participant_token=token), clock=clock, notifier=notifier
        )

        assert result.error == ErrorCode.INVALID_STATE

    @pytest.mark.asyncio
    async def test_anonymous_caller_is_unauthorized(self, db, booked, clock, notifier):
        meeting_id, _ = booked

        result = await cancel_meeting(db, meeting_id, CancelRequest(), clock=clock, notifier=notifier)

        assert result.error == ErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_unknown_meeting(self, db, clock, notifier):
        result = await cancel_meeting(db, 999, CancelRequest(participant_token="x"), clock=clock, notifier=notifier)

        assert result.error == ErrorCode.NOT_FOUND
