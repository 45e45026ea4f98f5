#!/usr/bin/env python3
"""
Tests for post-commit notification dispatch and the Mailgun email sink.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from conftest import at, make_meeting
from meetwise.core.config import settings
from meetwise.crud.meeting import get_meeting
from meetwise.services.email import EmailDeliveryError, compose_message, email_sink
from meetwise.services.notifications import NotificationDispatcher, Operation


class TestNotificationDispatcher:
    """Sinks run in the background and never fail the caller"""

    @pytest.mark.asyncio
    async def test_every_sink_is_called(self, session_factory, recorder):
        other = AsyncMock()
        dispatcher = NotificationDispatcher({"recorder": recorder, "other": other}, session_factory=session_factory)

        tasks = dispatcher.notify(7, Operation.RESCHEDULED)
        await dispatcher.drain()

        assert len(tasks) == 2
        assert recorder.calls == [(7, "rescheduled")]
        other.assert_awaited_once()
        assert other.await_args.args[1:] == (7, Operation.RESCHEDULED)
        assert dispatcher.stats() == {"sent": 2, "failures": 0, "in_flight": 0}

    @pytest.mark.asyncio
    async def test_failing_sink_is_isolated(self, session_factory, recorder):
        """Test that one broken sink doesn't stop the others"""
        broken = AsyncMock(side_effect=RuntimeError("calendar down"))
        dispatcher = NotificationDispatcher({"broken": broken, "recorder": recorder}, session_factory=session_factory)

        with patch("meetwise.services.notifications.log_error") as mock_log:
            dispatcher.notify(3, Operation.BOOKED)
            await dispatcher.drain()

        assert recorder.calls == [(3, "booked")]
        assert dispatcher.failures == 1
        assert dispatcher.sent == 1
        mock_log.assert_called_once()
        assert mock_log.call_args.args[1]["sink"] == "broken"

    @pytest.mark.asyncio
    async def test_operation_names_are_accepted(self, session_factory, recorder):
        dispatcher = NotificationDispatcher(session_factory=session_factory)
        dispatcher.register("recorder", recorder)

        dispatcher.notify(5, "cancelled")
        await dispatcher.drain()

        assert recorder.calls == [(5, "cancelled")]

    def test_unknown_operation_is_rejected(self):
        dispatcher = NotificationDispatcher()
        with pytest.raises(ValueError):
            dispatcher.notify(5, "exploded")


class TestEmailSink:
    """Mailgun messages for participants"""

    @pytest.mark.asyncio
    async def test_skipped_without_mailgun(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch("meetwise.services.email.send_email", new_callable=AsyncMock) as mock_send:
            await email_sink(db, meeting.id, "booked")

        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_message_per_participant(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch.object(settings, "MAILGUN_API_KEY", "key-test"), \
             patch.object(settings, "MAILGUN_DOMAIN", "mg.example.com"), \
             patch("meetwise.services.email.send_email", new_callable=AsyncMock) as mock_send:
            await email_sink(db, meeting.id, "booked")

        assert mock_send.await_count == 2
        recipients = [c.args[1]["to"] for c in mock_send.await_args_list]
        assert recipients == [host.email, "earlier@example.com"]
        assert mock_send.await_args_list[0].args[1]["subject"] == "Confirmed: Existing"

    @pytest.mark.asyncio
    async def test_failed_recipient_does_not_skip_the_rest(self, db, host, event_type):
        """Test that a Mailgun error for one participant still emails the others"""
        meeting = await make_meeting(db, host, event_type, at(10))
        failures = [httpx.ConnectError("mailgun unreachable"), None]

        with patch.object(settings, "MAILGUN_API_KEY", "key-test"), \
             patch.object(settings, "MAILGUN_DOMAIN", "mg.example.com"), \
             patch("meetwise.services.email.send_email", new_callable=AsyncMock, side_effect=failures) as mock_send:
            with pytest.raises(EmailDeliveryError):
                await email_sink(db, meeting.id, "booked")

        assert mock_send.await_count == 2
        assert mock_send.await_args_list[1].args[1]["to"] == "earlier@example.com"

    @pytest.mark.asyncio
    async def test_guest_message_carries_manage_link(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))
        meeting = await get_meeting(db, meeting.id)
        guest = meeting.guest_participants[0]

        booked = compose_message(meeting, guest, "booked")
        cancelled = compose_message(meeting, guest, "cancelled")

        assert f"/meetings/{meeting.id}?token={guest.access_token}" in booked["text"]
        assert "token=" not in cancelled["text"]
        assert cancelled["subject"] == "Cancelled: Existing"
