#!/usr/bin/env python3
"""
Tests for Google Calendar integration functionality.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest
from googleapiclient.errors import HttpError

from conftest import at, make_meeting
from meetwise.core.config import settings
from meetwise.crud.calendar import create_connection
from meetwise.crud.meeting import get_meeting
from meetwise.db.models.calendar import CalendarConnection
from meetwise.services.google_calendar import (
    build_credentials,
    build_event_body,
    calendar_sink,
    delete_calendar_event,
    update_calendar_event,
)


@pytest.fixture
def mock_service():
    """Calendar API client whose calls return canned events"""
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {"id": "evt_123"}
    service.events.return_value.patch.return_value.execute.return_value = {"id": "evt_123"}
    service.events.return_value.delete.return_value.execute.return_value = ""
    return service


def http_error(status):
    return HttpError(Mock(status=status, reason="error"), b"")


class TestCredentials:
    """OAuth credentials from a stored connection"""

    def test_expiry_is_naive_utc(self):
        expires = datetime(2026, 10, 15, 13, 0, tzinfo=timezone.utc)
        connection = CalendarConnection(access_token="ya29.token", refresh_token="1//refresh", token_expires_at=expires)

        credentials = build_credentials(connection)

        assert credentials.token == "ya29.token"
        assert credentials.refresh_token == "1//refresh"
        assert credentials.expiry == datetime(2026, 10, 15, 13, 0)
        assert credentials.token_uri == settings.GOOGLE_TOKEN_URI


class TestEventBody:
    """Event payload"""

    @pytest.mark.asyncio
    async def test_body_describes_meeting(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))
        meeting = await get_meeting(db, meeting.id)

        body = build_event_body(meeting)

        assert body["summary"] == "Existing with Earlier Guest"
        assert body["start"]["dateTime"] == at(10).isoformat()
        assert body["end"]["dateTime"] == at(10, 30).isoformat()
        assert [a["email"] for a in body["attendees"]] == ["earlier@example.com"]


class TestCalendarCalls:
    """Google API error handling"""

    @pytest.mark.asyncio
    async def test_delete_missing_event_returns_false(self, mock_service):
        mock_service.events.return_value.delete.return_value.execute.side_effect = http_error(410)

        assert await delete_calendar_event(mock_service, "primary", "evt_gone") is False

    @pytest.mark.asyncio
    async def test_delete_other_errors_propagate(self, mock_service):
        mock_service.events.return_value.delete.return_value.execute.side_effect = http_error(500)

        with pytest.raises(HttpError):
            await delete_calendar_event(mock_service, "primary", "evt_123")

    @pytest.mark.asyncio
    async def test_update_recreates_missing_event(self, db, host, event_type, mock_service):
        meeting = await make_meeting(db, host, event_type, at(10))
        meeting = await get_meeting(db, meeting.id)
        mock_service.events.return_value.patch.return_value.execute.side_effect = http_error(404)

        event_id = await update_calendar_event(mock_service, "primary", "evt_old", meeting)

        assert event_id == "evt_123"
        mock_service.events.return_value.insert.assert_called_once()


class TestCalendarSink:
    """Mirroring committed changes onto the host's calendar"""

    @pytest.mark.asyncio
    async def test_disabled_sync_does_nothing(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch("meetwise.services.google_calendar.get_calendar_service") as mock_get:
            await calendar_sink(db, meeting.id, "booked")

        mock_get.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_connection_skips(self, db, host, event_type):
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch.object(settings, "GOOGLE_CALENDAR_ENABLED", True), \
             patch("meetwise.services.google_calendar.get_calendar_service") as mock_get:
            await calendar_sink(db, meeting.id, "booked")

        mock_get.assert_not_called()

    @pytest.mark.asyncio
    async def test_booked_meeting_gets_event_id(self, db, host, event_type, mock_service, session_factory):
        await create_connection(
            db, user_id=host.id, access_token="ya29.token", token_expires_at=at(9) + timedelta(days=30)
        )
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch.object(settings, "GOOGLE_CALENDAR_ENABLED", True), \
             patch("meetwise.services.google_calendar.get_calendar_service", return_value=mock_service):
            await calendar_sink(db, meeting.id, "booked")

        async with session_factory() as session:
            stored = await get_meeting(session, meeting.id)
        assert stored.calendar_event_id == "evt_123"
        assert stored.calendar_provider == "google"
        insert_kwargs = mock_service.events.return_value.insert.call_args.kwargs
        assert insert_kwargs["calendarId"] == "primary"

    @pytest.mark.asyncio
    async def test_cancelled_meeting_deletes_event(self, db, host, event_type, mock_service):
        await create_connection(db, user_id=host.id, access_token="ya29.token")
        meeting = await make_meeting(db, host, event_type, at(10))
        meeting.calendar_event_id = "evt_123"
        await db.commit()

        with patch.object(settings, "GOOGLE_CALENDAR_ENABLED", True), \
             patch("meetwise.services.google_calendar.get_calendar_service", return_value=mock_service):
            await calendar_sink(db, meeting.id, "cancelled")

        mock_service.events.return_value.delete.assert_called_once_with(calendarId="primary", eventId="evt_123")

    @pytest.mark.asyncio
    async def test_reminders_are_not_synced(self, db, host, event_type, mock_service):
        await create_connection(db, user_id=host.id, access_token="ya29.token")
        meeting = await make_meeting(db, host, event_type, at(10))

        with patch.object(settings, "GOOGLE_CALENDAR_ENABLED", True), \
             patch("meetwise.services.google_calendar.get_calendar_service", return_value=mock_service):
            await calendar_sink(db, meeting.id, "reminder")

        mock_service.events.assert_not_called()
