# meetwise/services/google_calendar.py
"""
Google Calendar sync for committed meetings.

Uses the owning host's stored OAuth tokens. The Google client refreshes an
expired access token by itself when a refresh token is present; the new token
is written back to the connection row.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.config import settings
from meetwise.core.timeutils import UTC
from meetwise.crud.calendar import get_active_connection
from meetwise.crud.meeting import get_meeting
from meetwise.db.models.calendar import CalendarConnection
from meetwise.db.models.meeting import Meeting

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]
PROVIDER = "google"


def build_credentials(connection: CalendarConnection) -> Credentials:
    expiry = None
    if connection.token_expires_at is not None:
        # google-auth compares expiry against a naive UTC clock
        expiry = connection.token_expires_at.astimezone(UTC).replace(tzinfo=None)
    return Credentials(
        token=connection.access_token,
        refresh_token=connection.refresh_token,
        token_uri=settings.GOOGLE_TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        scopes=SCOPES,
        expiry=expiry,
    )


def get_calendar_service(credentials: Credentials):
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def build_event_body(meeting: Meeting) -> Dict[str, Any]:
    guests = meeting.guest_participants
    summary = meeting.title or "Meeting"
    if guests:
        summary = f"{summary} with {guests[0].name}"

    lines = ["Meeting Details:"]
    for p in meeting.participants:
        role = "Host" if p.is_host else "Guest"
        lines.append(f"• {role}: {p.name} <{p.email}>")
    notes = [p.notes for p in guests if p.notes]
    if notes:
        lines.append("")
        lines.append(f"Notes: {' / '.join(notes)}")

    return {
        "summary": summary,
        "description": "\n".join(lines),
        "start": {"dateTime": meeting.start_time.isoformat(), "timeZone": "UTC"},
        "end": {"dateTime": meeting.end_time.isoformat(), "timeZone": "UTC"},
        "attendees": [
            {"email": p.email, "displayName": p.name}
            for p in meeting.participants
            if p.user_id != meeting.host_user_id
        ],
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 15},
            ],
        },
    }


async def create_calendar_event(service, calendar_id: str, meeting: Meeting) -> Optional[str]:
    event = await asyncio.to_thread(
        service.events().insert(calendarId=calendar_id, body=build_event_body(meeting)).execute
    )
    logger.info("Calendar event created: %s for meeting %s", event.get("id"), meeting.id)
    return event.get("id")


async def update_calendar_event(service, calendar_id: str, event_id: str, meeting: Meeting) -> Optional[str]:
    try:
        event = await asyncio.to_thread(
            service.events().patch(calendarId=calendar_id, eventId=event_id, body=build_event_body(meeting)).execute
        )
    except HttpError as e:
        if e.resp.status == 404:
            logger.warning("Calendar event %s gone, recreating for meeting %s", event_id, meeting.id)
            return await create_calendar_event(service, calendar_id, meeting)
        raise
    logger.info("Calendar event updated: %s for meeting %s", event_id, meeting.id)
    return event.get("id")


async def delete_calendar_event(service, calendar_id: str, event_id: str) -> bool:
    try:
        await asyncio.to_thread(service.events().delete(calendarId=calendar_id, eventId=event_id).execute)
    except HttpError as e:
        if e.resp.status in (404, 410):
            logger.warning("Calendar event not found: %s", event_id)
            return False
        raise
    logger.info("Calendar event deleted: %s", event_id)
    return True


def _store_refreshed_token(connection: CalendarConnection, credentials: Credentials) -> None:
    if credentials.token and credentials.token != connection.access_token:
        connection.access_token = credentials.token
        if credentials.expiry is not None:
            connection.token_expires_at = credentials.expiry.replace(tzinfo=UTC)


async def calendar_sink(db: AsyncSession, meeting_id: int, operation: str) -> None:
    """Mirror a committed booking change onto the owning host's Google Calendar."""
    if not settings.GOOGLE_CALENDAR_ENABLED or operation == "reminder":
        return

    meeting = await get_meeting(db, meeting_id)
    if meeting is None:
        logger.warning("Meeting %s vanished before calendar sync", meeting_id)
        return

    connection = await get_active_connection(db, user_id=meeting.host_user_id, provider=PROVIDER)
    if connection is None or not connection.access_token:
        logger.debug("No Google Calendar connected for host %s, skipping", meeting.host_user_id)
        return

    credentials = build_credentials(connection)
    service = get_calendar_service(credentials)

    if operation == "booked":
        meeting.calendar_event_id = await create_calendar_event(service, connection.calendar_id, meeting)
        meeting.calendar_provider = PROVIDER
    elif operation == "rescheduled":
        if meeting.calendar_event_id:
            meeting.calendar_event_id = await update_calendar_event(
                service, connection.calendar_id, meeting.calendar_event_id, meeting
            )
        else:
            meeting.calendar_event_id = await create_calendar_event(service, connection.calendar_id, meeting)
        meeting.calendar_provider = PROVIDER
    elif operation == "cancelled":
        if meeting.calendar_event_id:
            await delete_calendar_event(service, connection.calendar_id, meeting.calendar_event_id)

    _store_refreshed_token(connection, credentials)
    await db.commit()
