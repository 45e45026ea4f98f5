# meetwise/services/email.py
"""
Meeting emails through the Mailgun HTTP API.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.config import settings
from meetwise.core.timeutils import get_zone
from meetwise.crud.meeting import get_meeting
from meetwise.db.models.meeting import Meeting, MeetingParticipant

logger = logging.getLogger(__name__)

SUBJECTS = {
    "booked": "Confirmed: {title}",
    "rescheduled": "Rescheduled: {title}",
    "cancelled": "Cancelled: {title}",
    "reminder": "Reminder: {title}",
}

class EmailDeliveryError(Exception):
    """Mailgun refused or failed one or more messages of a dispatch."""


INTROS = {
    "booked": "Your meeting is confirmed.",
    "rescheduled": "Your meeting has moved to a new time.",
    "cancelled": "Your meeting has been cancelled.",
    "reminder": "This is a reminder of your upcoming meeting.",
}


def _when(meeting: Meeting) -> str:
    try:
        tz = get_zone(meeting.timezone)
    except ValueError:
        tz = get_zone("UTC")
    local = meeting.start_time.astimezone(tz)
    return local.strftime("%A, %B %d at %I:%M %p %Z")


def manage_link(meeting: Meeting, participant: MeetingParticipant) -> Optional[str]:
    if not participant.access_token:
        return None
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/meetings/{meeting.id}?token={participant.access_token}"


def compose_message(meeting: Meeting, participant: MeetingParticipant, operation: str) -> dict:
    title = meeting.title or "Meeting"
    lines = [
        f"Hi {participant.name},",
        "",
        INTROS[operation],
        "",
        title,
        f"When: {_when(meeting)}",
        f"With: {', '.join(p.name for p in meeting.participants if p is not participant)}",
    ]
    link = manage_link(meeting, participant)
    if link and operation != "cancelled":
        lines += ["", f"Need to reschedule or cancel? {link}"]
    return {
        "from": settings.MAILGUN_FROM_EMAIL or f"meetwise@{settings.MAILGUN_DOMAIN}",
        "to": participant.email,
        "subject": SUBJECTS[operation].format(title=title),
        "text": "\n".join(lines),
    }


async def send_email(client: httpx.AsyncClient, message: dict) -> None:
    resp = await client.post(f"/{settings.MAILGUN_DOMAIN}/messages", data=message)
    resp.raise_for_status()


async def email_sink(db: AsyncSession, meeting_id: int, operation: str) -> None:
    """Email every participant about a committed booking change."""
    if not settings.mailgun_enabled:
        logger.debug("Mailgun not configured, skipping %s email for meeting %s", operation, meeting_id)
        return

    meeting = await get_meeting(db, meeting_id)
    if meeting is None:
        logger.warning("Meeting %s vanished before email dispatch", meeting_id)
        return

    async with httpx.AsyncClient(
        base_url=settings.MAILGUN_BASE_URL,
        auth=("api", settings.MAILGUN_API_KEY),
        timeout=15.0,
    ) as client:
        failed: list[str] = []
        first_error: Optional[httpx.HTTPError] = None
        for participant in meeting.participants:
            try:
                await send_email(client, compose_message(meeting, participant, operation))
            except httpx.HTTPError as e:
                logger.warning(
                    "Mailgun failed %s email for meeting %s to %s: %s", operation, meeting_id, participant.email, e
                )
                failed.append(participant.email)
                first_error = first_error or e

    sent = len(meeting.participants) - len(failed)
    logger.info("Sent %s email for meeting %s to %d participants", operation, meeting_id, sent)
    if failed:
        raise EmailDeliveryError(
            f"{len(failed)} of {len(meeting.participants)} {operation} emails failed for meeting {meeting_id}"
        ) from first_error
