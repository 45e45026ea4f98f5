# meetwise/crud/meeting.py
"""Booking ledger: the single source of truth for who is busy when."""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.meeting import BLOCKING_STATUSES, Meeting, MeetingParticipant


def _hosted_by(host_ids: Sequence[int]):
    """Meetings owned by, or co-hosted (group) by, any of the hosts."""
    ids = list(host_ids)
    cohosted = (
        sa.select(MeetingParticipant.meeting_id)
        .where(MeetingParticipant.is_host.is_(True), MeetingParticipant.user_id.in_(ids))
    )
    return sa.or_(Meeting.host_user_id.in_(ids), Meeting.id.in_(cohosted))


async def list_blocking_meetings(
    db: AsyncSession,
    *,
    host_ids: Sequence[int],
    start_utc: datetime,
    end_utc: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> Sequence[Meeting]:
    """Pending/confirmed meetings of the hosts overlapping [start_utc, end_utc)."""
    q = sa.select(Meeting).where(
        _hosted_by(host_ids),
        Meeting.status.in_(BLOCKING_STATUSES),
        Meeting.start_time < end_utc,
        Meeting.end_time > start_utc,
    )
    if exclude_meeting_id is not None:
        q = q.where(Meeting.id != exclude_meeting_id)
    res = await db.execute(q.order_by(Meeting.start_time, Meeting.id))
    return res.scalars().all()


async def list_meetings_of_type(
    db: AsyncSession,
    *,
    host_id: int,
    event_type_id: Optional[int] = None,
    group_event_type_id: Optional[int] = None,
    start_utc: datetime,
    end_utc: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> Sequence[Meeting]:
    """Blocking meetings of one event type for a host starting in [start_utc, end_utc)."""
    q = sa.select(Meeting).where(
        _hosted_by([host_id]),
        Meeting.status.in_(BLOCKING_STATUSES),
        Meeting.start_time >= start_utc,
        Meeting.start_time < end_utc,
    )
    if group_event_type_id is not None:
        q = q.where(Meeting.group_event_type_id == group_event_type_id)
    else:
        q = q.where(Meeting.event_type_id == event_type_id)
    if exclude_meeting_id is not None:
        q = q.where(Meeting.id != exclude_meeting_id)
    res = await db.execute(q.order_by(Meeting.start_time))
    return res.scalars().all()


async def get_meeting(db: AsyncSession, meeting_id: int) -> Optional[Meeting]:
    res = await db.execute(sa.select(Meeting).where(Meeting.id == meeting_id))
    return res.scalar_one_or_none()


async def list_host_meetings(
    db: AsyncSession,
    *,
    host_id: int,
    start_utc: Optional[datetime] = None,
    end_utc: Optional[datetime] = None,
    statuses: Optional[Sequence[str]] = None,
    limit: int = 100,
) -> Sequence[Meeting]:
    q = sa.select(Meeting).where(_hosted_by([host_id]))
    if start_utc is not None:
        q = q.where(Meeting.start_time >= start_utc)
    if end_utc is not None:
        q = q.where(Meeting.start_time < end_utc)
    if statuses:
        q = q.where(Meeting.status.in_(list(statuses)))
    q = q.order_by(Meeting.start_time.asc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


def new_access_token() -> str:
    return secrets.token_urlsafe(32)


def add_meeting(
    db: AsyncSession,
    *,
    host_user_id: int,
    start_utc: datetime,
    end_utc: datetime,
    status: str,
    timezone: str,
    title: Optional[str],
    participants: Sequence[MeetingParticipant],
    event_type_id: Optional[int] = None,
    group_event_type_id: Optional[int] = None,
) -> Meeting:
    """Stage a meeting in the caller's transaction; the caller commits."""
    meeting = Meeting(
        event_type_id=event_type_id,
        group_event_type_id=group_event_type_id,
        host_user_id=host_user_id,
        title=title,
        start_time=start_utc,
        end_time=end_utc,
        timezone=timezone,
        status=status,
        participants=list(participants),
    )
    db.add(meeting)
    return meeting
