# meetwise/services/access.py
"""
Who may act on a meeting: one of its hosts, a delegate a host shared their
dashboard with, or a holder of a participant token of that meeting.
"""
from __future__ import annotations

import secrets
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.errors import UnauthorizedError
from meetwise.crud.dashboard_share import check_dashboard_access
from meetwise.db.models.meeting import Meeting, MeetingParticipant


def participant_for_token(meeting: Meeting, token: Optional[str]) -> Optional[MeetingParticipant]:
    if not token:
        return None
    for participant in meeting.participants:
        if participant.access_token and secrets.compare_digest(participant.access_token, token):
            return participant
    return None


async def can_act_on_meeting(
    db: AsyncSession,
    meeting: Meeting,
    *,
    acting_user_id: Optional[int] = None,
    participant_token: Optional[str] = None,
    required: str = "edit",
) -> bool:
    if participant_for_token(meeting, participant_token) is not None:
        return True
    if acting_user_id is None:
        return False
    for host_id in meeting.host_user_ids:
        if await check_dashboard_access(db, user_id=acting_user_id, owner_user_id=host_id, required=required):
            return True
    return False


async def authorize_meeting_change(
    db: AsyncSession,
    meeting: Meeting,
    *,
    acting_user_id: Optional[int] = None,
    participant_token: Optional[str] = None,
    required: str = "edit",
) -> None:
    """Raise UnauthorizedError unless the caller may act on the meeting."""
    allowed = await can_act_on_meeting(
        db,
        meeting,
        acting_user_id=acting_user_id,
        participant_token=participant_token,
        required=required,
    )
    if not allowed:
        raise UnauthorizedError()
