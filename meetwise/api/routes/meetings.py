# meetwise/api/routes/meetings.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.api.deps import (
    get_acting_user_id,
    get_clock,
    get_notifier,
    require_acting_user,
    require_owner_access,
)
from meetwise.core.clock import Clock
from meetwise.core.errors import HTTP_STATUS, NotFoundError, UnauthorizedError
from meetwise.core.timeutils import UTC
from meetwise.crud.meeting import get_meeting, list_host_meetings
from meetwise.db.session import get_session
from meetwise.schemas.meeting import (
    BookGroupMeetingRequest,
    BookingResult,
    BookMeetingRequest,
    CancelRequest,
    LockResult,
    LockSlotRequest,
    MeetingOut,
    OperationResult,
    RescheduleRequest,
)
from meetwise.services.access import can_act_on_meeting
from meetwise.services.booking import (
    book_group_meeting,
    book_meeting,
    cancel_meeting,
    lock_slot,
    reschedule_meeting,
)
from meetwise.services.notifications import NotificationDispatcher

router = APIRouter(tags=["meetings"])


def _result_response(result, success_status: int = 200) -> JSONResponse:
    status = success_status if result.success else HTTP_STATUS[result.error]
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))


@router.post("/slot-locks", response_model=LockResult)
async def create_slot_lock(
    payload: LockSlotRequest,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    result = await lock_slot(db, payload, clock=clock)
    return JSONResponse(status_code=201 if result.accepted else 409, content=result.model_dump(mode="json"))


@router.post("/meetings", response_model=BookingResult, status_code=201)
async def create_meeting(
    payload: BookMeetingRequest,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    result = await book_meeting(db, payload, clock=clock, notifier=notifier)
    return _result_response(result, 201)


@router.post("/group-meetings", response_model=BookingResult, status_code=201)
async def create_group_meeting(
    payload: BookGroupMeetingRequest,
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    result = await book_group_meeting(db, payload, clock=clock, notifier=notifier)
    return _result_response(result, 201)


@router.post("/meetings/{meeting_id}/reschedule", response_model=OperationResult)
async def reschedule(
    meeting_id: int,
    payload: RescheduleRequest,
    db: AsyncSession = Depends(get_session),
    acting_user_id: Optional[int] = Depends(get_acting_user_id),
    clock: Clock = Depends(get_clock),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    result = await reschedule_meeting(
        db, meeting_id, payload, acting_user_id=acting_user_id, clock=clock, notifier=notifier
    )
    return _result_response(result)


@router.post("/meetings/{meeting_id}/cancel", response_model=OperationResult)
async def cancel(
    meeting_id: int,
    payload: CancelRequest,
    db: AsyncSession = Depends(get_session),
    acting_user_id: Optional[int] = Depends(get_acting_user_id),
    clock: Clock = Depends(get_clock),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    result = await cancel_meeting(
        db, meeting_id, payload, acting_user_id=acting_user_id, clock=clock, notifier=notifier
    )
    return _result_response(result)


@router.get("/meetings/{meeting_id}", response_model=MeetingOut)
async def meeting_detail(
    meeting_id: int,
    token: Optional[str] = Query(None, description="Participant access token"),
    db: AsyncSession = Depends(get_session),
    acting_user_id: Optional[int] = Depends(get_acting_user_id),
):
    meeting = await get_meeting(db, meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")
    allowed = await can_act_on_meeting(
        db, meeting, acting_user_id=acting_user_id, participant_token=token, required="view"
    )
    if not allowed:
        raise UnauthorizedError("Not allowed to view this meeting")
    return meeting


@router.get("/users/{user_id}/meetings", response_model=List[MeetingOut])
async def host_meetings(
    user_id: int,
    start_date: Optional[date] = Query(None, description="UTC date, inclusive"),
    end_date: Optional[date] = Query(None, description="UTC date, exclusive"),
    status: Optional[List[str]] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    await require_owner_access(db, acting_user_id=acting_user_id, owner_user_id=user_id, required="view")

    def p(d: Optional[date]) -> Optional[datetime]:
        return datetime.combine(d, time.min, tzinfo=UTC) if d else None

    return await list_host_meetings(
        db,
        host_id=user_id,
        start_utc=p(start_date),
        end_utc=p(end_date),
        statuses=status,
        limit=limit,
    )
