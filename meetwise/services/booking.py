# meetwise/services/booking.py
"""
Booking transaction manager.

Every operation here is one database transaction. The check-then-insert
sequence is serialized per host by the database: ``lock_hosts`` bumps each
host row before the re-check, which is a row lock on PostgreSQL and the
write lock on SQLite, so bookings from other workers wait too. An in-process
asyncio lock per host sits in front of it to keep this worker's own requests
from queueing on the database. Locks are always taken in ascending host id
order, so a group booking and a single-host booking can't deadlock each other.

Booking operations return result objects instead of raising; notifications
are fired only after a successful commit.
"""
from __future__ import annotations

import asyncio
import re
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.clock import Clock, system_clock
from meetwise.core.config import settings
from meetwise.core.errors import (
    DailyLimitExceededError,
    ErrorSeverity,
    InternalError,
    InvalidInputError,
    InvalidRangeError,
    InvalidStateError,
    NoticeViolationError,
    NotFoundError,
    SchedulingError,
    SlotConflictError,
    log_error,
)
from meetwise.core.logging import get_logger
from meetwise.core.timeutils import ensure_utc, is_valid_zone, local_date, local_day_bounds
from meetwise.crud.event_type import (
    get_active_event_type,
    get_active_group_event_type,
    get_event_type,
    get_group_event_type,
)
from meetwise.crud.meeting import (
    add_meeting,
    get_meeting,
    list_blocking_meetings,
    list_meetings_of_type,
    new_access_token,
)
from meetwise.crud.slot_lock import (
    add_locks,
    list_active_locks,
    purge_expired,
    release_lock,
)
from meetwise.crud.user import lock_hosts
from meetwise.db.models.event_type import EventType, GroupEventType
from meetwise.db.models.meeting import MeetingParticipant, MeetingStatus, TERMINAL_STATUSES
from meetwise.db.models.user import User
from meetwise.schemas.meeting import (
    BookGroupMeetingRequest,
    BookingResult,
    BookMeetingRequest,
    CancelRequest,
    LockResult,
    LockSlotRequest,
    OperationResult,
    RescheduleRequest,
)
from meetwise.services.access import authorize_meeting_change
from meetwise.services.intervals import contains, overlaps
from meetwise.services.notifications import NotificationDispatcher, Operation, dispatcher
from meetwise.services.slots import host_zone, load_host_availability

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

BookableType = Union[EventType, GroupEventType]


class HostLockRegistry:
    """Per-host asyncio locks, recreated if the running event loop changes."""

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _lock_for(self, host_id: int) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._locks = {}
            self._loop = loop
        if host_id not in self._locks:
            self._locks[host_id] = asyncio.Lock()
        return self._locks[host_id]

    @asynccontextmanager
    async def hold(self, host_ids: Iterable[int]):
        async with AsyncExitStack() as stack:
            for host_id in sorted(set(host_ids)):
                await stack.enter_async_context(self._lock_for(host_id))
            yield


host_locks = HostLockRegistry()


# ---------- Input helpers ----------

def clean_guest(name: Optional[str], email: Optional[str]) -> tuple[str, str]:
    clean_name = " ".join((name or "").split())
    if not clean_name:
        raise InvalidInputError("participant_name is required")
    if len(clean_name) > 200:
        raise InvalidInputError("participant_name is too long")
    clean_email = (email or "").strip().lower()
    if not EMAIL_RE.match(clean_email) or len(clean_email) > 255:
        raise InvalidInputError("participant_email is not a valid email address")
    return clean_name, clean_email


def check_display_zone(timezone: Optional[str]) -> None:
    if timezone and not is_valid_zone(timezone):
        raise InvalidInputError(f"Unknown time zone: {timezone}")


def host_participant(host: User) -> MeetingParticipant:
    return MeetingParticipant(user_id=host.id, name=host.display_name, email=host.email, is_host=True)


# ---------- Shared validation ----------

async def validate_slot(
    db: AsyncSession,
    *,
    hosts: Sequence[User],
    bookable: BookableType,
    start: datetime,
    end: datetime,
    now: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> None:
    """
    Re-check a concrete range against notice, horizon, every host's bookings
    and availability, and the daily limit. Raises the matching SchedulingError.
    """
    if start < now + timedelta(hours=bookable.minimum_notice_hours):
        raise NoticeViolationError(
            f"Meetings must be booked at least {bookable.minimum_notice_hours} hours in advance"
        )
    if start > now + timedelta(days=settings.BOOKING_HORIZON_DAYS):
        raise InvalidRangeError(f"Meetings can be booked at most {settings.BOOKING_HORIZON_DAYS} days ahead")

    per_host = await load_host_availability(
        db,
        users=hosts,
        start_utc=start,
        end_utc=end,
        buffer_before=timedelta(minutes=bookable.buffer_before_minutes),
        buffer_after=timedelta(minutes=bookable.buffer_after_minutes),
        now=now,
        include_locks=False,
        exclude_meeting_id=exclude_meeting_id,
    )
    candidate = (start, end)
    for host in hosts:
        if any(overlaps(candidate, busy) for busy in per_host[host.id].booked):
            raise SlotConflictError()
    for host in hosts:
        if not contains(per_host[host.id].open, candidate):
            raise SlotConflictError("That time is outside the host's availability")

    if bookable.daily_limit:
        owner = hosts[0]
        tz = host_zone(owner)
        day_start, day_end = local_day_bounds(local_date(start, tz), tz)
        booked = await list_meetings_of_type(
            db,
            host_id=owner.id,
            event_type_id=bookable.id if isinstance(bookable, EventType) else None,
            group_event_type_id=bookable.id if isinstance(bookable, GroupEventType) else None,
            start_utc=day_start,
            end_utc=day_end,
            exclude_meeting_id=exclude_meeting_id,
        )
        if len(booked) >= bookable.daily_limit:
            raise DailyLimitExceededError()


async def _fail(db: AsyncSession, exc: Exception, operation: str, **context) -> SchedulingError:
    """Roll back and turn any failure into a SchedulingError for the result object."""
    await db.rollback()
    if isinstance(exc, SchedulingError):
        logger.info("booking_rejected", operation=operation, error=exc.code.value, message=exc.message, **context)
        return exc
    log_error(exc, {"operation": operation, **context}, ErrorSeverity.HIGH)
    return InternalError()


# ---------- LockSlot ----------

async def lock_slot(
    db: AsyncSession,
    request: LockSlotRequest,
    *,
    clock: Clock = system_clock,
) -> LockResult:
    """
    Place a short advisory hold on a slot. Never raises: a refused or failed
    lock is reported with ``accepted=False`` and a reason.
    """
    now = clock.now()
    start = ensure_utc(request.start_time)
    end = ensure_utc(request.end_time)

    def refuse(reason: str) -> LockResult:
        logger.info("slot_lock_refused", lock_id=request.lock_id, reason=reason)
        return LockResult(accepted=False, lock_id=request.lock_id, reason=reason)

    try:
        bookable: Optional[BookableType] = None
        if request.group_event_type_id is not None:
            bookable = await get_group_event_type(db, request.group_event_type_id)
            if bookable is not None and request.host_user_id not in bookable.host_user_ids:
                bookable = None
        elif request.event_type_id is not None:
            bookable = await get_event_type(db, request.event_type_id)
            if bookable is not None and bookable.user_id != request.host_user_id:
                bookable = None
        if bookable is None or not bookable.is_active:
            await db.commit()
            return refuse("event type not found")

        if end - start != timedelta(minutes=bookable.duration_minutes):
            await db.commit()
            return refuse("range must be exactly one slot long")

        host_ids = bookable.host_user_ids
        async with host_locks.hold(host_ids):
            await lock_hosts(db, host_ids)
            await purge_expired(db, now=now)
            # meetings widened by the event type's buffers
            blocking = await list_blocking_meetings(
                db,
                host_ids=host_ids,
                start_utc=start - timedelta(minutes=bookable.buffer_after_minutes),
                end_utc=end + timedelta(minutes=bookable.buffer_before_minutes),
            )
            if blocking:
                await db.commit()
                return refuse("slot is already booked")
            others = await list_active_locks(
                db, host_ids=host_ids, start_utc=start, end_utc=end, now=now, exclude_lock_id=request.lock_id
            )
            if others:
                await db.commit()
                return refuse("slot is held by someone else")

            # re-locking with the same id extends the hold
            await release_lock(db, request.lock_id)
            expires_at = now + timedelta(seconds=settings.SLOT_LOCK_TTL_SECONDS)
            add_locks(
                db,
                lock_id=request.lock_id,
                host_ids=host_ids,
                start_utc=start,
                end_utc=end,
                expires_at=expires_at,
                event_type_id=request.event_type_id if request.group_event_type_id is None else None,
                group_event_type_id=request.group_event_type_id,
            )
            await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log_error(e, {"operation": "lock_slot", "lock_id": request.lock_id}, ErrorSeverity.MEDIUM)
        return refuse("lock store unavailable")

    logger.info("slot_locked", lock_id=request.lock_id, hosts=host_ids, start=start.isoformat())
    return LockResult(accepted=True, lock_id=request.lock_id, expires_at=expires_at)


# ---------- BookMeeting / BookGroupMeeting ----------

async def book_meeting(
    db: AsyncSession,
    request: BookMeetingRequest,
    *,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> BookingResult:
    """Atomically validate and confirm a single-host booking."""
    now = clock.now()
    try:
        name, email = clean_guest(request.participant_name, request.participant_email)
        check_display_zone(request.timezone)
        start = ensure_utc(request.start_time)

        event_type = await get_active_event_type(db, request.event_type_id)
        if event_type.user_id != request.host_user_id:
            raise NotFoundError("Event type not found for this host")
        end = start + timedelta(minutes=event_type.duration_minutes)

        async with host_locks.hold([event_type.user_id]):
            hosts = await lock_hosts(db, [event_type.user_id])
            if not hosts:
                raise NotFoundError("Host not found")
            host = hosts[0]

            await validate_slot(db, hosts=hosts, bookable=event_type, start=start, end=end, now=now)

            token = new_access_token()
            meeting = add_meeting(
                db,
                host_user_id=host.id,
                event_type_id=event_type.id,
                start_utc=start,
                end_utc=end,
                status=MeetingStatus.CONFIRMED.value,
                timezone=request.timezone or host.timezone,
                title=event_type.name,
                participants=[
                    host_participant(host),
                    MeetingParticipant(
                        name=name, email=email, notes=request.participant_notes, access_token=token
                    ),
                ],
            )
            if request.lock_id:
                await release_lock(db, request.lock_id, host_ids=[host.id], start_utc=start)
            await db.flush()
            meeting_id = meeting.id
            await db.commit()
    except (SchedulingError, SQLAlchemyError) as e:
        error = await _fail(db, e, "book_meeting", event_type_id=request.event_type_id)
        return BookingResult.failed(error)

    logger.info("meeting_booked", meeting_id=meeting_id, host_id=host.id, start=start.isoformat())
    notifier.notify(meeting_id, Operation.BOOKED)
    return BookingResult(success=True, meeting_id=meeting_id, participant_token=token)


async def book_group_meeting(
    db: AsyncSession,
    request: BookGroupMeetingRequest,
    *,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> BookingResult:
    """Book a slot for every host of a group event type at once, or for none."""
    now = clock.now()
    try:
        name, email = clean_guest(request.participant_name, request.participant_email)
        check_display_zone(request.timezone)
        start = ensure_utc(request.start_time)

        group = await get_active_group_event_type(db, request.group_event_type_id)
        host_ids = group.host_user_ids
        end = start + timedelta(minutes=group.duration_minutes)

        async with host_locks.hold(host_ids):
            hosts = await lock_hosts(db, host_ids)
            if len(hosts) != len(host_ids):
                raise NotFoundError("One or more hosts no longer exist")

            await validate_slot(db, hosts=hosts, bookable=group, start=start, end=end, now=now)

            owner = hosts[0]
            token = new_access_token()
            participants = [host_participant(h) for h in hosts]
            participants.append(
                MeetingParticipant(name=name, email=email, notes=request.participant_notes, access_token=token)
            )
            meeting = add_meeting(
                db,
                host_user_id=owner.id,
                group_event_type_id=group.id,
                start_utc=start,
                end_utc=end,
                status=MeetingStatus.CONFIRMED.value,
                timezone=request.timezone or owner.timezone,
                title=group.name,
                participants=participants,
            )
            if request.lock_id:
                await release_lock(db, request.lock_id, host_ids=host_ids, start_utc=start)
            await db.flush()
            meeting_id = meeting.id
            await db.commit()
    except (SchedulingError, SQLAlchemyError) as e:
        error = await _fail(db, e, "book_group_meeting", group_event_type_id=request.group_event_type_id)
        return BookingResult.failed(error)

    logger.info("group_meeting_booked", meeting_id=meeting_id, hosts=host_ids, start=start.isoformat())
    notifier.notify(meeting_id, Operation.BOOKED)
    return BookingResult(success=True, meeting_id=meeting_id, participant_token=token)


# ---------- Reschedule / Cancel ----------

async def _load_bookable(db: AsyncSession, event_type_id: Optional[int], group_event_type_id: Optional[int]) -> BookableType:
    bookable: Optional[BookableType] = None
    if group_event_type_id is not None:
        bookable = await get_group_event_type(db, group_event_type_id)
    elif event_type_id is not None:
        bookable = await get_event_type(db, event_type_id)
    if bookable is None:
        raise NotFoundError("The meeting's event type no longer exists")
    return bookable


async def reschedule_meeting(
    db: AsyncSession,
    meeting_id: int,
    request: RescheduleRequest,
    *,
    acting_user_id: Optional[int] = None,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> OperationResult:
    """Move a meeting to a new start, re-validating it as a fresh booking that ignores itself."""
    now = clock.now()
    try:
        new_start = ensure_utc(request.new_start_time)
        meeting = await get_meeting(db, meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting not found")
        await authorize_meeting_change(
            db, meeting, acting_user_id=acting_user_id, participant_token=request.participant_token
        )
        if meeting.status in TERMINAL_STATUSES:
            raise InvalidStateError(f"A {meeting.status} meeting can't be rescheduled")

        host_ids = meeting.host_user_ids
        async with host_locks.hold(host_ids):
            hosts = await lock_hosts(db, host_ids)
            await db.refresh(meeting)
            if meeting.status in TERMINAL_STATUSES:
                raise InvalidStateError(f"A {meeting.status} meeting can't be rescheduled")

            bookable = await _load_bookable(db, meeting.event_type_id, meeting.group_event_type_id)
            new_end = new_start + timedelta(minutes=bookable.duration_minutes)
            await validate_slot(
                db,
                hosts=hosts,
                bookable=bookable,
                start=new_start,
                end=new_end,
                now=now,
                exclude_meeting_id=meeting.id,
            )
            old_start = meeting.start_time
            meeting.start_time = new_start
            meeting.end_time = new_end
            meeting.reminder_sent_at = None
            await db.commit()
    except (SchedulingError, SQLAlchemyError) as e:
        error = await _fail(db, e, "reschedule_meeting", meeting_id=meeting_id)
        return OperationResult.failed(error, meeting_id)

    logger.info(
        "meeting_rescheduled", meeting_id=meeting_id, old_start=old_start.isoformat(), new_start=new_start.isoformat()
    )
    notifier.notify(meeting_id, Operation.RESCHEDULED)
    return OperationResult(success=True, meeting_id=meeting_id)


async def cancel_meeting(
    db: AsyncSession,
    meeting_id: int,
    request: CancelRequest,
    *,
    acting_user_id: Optional[int] = None,
    clock: Clock = system_clock,
    notifier: NotificationDispatcher = dispatcher,
) -> OperationResult:
    """
    Cancel a meeting. Cancelling an already-cancelled meeting succeeds again
    with ``already_cancelled=True`` and sends nothing; a completed meeting
    can't be cancelled. Start and end times are never touched.
    """
    now = clock.now()
    try:
        meeting = await get_meeting(db, meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting not found")
        await authorize_meeting_change(
            db, meeting, acting_user_id=acting_user_id, participant_token=request.participant_token
        )

        async with host_locks.hold(meeting.host_user_ids):
            await lock_hosts(db, meeting.host_user_ids)
            await db.refresh(meeting)
            if meeting.status == MeetingStatus.COMPLETED.value:
                raise InvalidStateError("A completed meeting can't be cancelled")
            if meeting.status == MeetingStatus.CANCELLED.value:
                await db.rollback()
                return OperationResult(success=True, meeting_id=meeting_id, already_cancelled=True)

            meeting.status = MeetingStatus.CANCELLED.value
            meeting.cancelled_at = now
            await db.commit()
    except (SchedulingError, SQLAlchemyError) as e:
        error = await _fail(db, e, "cancel_meeting", meeting_id=meeting_id)
        return OperationResult.failed(error, meeting_id)

    logger.info("meeting_cancelled", meeting_id=meeting_id, reason=request.reason)
    notifier.notify(meeting_id, Operation.CANCELLED)
    return OperationResult(success=True, meeting_id=meeting_id)
