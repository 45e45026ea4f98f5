# meetwise/services/slots.py
"""
Slot calculator.

Projects a host's weekly rules onto concrete dates in the host's time zone,
removes booked time (with the event type's buffers) and live slot locks, then
lays a duration grid over what is left. The same per-host building blocks are
used by the group calculator and by the booking re-validation.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.clock import Clock, system_clock
from meetwise.core.config import settings
from meetwise.core.errors import InternalError, InvalidRangeError, NotFoundError
from meetwise.core.timeutils import (
    UTC,
    date_range,
    day_of_week,
    get_zone,
    local_date,
    local_day_bounds,
    wall_clock_to_utc,
)
from meetwise.crud.availability import list_rules_for_users
from meetwise.crud.event_type import get_active_event_type
from meetwise.crud.meeting import list_blocking_meetings, list_meetings_of_type
from meetwise.crud.slot_lock import list_active_locks
from meetwise.crud.user import get_user, get_users
from meetwise.db.models.availability import AvailabilityRule
from meetwise.db.models.user import User
from meetwise.schemas.slot import Slot
from meetwise.services.intervals import (
    Interval,
    clip_intervals,
    grid_slots,
    merge_intervals,
    subtract_intervals,
)

logger = logging.getLogger(__name__)


@dataclass
class HostAvailability:
    """One host's time inside a UTC window."""

    user_id: int
    tz: ZoneInfo
    # rule windows, overlapping rules merged; slot grids start at these
    windows: list[Interval] = field(default_factory=list)
    # windows minus blocked rules, clipped to the requested range
    open: list[Interval] = field(default_factory=list)
    # buffered meetings
    booked: list[Interval] = field(default_factory=list)
    # other holders' live slot locks
    held: list[Interval] = field(default_factory=list)

    @property
    def free(self) -> list[Interval]:
        return subtract_intervals(self.open, self.booked + self.held)


@dataclass(frozen=True)
class Window:
    tz: ZoneInfo
    start_utc: datetime
    end_utc: datetime


def resolve_window(start_date: date, end_date: date, timezone: Optional[str]) -> Window:
    """Requested range as UTC instants: local midnight of start_date up to the day after end_date."""
    if start_date > end_date:
        raise InvalidRangeError("start_date must not be after end_date")
    span = (end_date - start_date).days + 1
    if span > settings.MAX_SLOT_RANGE_DAYS:
        raise InvalidRangeError(f"Date range may cover at most {settings.MAX_SLOT_RANGE_DAYS} days")
    try:
        tz = get_zone(timezone)
    except ValueError as e:
        raise InvalidRangeError(str(e)) from e
    start_utc, _ = local_day_bounds(start_date, tz)
    _, end_utc = local_day_bounds(end_date, tz)
    return Window(tz=tz, start_utc=start_utc, end_utc=end_utc)


def check_horizon(window: Window, now: datetime) -> None:
    """A range that starts past the booking horizon is refused; one crossing it is trimmed later."""
    latest = now + timedelta(days=settings.BOOKING_HORIZON_DAYS)
    if window.start_utc > latest:
        raise InvalidRangeError(
            f"Slots can be requested at most {settings.BOOKING_HORIZON_DAYS} days ahead"
        )


def host_zone(user: User) -> ZoneInfo:
    try:
        return get_zone(user.timezone)
    except ValueError:
        logger.warning("Invalid timezone %r for user %s, using UTC", user.timezone, user.id)
        return UTC


def project_rules(
    rules: Sequence[AvailabilityRule], tz: ZoneInfo, start_utc: datetime, end_utc: datetime
) -> tuple[list[Interval], list[Interval]]:
    """
    Rules → (available windows, blocked windows) as UTC intervals for every
    host-local date touching [start_utc, end_utc).
    """
    by_day: dict[int, list[AvailabilityRule]] = defaultdict(list)
    for rule in rules:
        by_day[rule.day_of_week].append(rule)

    available: list[Interval] = []
    blocked: list[Interval] = []
    first = local_date(start_utc, tz) - timedelta(days=1)
    last = local_date(end_utc, tz)
    for d in date_range(first, last):
        for rule in by_day.get(day_of_week(d), ()):
            interval = (wall_clock_to_utc(d, rule.start_time, tz), wall_clock_to_utc(d, rule.end_time, tz))
            if interval[0] >= end_utc or interval[1] <= start_utc:
                continue
            (available if rule.is_available else blocked).append(interval)
    return available, blocked


async def load_host_availability(
    db: AsyncSession,
    *,
    users: Sequence[User],
    start_utc: datetime,
    end_utc: datetime,
    buffer_before: timedelta,
    buffer_after: timedelta,
    now: datetime,
    include_locks: bool = True,
    exclude_meeting_id: Optional[int] = None,
    exclude_lock_id: Optional[str] = None,
) -> dict[int, HostAvailability]:
    rules_by_user = await list_rules_for_users(db, [u.id for u in users])

    result: dict[int, HostAvailability] = {}
    for user in users:
        tz = host_zone(user)
        available, blocked = project_rules(rules_by_user.get(user.id, []), tz, start_utc, end_utc)
        windows = merge_intervals(available, join_adjacent=False)
        opened = clip_intervals(subtract_intervals(available, blocked), start_utc, end_utc)

        meetings = await list_blocking_meetings(
            db,
            host_ids=[user.id],
            start_utc=start_utc - buffer_after,
            end_utc=end_utc + buffer_before,
            exclude_meeting_id=exclude_meeting_id,
        )
        booked = [(m.start_time - buffer_before, m.end_time + buffer_after) for m in meetings]

        held: list[Interval] = []
        if include_locks:
            locks = await list_active_locks(
                db,
                host_ids=[user.id],
                start_utc=start_utc,
                end_utc=end_utc,
                now=now,
                exclude_lock_id=exclude_lock_id,
            )
            held = [(lk.start_time, lk.end_time) for lk in locks]

        result[user.id] = HostAvailability(
            user_id=user.id, tz=tz, windows=windows, open=opened, booked=booked, held=held
        )
    return result


def apply_time_limits(
    candidates: list[Interval],
    *,
    now: datetime,
    minimum_notice_hours: int,
) -> list[Interval]:
    """Drop slots inside the notice window or past the booking horizon."""
    earliest = now + timedelta(hours=minimum_notice_hours)
    latest = now + timedelta(days=settings.BOOKING_HORIZON_DAYS)
    return [c for c in candidates if earliest <= c[0] <= latest]


async def apply_daily_limit(
    db: AsyncSession,
    candidates: list[Interval],
    *,
    daily_limit: Optional[int],
    host_id: int,
    tz: ZoneInfo,
    event_type_id: Optional[int] = None,
    group_event_type_id: Optional[int] = None,
) -> list[Interval]:
    """Keep at most ``daily_limit - already booked`` slots per host-local day, earliest first."""
    if not daily_limit or not candidates:
        return candidates

    first_day = local_date(candidates[0][0], tz)
    last_day = local_date(candidates[-1][0], tz)
    range_start, _ = local_day_bounds(first_day, tz)
    _, range_end = local_day_bounds(last_day, tz)
    booked = await list_meetings_of_type(
        db,
        host_id=host_id,
        event_type_id=event_type_id,
        group_event_type_id=group_event_type_id,
        start_utc=range_start,
        end_utc=range_end,
    )
    used: dict[date, int] = defaultdict(int)
    for m in booked:
        used[local_date(m.start_time, tz)] += 1

    kept: list[Interval] = []
    for slot in candidates:
        day = local_date(slot[0], tz)
        if used[day] < daily_limit:
            kept.append(slot)
            used[day] += 1
    return kept


def to_slots(intervals: list[Interval], tz: ZoneInfo) -> list[Slot]:
    return [
        Slot(
            slot_start=start,
            slot_end=end,
            slot_start_local=start.astimezone(tz),
            slot_end_local=end.astimezone(tz),
        )
        for start, end in intervals
    ]


async def compute_slots(
    db: AsyncSession,
    *,
    event_type_id: int,
    start_date: date,
    end_date: date,
    timezone: Optional[str] = None,
    clock: Clock = system_clock,
) -> list[Slot]:
    """
    Bookable slots of a single-host event type between two dates (inclusive,
    in ``timezone``), ascending by start.

    Raises NotFoundError, InvalidRangeError, or InternalError on storage failure.
    """
    window = resolve_window(start_date, end_date, timezone)
    now = clock.now()
    check_horizon(window, now)

    try:
        event_type = await get_active_event_type(db, event_type_id)
        host = await get_user(db, event_type.user_id)
        if host is None:
            raise NotFoundError("Host not found")

        hosts = await load_host_availability(
            db,
            users=[host],
            start_utc=window.start_utc,
            end_utc=window.end_utc,
            buffer_before=timedelta(minutes=event_type.buffer_before_minutes),
            buffer_after=timedelta(minutes=event_type.buffer_after_minutes),
            now=now,
        )
        availability = hosts[host.id]

        candidates = grid_slots(
            availability.windows, availability.free, timedelta(minutes=event_type.duration_minutes)
        )
        candidates = apply_time_limits(
            candidates, now=now, minimum_notice_hours=event_type.minimum_notice_hours
        )
        candidates = await apply_daily_limit(
            db,
            candidates,
            daily_limit=event_type.daily_limit,
            host_id=host.id,
            tz=availability.tz,
            event_type_id=event_type.id,
        )
    except SQLAlchemyError as e:
        logger.exception("Slot computation failed for event type %s", event_type_id)
        raise InternalError("Could not read availability, please retry") from e

    return to_slots(candidates, window.tz)


async def load_hosts(db: AsyncSession, host_ids: Sequence[int]) -> list[User]:
    users = await get_users(db, host_ids)
    if len(users) != len(set(host_ids)):
        raise NotFoundError("One or more hosts no longer exist")
    return users
