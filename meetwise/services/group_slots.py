# meetwise/services/group_slots.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.clock import Clock, system_clock
from meetwise.core.errors import InternalError
from meetwise.crud.event_type import get_active_group_event_type
from meetwise.schemas.slot import Slot
from meetwise.services.intervals import grid_slots, intersect_all
from meetwise.services.slots import (
    apply_daily_limit,
    apply_time_limits,
    check_horizon,
    load_host_availability,
    load_hosts,
    resolve_window,
    to_slots,
)

logger = logging.getLogger(__name__)


async def compute_group_slots(
    db: AsyncSession,
    *,
    group_event_type_id: int,
    start_date: date,
    end_date: date,
    timezone: Optional[str] = None,
    clock: Clock = system_clock,
) -> list[Slot]:
    """
    Slots when every host of a group event type is free at once.

    Each host contributes their own rules, time zone and bookings; the group
    type's buffers apply to all of them. A day without common free time simply
    yields no slots.
    """
    window = resolve_window(start_date, end_date, timezone)
    now = clock.now()
    check_horizon(window, now)

    try:
        group = await get_active_group_event_type(db, group_event_type_id)
        hosts = await load_hosts(db, group.host_user_ids)

        per_host = await load_host_availability(
            db,
            users=hosts,
            start_utc=window.start_utc,
            end_utc=window.end_utc,
            buffer_before=timedelta(minutes=group.buffer_before_minutes),
            buffer_after=timedelta(minutes=group.buffer_after_minutes),
            now=now,
        )
        ordered = [per_host[u.id] for u in hosts]
        common_free = intersect_all([h.free for h in ordered])
        common_windows = intersect_all([h.windows for h in ordered])

        candidates = grid_slots(common_windows, common_free, timedelta(minutes=group.duration_minutes))
        candidates = apply_time_limits(candidates, now=now, minimum_notice_hours=group.minimum_notice_hours)

        # the daily limit is counted on the owning (lowest id) host's calendar day
        owner = ordered[0]
        candidates = await apply_daily_limit(
            db,
            candidates,
            daily_limit=group.daily_limit,
            host_id=owner.user_id,
            tz=owner.tz,
            group_event_type_id=group.id,
        )
    except SQLAlchemyError as e:
        logger.exception("Group slot computation failed for group event type %s", group_event_type_id)
        raise InternalError("Could not read availability, please retry") from e

    logger.debug("Group event type %s: %d slots for %d hosts", group_event_type_id, len(candidates), len(hosts))
    return to_slots(candidates, window.tz)
