# meetwise/api/routes/slots.py
from __future__ import annotations

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.api.deps import get_clock
from meetwise.core.clock import Clock
from meetwise.db.session import get_session
from meetwise.schemas.slot import Slot
from meetwise.services.group_slots import compute_group_slots
from meetwise.services.slots import compute_slots

router = APIRouter(tags=["slots"])


@router.get("/event-types/{event_type_id}/slots", response_model=List[Slot])
async def get_slots(
    event_type_id: int,
    start_date: date = Query(..., description="First day, in `timezone`"),
    end_date: date = Query(..., description="Last day (inclusive), in `timezone`"),
    timezone: str = Query("UTC", description="IANA zone of the requester"),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    return await compute_slots(
        db,
        event_type_id=event_type_id,
        start_date=start_date,
        end_date=end_date,
        timezone=timezone,
        clock=clock,
    )


@router.get("/group-event-types/{group_event_type_id}/slots", response_model=List[Slot])
async def get_group_slots(
    group_event_type_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    timezone: str = Query("UTC"),
    db: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    return await compute_group_slots(
        db,
        group_event_type_id=group_event_type_id,
        start_date=start_date,
        end_date=end_date,
        timezone=timezone,
        clock=clock,
    )
