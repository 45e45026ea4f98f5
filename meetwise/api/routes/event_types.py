# meetwise/api/routes/event_types.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.api.deps import require_acting_user, require_owner_access
from meetwise.core.errors import NotFoundError
from meetwise.crud.event_type import (
    create_event_type,
    create_group_event_type,
    get_event_type,
    get_event_type_by_link,
    get_group_event_type_by_link,
    update_event_type,
)
from meetwise.db.session import get_session
from meetwise.schemas.event_type import (
    EventTypeCreate,
    EventTypeOut,
    EventTypeUpdate,
    GroupEventTypeCreate,
    GroupEventTypeOut,
)

router = APIRouter(tags=["event-types"])


@router.post("/event-types", response_model=EventTypeOut, status_code=201)
async def post_event_type(
    payload: EventTypeCreate,
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    return await create_event_type(db, user_id=acting_user_id, data=payload)


@router.patch("/event-types/{event_type_id}", response_model=EventTypeOut)
async def patch_event_type(
    event_type_id: int,
    payload: EventTypeUpdate,
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    existing = await get_event_type(db, event_type_id)
    if existing is None:
        raise NotFoundError("Event type not found")
    await require_owner_access(db, acting_user_id=acting_user_id, owner_user_id=existing.user_id, required="edit")
    return await update_event_type(db, event_type_id=event_type_id, user_id=existing.user_id, data=payload)


@router.post("/group-event-types", response_model=GroupEventTypeOut, status_code=201)
async def post_group_event_type(
    payload: GroupEventTypeCreate,
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    return await create_group_event_type(db, created_by=acting_user_id, data=payload)


# -------- Public booking pages --------

@router.get("/book/{booking_link}", response_model=EventTypeOut)
async def event_type_by_link(booking_link: str, db: AsyncSession = Depends(get_session)):
    event_type = await get_event_type_by_link(db, booking_link)
    if event_type is None:
        raise NotFoundError("Booking link not found")
    return event_type


@router.get("/book-group/{booking_link}", response_model=GroupEventTypeOut)
async def group_event_type_by_link(booking_link: str, db: AsyncSession = Depends(get_session)):
    group = await get_group_event_type_by_link(db, booking_link)
    if group is None:
        raise NotFoundError("Booking link not found")
    return group
