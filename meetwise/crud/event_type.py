# meetwise/crud/event_type.py
from __future__ import annotations

import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.errors import InvalidInputError, NotFoundError
from meetwise.db.models.event_type import EventType, GroupEventType, GroupEventTypeHost
from meetwise.db.models.user import User
from meetwise.schemas.event_type import EventTypeCreate, EventTypeUpdate, GroupEventTypeCreate


def generate_booking_link(prefix: str = "evt") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:24]}"


async def get_event_type(db: AsyncSession, event_type_id: int) -> Optional[EventType]:
    return await db.get(EventType, event_type_id)


async def get_active_event_type(db: AsyncSession, event_type_id: int) -> EventType:
    et = await db.get(EventType, event_type_id)
    if et is None or not et.is_active:
        raise NotFoundError("Event type not found or inactive")
    return et


async def get_event_type_by_link(db: AsyncSession, booking_link: str) -> Optional[EventType]:
    res = await db.execute(
        sa.select(EventType).where(EventType.booking_link == booking_link, EventType.is_active.is_(True))
    )
    return res.scalar_one_or_none()


async def create_event_type(db: AsyncSession, *, user_id: int, data: EventTypeCreate) -> EventType:
    fields = data.model_dump(exclude={"booking_link"})
    obj = EventType(user_id=user_id, booking_link=data.booking_link or generate_booking_link("evt"), **fields)
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise InvalidInputError("booking_link is already taken")
    await db.refresh(obj)
    return obj


async def update_event_type(
    db: AsyncSession,
    *,
    event_type_id: int,
    user_id: int,
    data: EventTypeUpdate,
) -> EventType:
    obj = await db.get(EventType, event_type_id)
    if obj is None or obj.user_id != user_id:
        raise NotFoundError("Event type not found")

    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(obj, k, v)
    await db.commit()
    await db.refresh(obj)
    return obj


async def get_group_event_type(db: AsyncSession, group_event_type_id: int) -> Optional[GroupEventType]:
    return await db.get(GroupEventType, group_event_type_id)


async def get_active_group_event_type(db: AsyncSession, group_event_type_id: int) -> GroupEventType:
    group = await db.get(GroupEventType, group_event_type_id)
    if group is None or not group.is_active:
        raise NotFoundError("Group event type not found or inactive")
    if len(group.host_user_ids) < 2:
        raise NotFoundError("Group event type has fewer than two hosts")
    return group


async def get_group_event_type_by_link(db: AsyncSession, booking_link: str) -> Optional[GroupEventType]:
    res = await db.execute(
        sa.select(GroupEventType).where(
            GroupEventType.booking_link == booking_link, GroupEventType.is_active.is_(True)
        )
    )
    return res.scalar_one_or_none()


async def create_group_event_type(
    db: AsyncSession,
    *,
    created_by: int,
    data: GroupEventTypeCreate,
) -> GroupEventType:
    host_ids = sorted(set(data.host_user_ids) | {created_by})
    if len(host_ids) < 2:
        raise InvalidInputError("A group event needs at least two hosts")

    res = await db.execute(sa.select(User.id).where(User.id.in_(host_ids)))
    found = set(res.scalars().all())
    missing = [uid for uid in host_ids if uid not in found]
    if missing:
        raise NotFoundError(f"Unknown host user ids: {missing}")

    fields = data.model_dump(exclude={"booking_link", "host_user_ids"})
    group = GroupEventType(
        created_by=created_by,
        booking_link=data.booking_link or generate_booking_link("grp"),
        hosts=[GroupEventTypeHost(user_id=uid) for uid in host_ids],
        **fields,
    )
    db.add(group)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise InvalidInputError("booking_link is already taken")
    await db.refresh(group)
    return group
