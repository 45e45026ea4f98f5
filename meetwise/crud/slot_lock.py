# meetwise/crud/slot_lock.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.slot_lock import SlotLock


async def purge_expired(db: AsyncSession, *, now: datetime) -> int:
    """Delete locks whose TTL has passed. Does not commit."""
    res = await db.execute(sa.delete(SlotLock).where(SlotLock.expires_at <= now))
    return res.rowcount or 0


async def list_active_locks(
    db: AsyncSession,
    *,
    host_ids: Sequence[int],
    start_utc: datetime,
    end_utc: datetime,
    now: datetime,
    exclude_lock_id: Optional[str] = None,
) -> Sequence[SlotLock]:
    q = sa.select(SlotLock).where(
        SlotLock.user_id.in_(list(host_ids)),
        SlotLock.expires_at > now,
        SlotLock.start_time < end_utc,
        SlotLock.end_time > start_utc,
    )
    if exclude_lock_id:
        q = q.where(SlotLock.lock_id != exclude_lock_id)
    res = await db.execute(q.order_by(SlotLock.start_time))
    return res.scalars().all()


async def get_lock_rows(db: AsyncSession, lock_id: str) -> Sequence[SlotLock]:
    res = await db.execute(sa.select(SlotLock).where(SlotLock.lock_id == lock_id).order_by(SlotLock.user_id))
    return res.scalars().all()


def add_locks(
    db: AsyncSession,
    *,
    lock_id: str,
    host_ids: Sequence[int],
    start_utc: datetime,
    end_utc: datetime,
    expires_at: datetime,
    event_type_id: Optional[int] = None,
    group_event_type_id: Optional[int] = None,
) -> list[SlotLock]:
    """Stage one lock row per host. The caller commits."""
    rows = [
        SlotLock(
            lock_id=lock_id,
            user_id=host_id,
            event_type_id=event_type_id,
            group_event_type_id=group_event_type_id,
            start_time=start_utc,
            end_time=end_utc,
            expires_at=expires_at,
        )
        for host_id in sorted(set(host_ids))
    ]
    db.add_all(rows)
    return rows


async def release_lock(
    db: AsyncSession,
    lock_id: str,
    *,
    host_ids: Optional[Sequence[int]] = None,
    start_utc: Optional[datetime] = None,
) -> int:
    """
    Delete the rows of a lock (one per host for group locks). With ``host_ids``
    and ``start_utc`` only rows for those hosts at that start are removed.
    Does not commit.
    """
    q = sa.delete(SlotLock).where(SlotLock.lock_id == lock_id)
    if host_ids is not None:
        q = q.where(SlotLock.user_id.in_(list(host_ids)))
    if start_utc is not None:
        q = q.where(SlotLock.start_time == start_utc)
    res = await db.execute(q)
    return res.rowcount or 0
