# meetwise/crud/availability.py
from __future__ import annotations

from typing import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.availability import AvailabilityRule
from meetwise.schemas.availability import AvailabilityRuleIn


async def list_rules(db: AsyncSession, user_id: int) -> Sequence[AvailabilityRule]:
    q = (
        sa.select(AvailabilityRule)
        .where(AvailabilityRule.user_id == user_id)
        .order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time, AvailabilityRule.id)
    )
    res = await db.execute(q)
    return res.scalars().all()


async def list_rules_for_users(db: AsyncSession, user_ids: Iterable[int]) -> dict[int, list[AvailabilityRule]]:
    ids = sorted(set(user_ids))
    by_user: dict[int, list[AvailabilityRule]] = {uid: [] for uid in ids}
    if not ids:
        return by_user
    q = (
        sa.select(AvailabilityRule)
        .where(AvailabilityRule.user_id.in_(ids))
        .order_by(AvailabilityRule.user_id, AvailabilityRule.day_of_week, AvailabilityRule.start_time)
    )
    res = await db.execute(q)
    for rule in res.scalars().all():
        by_user[rule.user_id].append(rule)
    return by_user


async def replace_rules(
    db: AsyncSession,
    *,
    user_id: int,
    rules: Sequence[AvailabilityRuleIn],
) -> Sequence[AvailabilityRule]:
    """
    Replace every rule of the host in one transaction (delete all, reinsert).
    Concurrent editors: last writer wins.
    """
    for rule in rules:
        if rule.start_time >= rule.end_time:
            raise ValueError("end_time must be after start_time")

    await db.execute(sa.delete(AvailabilityRule).where(AvailabilityRule.user_id == user_id))
    db.add_all(
        AvailabilityRule(
            user_id=user_id,
            day_of_week=r.day_of_week,
            start_time=r.start_time,
            end_time=r.end_time,
            is_available=r.is_available,
        )
        for r in rules
    )
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await list_rules(db, user_id)
