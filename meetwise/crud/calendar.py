# meetwise/crud/calendar.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.calendar import CalendarConnection


async def get_active_connection(
    db: AsyncSession, *, user_id: int, provider: str = "google"
) -> Optional[CalendarConnection]:
    res = await db.execute(
        sa.select(CalendarConnection)
        .where(
            CalendarConnection.user_id == user_id,
            CalendarConnection.provider == provider,
            CalendarConnection.is_active.is_(True),
        )
        .order_by(CalendarConnection.id)
        .limit(1)
    )
    return res.scalar_one_or_none()


async def create_connection(
    db: AsyncSession,
    *,
    user_id: int,
    provider: str = "google",
    calendar_id: str = "primary",
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None,
    token_expires_at: Optional[datetime] = None,
) -> CalendarConnection:
    obj = CalendarConnection(
        user_id=user_id,
        provider=provider,
        calendar_id=calendar_id,
        access_token=access_token,
        refresh_token=refresh_token,
        token_expires_at=token_expires_at,
    )
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj
