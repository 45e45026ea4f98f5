# meetwise/crud/user.py
from typing import Optional, Sequence
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.user import User


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def get_users(db: AsyncSession, user_ids: Sequence[int]) -> list[User]:
    if not user_ids:
        return []
    res = await db.execute(sa.select(User).where(User.id.in_(list(user_ids))).order_by(User.id))
    return list(res.scalars().all())


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    full_name: Optional[str] = None,
    timezone: str = "UTC",
) -> User:
    obj = User(username=username, email=email, full_name=full_name, timezone=timezone)
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


async def lock_hosts(db: AsyncSession, user_ids: Sequence[int]) -> list[User]:
    """
    Write-lock the host users (ascending id) for the rest of the transaction.

    Every booking, reschedule and cancel bumps ``booking_seq`` on its hosts
    before re-checking the slot, so concurrent transactions for a host run
    their check-then-insert one at a time. On PostgreSQL the UPDATE holds the
    row lock until commit; on SQLite it takes the database write lock and a
    second writer waits in the busy handler.
    """
    ids = sorted(set(user_ids))
    for user_id in ids:
        await db.execute(
            sa.update(User)
            .where(User.id == user_id)
            .values(booking_seq=User.booking_seq + 1)
            .execution_options(synchronize_session=False)
        )
    res = await db.execute(sa.select(User).where(User.id.in_(ids)).order_by(User.id))
    return list(res.scalars().all())
