# meetwise/crud/dashboard_share.py
from typing import Optional
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.db.models.dashboard_share import DashboardShare, PERMISSION_LEVELS

_RANK = {"view": 1, "edit": 2}


async def get_permission(db: AsyncSession, *, user_id: int, owner_user_id: int) -> Optional[str]:
    """'edit' for the owner, the shared level for a delegate, else None."""
    if user_id == owner_user_id:
        return "edit"
    res = await db.execute(
        sa.select(DashboardShare.permission_level).where(
            DashboardShare.owner_user_id == owner_user_id,
            DashboardShare.shared_with_user_id == user_id,
        )
    )
    return res.scalar_one_or_none()


async def check_dashboard_access(
    db: AsyncSession,
    *,
    user_id: int,
    owner_user_id: int,
    required: str = "view",
) -> bool:
    level = await get_permission(db, user_id=user_id, owner_user_id=owner_user_id)
    if level is None:
        return False
    return _RANK[level] >= _RANK[required]


async def grant_access(
    db: AsyncSession,
    *,
    owner_user_id: int,
    shared_with_user_id: int,
    permission_level: str = "view",
) -> DashboardShare:
    if permission_level not in PERMISSION_LEVELS:
        raise ValueError(f"permission_level must be one of {PERMISSION_LEVELS}")
    if owner_user_id == shared_with_user_id:
        raise ValueError("cannot share a dashboard with its owner")

    res = await db.execute(
        sa.select(DashboardShare).where(
            DashboardShare.owner_user_id == owner_user_id,
            DashboardShare.shared_with_user_id == shared_with_user_id,
        )
    )
    share = res.scalar_one_or_none()
    if share is None:
        share = DashboardShare(owner_user_id=owner_user_id, shared_with_user_id=shared_with_user_id)
        db.add(share)
    share.permission_level = permission_level
    await db.commit()
    await db.refresh(share)
    return share
