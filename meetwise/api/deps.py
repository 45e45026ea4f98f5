# meetwise/api/deps.py
"""
Request dependencies.

The API sits behind a gateway that authenticates users. A caller is treated
as user N only when it sends ``X-User-Id: N`` together with the shared
``X-API-Key``; everything else is an anonymous guest (who may still act on a
meeting through its participant token).
"""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.core.clock import Clock, system_clock
from meetwise.core.config import settings
from meetwise.core.errors import ErrorSeverity, UnauthorizedError, log_error
from meetwise.crud.dashboard_share import check_dashboard_access
from meetwise.services.notifications import NotificationDispatcher, dispatcher


def get_clock() -> Clock:
    return system_clock


def get_notifier() -> NotificationDispatcher:
    return dispatcher


def get_acting_user_id(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    x_user_id: Optional[int] = Header(None, alias="X-User-Id"),
) -> Optional[int]:
    if x_user_id is None:
        return None
    if not settings.API_KEY or not x_api_key or not secrets.compare_digest(x_api_key, settings.API_KEY):
        log_error(
            UnauthorizedError("API key validation failed"),
            {"endpoint": "acting_user", "has_key": bool(x_api_key)},
            ErrorSeverity.MEDIUM,
        )
        return None
    return x_user_id


def require_acting_user(acting_user_id: Optional[int] = Depends(get_acting_user_id)) -> int:
    if acting_user_id is None:
        raise UnauthorizedError("A valid X-API-Key and X-User-Id are required")
    return acting_user_id


async def require_owner_access(
    db: AsyncSession,
    *,
    acting_user_id: int,
    owner_user_id: int,
    required: str,
) -> None:
    """The owner or a delegate with at least ``required`` permission."""
    if not await check_dashboard_access(db, user_id=acting_user_id, owner_user_id=owner_user_id, required=required):
        raise UnauthorizedError(f"{required} access to this host is required")
