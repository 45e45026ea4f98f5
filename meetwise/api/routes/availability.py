# meetwise/api/routes/availability.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from meetwise.api.deps import require_acting_user, require_owner_access
from meetwise.core.errors import InvalidInputError, NotFoundError
from meetwise.crud.availability import list_rules, replace_rules
from meetwise.crud.user import get_user
from meetwise.db.session import get_session
from meetwise.schemas.availability import AvailabilityReplace, AvailabilityRuleOut

router = APIRouter(prefix="/users/{user_id}/availability", tags=["availability"])


@router.get("", response_model=List[AvailabilityRuleOut])
async def get_availability(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    await require_owner_access(db, acting_user_id=acting_user_id, owner_user_id=user_id, required="view")
    return await list_rules(db, user_id)


@router.put("", response_model=List[AvailabilityRuleOut])
async def put_availability(
    user_id: int,
    payload: AvailabilityReplace,
    db: AsyncSession = Depends(get_session),
    acting_user_id: int = Depends(require_acting_user),
):
    await require_owner_access(db, acting_user_id=acting_user_id, owner_user_id=user_id, required="edit")
    if await get_user(db, user_id) is None:
        raise NotFoundError("User not found")
    try:
        return await replace_rules(db, user_id=user_id, rules=payload.rules)
    except ValueError as e:
        raise InvalidInputError(str(e))
