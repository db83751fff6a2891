from __future__ import annotations

from fastapi import APIRouter, Depends

from dailydoodle.core.auth import AuthUser, get_current_user
from dailydoodle.core.eastern_time import month_key, today_est
from dailydoodle.features.entitlements.service import entitlement_service
from dailydoodle.features.streaks.service import streak_service

router = APIRouter(prefix="/api/streak", tags=["streaks"])


def _state_payload(state, is_premium: bool) -> dict:
    return state.to_dict(is_premium=is_premium, current_month=month_key(today_est()))


@router.get("")
def get_streak(user: AuthUser = Depends(get_current_user)):
    """Current streak state for the caller."""
    is_premium = entitlement_service.has_premium(user.id)
    return {"streak": _state_payload(streak_service.get_state(user.id), is_premium)}


@router.post("/view")
def record_view(user: AuthUser = Depends(get_current_user)):
    """Record today's prompt view (once per canonical day)."""
    is_premium = entitlement_service.has_premium(user.id)
    state, emitted = streak_service.record_view(user.id, is_premium=is_premium)
    return {"streak": _state_payload(state, is_premium), "emitted": emitted}


@router.post("/freeze")
def use_freeze(user: AuthUser = Depends(get_current_user)):
    """Spend this month's streak freeze (premium)."""
    is_premium = entitlement_service.has_premium(user.id)
    applied = streak_service.use_streak_freeze(user.id, is_premium=is_premium)
    state = streak_service.get_state(user.id)
    return {"applied": applied, "streak": _state_payload(state, is_premium)}
