"""
Profile API

GET   /api/me                   -> authenticated caller {id, email}
GET   /api/profile              -> own profile (premium flag reconciled first)
PATCH /api/profile              -> update own editable fields
GET   /api/profiles/{username}  -> public view of another user
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from dailydoodle.core.auth import AuthUser, get_current_user
from dailydoodle.features.entitlements.service import entitlement_service
from dailydoodle.features.profiles.service import available_titles, profile_service
from dailydoodle.features.share.meta import profile_stats

router = APIRouter(prefix="/api", tags=["profile"])


class ProfilePatch(BaseModel):
    """Only editable fields are read; anything else in the body is dropped."""
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    avatar_type: Optional[str] = None
    avatar_icon: Optional[str] = None
    current_title: Optional[str] = None
    email_notifications: Optional[bool] = None
    onboarding_completed: Optional[bool] = None


def _profile_payload(user_id: str, email: Optional[str]) -> Dict[str, Any]:
    profile = profile_service.get_profile(user_id, email)
    return {
        "profile": profile.model_dump(mode="json"),
        "titles": available_titles(profile.is_admin, profile_service.doodle_count(user_id)),
    }


@router.get("/me")
async def get_me(user: AuthUser = Depends(get_current_user)):
    return {"id": user.id, "email": user.email}


@router.get("/profile")
async def get_profile(user: AuthUser = Depends(get_current_user)):
    return _profile_payload(user.id, user.email)


@router.patch("/profile")
async def update_profile(patch: ProfilePatch, user: AuthUser = Depends(get_current_user)):
    # titles check the stored flag, so bring it up to date first
    entitlement_service.reconcile_premium_flag(user.id)
    profile_service.update_profile(user.id, patch.model_dump(exclude_unset=True), user.email)
    return _profile_payload(user.id, user.email)


@router.get("/profiles/{username}")
async def get_public_profile(username: str):
    profile = profile_service.get_by_username(username)
    return {"profile": profile.public_view(), "stats": profile_stats(profile.id)}
