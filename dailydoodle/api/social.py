"""
Social API: doodles, likes, follows, shares, bookmarks, stats and the
activity heatmap.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dailydoodle.core.auth import AuthUser, get_current_user, get_optional_user
from dailydoodle.core.eastern_time import today_est
from dailydoodle.core.errors import ValidationError
from dailydoodle.features.activity.heatmap import build_heatmap
from dailydoodle.features.entitlements.service import entitlement_service
from dailydoodle.features.social.service import social_service

router = APIRouter(prefix="/api", tags=["social"])


class CreateDoodleRequest(BaseModel):
    prompt_id: Optional[str] = None
    prompt_title: Optional[str] = None
    image_url: Optional[str] = None
    caption: Optional[str] = None
    is_public: bool = True


class FollowRequest(BaseModel):
    user_id: Optional[str] = None


class ShareRequest(BaseModel):
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    platform: Optional[str] = None


class BookmarkRequest(BaseModel):
    prompt_id: Optional[str] = None


# Doodles ---------------------------------------------------------------
@router.post("/doodles", status_code=201)
def create_doodle(req: CreateDoodleRequest, user: AuthUser = Depends(get_current_user)):
    doodle, awarded = social_service.create_doodle(
        user.id,
        is_premium=entitlement_service.has_premium(user.id),
        prompt_id=req.prompt_id,
        prompt_title=req.prompt_title,
        image_url=req.image_url,
        caption=req.caption,
        is_public=req.is_public,
    )
    return {"doodle": doodle.to_dict(), "badgesAwarded": awarded}


@router.get("/doodles")
def list_doodles(
    user_id: Optional[str] = Query(None),
    prompt_id: Optional[str] = Query(None),
    limit: int = Query(100),
    viewer: Optional[AuthUser] = Depends(get_optional_user),
):
    if user_id:
        rows = social_service.list_user_doodles(user_id, viewer.id if viewer else None, limit=limit)
    elif prompt_id:
        rows = social_service.list_prompt_doodles(prompt_id, limit=limit)
    else:
        raise ValidationError("Provide user_id or prompt_id")
    return {"doodles": [d.to_dict() for d in rows]}


@router.get("/doodles/{doodle_id}")
def get_doodle(doodle_id: str, viewer: Optional[AuthUser] = Depends(get_optional_user)):
    doodle = social_service.get_visible_doodle(doodle_id, viewer.id if viewer else None)
    liked = social_service.has_liked(viewer.id, doodle_id) if viewer else False
    return {"doodle": doodle.to_dict(), "liked": liked}


@router.delete("/doodles/{doodle_id}")
def delete_doodle(doodle_id: str, user: AuthUser = Depends(get_current_user)):
    social_service.delete_doodle(user.id, doodle_id)
    return {"success": True}


@router.post("/doodles/{doodle_id}/like")
def like_doodle(doodle_id: str, user: AuthUser = Depends(get_current_user)):
    created = social_service.like_doodle(user.id, doodle_id)
    return {"liked": True, "created": created, "likes_count": social_service.get_doodle(doodle_id).likes_count}


@router.delete("/doodles/{doodle_id}/like")
def unlike_doodle(doodle_id: str, user: AuthUser = Depends(get_current_user)):
    removed = social_service.unlike_doodle(user.id, doodle_id)
    return {"liked": False, "removed": removed, "likes_count": social_service.get_doodle(doodle_id).likes_count}


# Follows ---------------------------------------------------------------
@router.post("/follows")
def follow(req: FollowRequest, user: AuthUser = Depends(get_current_user)):
    return {"following": True, "created": social_service.follow(user.id, req.user_id)}


@router.delete("/follows/{user_id}")
def unfollow(user_id: str, user: AuthUser = Depends(get_current_user)):
    return {"following": False, "removed": social_service.unfollow(user.id, user_id)}


@router.get("/follows/{user_id}")
def get_follows(user_id: str):
    return {
        "following": social_service.list_following(user_id),
        "followers": social_service.list_followers(user_id),
    }


# Shares ----------------------------------------------------------------
@router.post("/shares", status_code=201)
def record_share(req: ShareRequest, user: AuthUser = Depends(get_current_user)):
    awarded = social_service.record_share(user.id, req.target_type, req.target_id, req.platform)
    return {"success": True, "badgesAwarded": awarded}


# Bookmarks -------------------------------------------------------------
@router.get("/bookmarks")
def list_bookmarks(user: AuthUser = Depends(get_current_user)):
    return {"bookmarks": social_service.list_bookmarks(user.id)}


@router.post("/bookmarks")
def add_bookmark(req: BookmarkRequest, user: AuthUser = Depends(get_current_user)):
    added, awarded = social_service.add_bookmark(
        user.id, req.prompt_id, is_premium=entitlement_service.has_premium(user.id)
    )
    return {"added": added, "badgesAwarded": awarded}


@router.delete("/bookmarks/{prompt_id}")
def remove_bookmark(prompt_id: str, user: AuthUser = Depends(get_current_user)):
    return {"removed": social_service.remove_bookmark(user.id, prompt_id)}


# Stats and activity ----------------------------------------------------
@router.get("/stats")
def my_stats(user: AuthUser = Depends(get_current_user)):
    return {"stats": social_service.get_user_stats(user.id)}


@router.get("/stats/{user_id}")
def user_stats(user_id: str):
    return {"stats": social_service.get_user_stats(user_id)}


@router.get("/activity/{user_id}")
def activity(user_id: str):
    """Year-to-date heatmap of public doodles."""
    return build_heatmap(social_service.doodle_dates(user_id, public_only=True), today_est())
