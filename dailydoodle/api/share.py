"""
Share endpoints for crawlers.

/api/meta/*  HTML pages with Open Graph + Twitter tags (redirect browsers)
/api/og/*    1200x630 PNG cards
"""

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, Response

from dailydoodle.core.config import settings
from dailydoodle.features.profiles.service import profile_service
from dailydoodle.features.share import images
from dailydoodle.features.share.meta import (
    CACHE_CONTROL,
    badge_page,
    doodle_page,
    profile_page,
    prompt_page,
)
from dailydoodle.features.social.service import social_service

router = APIRouter(prefix="/api", tags=["share"])


def _base_url(request: Request) -> str:
    return (settings.PUBLIC_BASE_URL or str(request.base_url)).rstrip("/")


def _html(page) -> HTMLResponse:
    return HTMLResponse(page.render(), headers={"Cache-Control": CACHE_CONTROL})


def _png(data: bytes) -> Response:
    return Response(content=data, media_type="image/png", headers={"Cache-Control": CACHE_CONTROL})


@router.get("/meta/prompt")
def meta_prompt(request: Request, date: Optional[str] = Query(None)):
    return _html(prompt_page(_base_url(request), date))


@router.get("/meta/doodle")
def meta_doodle(request: Request, id: Optional[str] = Query(None)):
    return _html(doodle_page(_base_url(request), id))


@router.get("/meta/profile")
def meta_profile(request: Request, username: Optional[str] = Query(None), id: Optional[str] = Query(None)):
    return _html(profile_page(_base_url(request), username=username, user_id=id))


@router.get("/meta/badge")
def meta_badge(request: Request, id: Optional[str] = Query(None)):
    return _html(badge_page(_base_url(request), id))


@router.get("/og/prompt")
def og_prompt(
    title: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
):
    return _png(images.render_prompt_card(title, category, date))


@router.get("/og/profile")
def og_profile(
    username: Optional[str] = Query(None),
    doodles: int = Query(0),
    streak: int = Query(0),
    badges: int = Query(0),
    title: Optional[str] = Query(None),
    premium: bool = Query(False),
):
    return _png(images.render_profile_card(username, doodles, streak, badges, title, premium))


@router.get("/og/doodle")
def og_doodle(
    id: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    username: Optional[str] = Query(None),
):
    caption = None
    if id:
        doodle = social_service.get_public_doodle(id)
        owner = profile_service.get_profile_row(doodle.user_id)
        title = doodle.prompt_title
        username = owner.username if owner else None
        caption = doodle.caption
    return _png(images.render_doodle_card(title, username, caption))
