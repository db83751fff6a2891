"""
Badge API

GET  /api/badges/catalog              -> every badge definition
GET  /api/badges                      -> caller's earned badges
POST /api/badges/sync                 -> recompute counters, award anything missing
GET  /api/cron/badge-notifications    -> daily availability job (CRON_SECRET bearer)
"""

import hmac
import os

from fastapi import APIRouter, Depends, Request

from dailydoodle.core.auth import AuthUser, get_current_user
from dailydoodle.core.config import settings
from dailydoodle.core.errors import AuthenticationError
from dailydoodle.features.badges.availability import run_badge_availability
from dailydoodle.features.badges.catalog import BADGE_CATALOG, get_badge
from dailydoodle.features.badges.service import badge_service

router = APIRouter(prefix="/api", tags=["badges"])


def _with_definition(badge) -> dict:
    data = badge.to_dict()
    definition = get_badge(badge.badge_type)
    data["badge"] = definition.to_dict() if definition else None
    return data


@router.get("/badges/catalog")
def get_catalog():
    return {"badges": [b.to_dict() for b in BADGE_CATALOG.values()]}


@router.get("/badges")
def list_my_badges(user: AuthUser = Depends(get_current_user)):
    return {"badges": [_with_definition(b) for b in badge_service.list_badges(user.id)]}


@router.post("/badges/sync")
def sync_my_badges(user: AuthUser = Depends(get_current_user)):
    return {"awarded": badge_service.sync_badges(user.id)}


def _require_cron_secret(request: Request) -> None:
    secret = os.getenv("CRON_SECRET") or settings.CRON_SECRET
    if not secret:
        if settings.ENV.lower() == "production":
            raise AuthenticationError("Unauthorized")
        return
    provided = request.headers.get("Authorization", "")
    if not hmac.compare_digest(provided, f"Bearer {secret}"):
        raise AuthenticationError("Unauthorized")


@router.get("/cron/badge-notifications")
def badge_notifications_cron(request: Request):
    _require_cron_secret(request)
    return run_badge_availability()
