"""
Daily badge-availability job.

Announces time-limited badges to users who can still earn them:
- holiday badges the day before and the day of
- monthly badges on the first day and with seven days left

Each (user, badge) pair is announced at most once per canonical day.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select

from dailydoodle.core import idempotency
from dailydoodle.core.database import badges, get_db_session
from dailydoodle.core.eastern_time import days_between, today_est
from dailydoodle.core.logging import log_event
from dailydoodle.features.badges.catalog import HOLIDAY_BADGES, MONTHLY_BADGES, BadgeDefinition
from dailydoodle.features.notifications.service import notification_service
from dailydoodle.features.profiles.service import profile_service


def _holiday_message(badge: BadgeDefinition, days_until: int) -> Optional[Dict[str, str]]:
    if days_until == 1:
        return {
            "title": f"{badge.emoji} Special Badge Tomorrow!",
            "body": f'Tomorrow is {badge.holiday}! Upload a doodle to earn the exclusive "{badge.name}" badge.',
            "timing": "day_before",
        }
    if days_until == 0:
        return {
            "title": f"{badge.emoji} Today Only!",
            "body": f'It\'s {badge.holiday}! Upload a doodle today to earn the "{badge.name}" badge before midnight.',
            "timing": "day_of",
        }
    return None


def _monthly_message(badge: BadgeDefinition, today: date) -> Optional[Dict[str, str]]:
    month = badge.available_from.strftime("%B")
    if days_between(today, badge.available_from) == 0:
        return {
            "title": f"📅 {month} Challenge Begins!",
            "body": (
                f"The Dedicated Doodler challenge for {month} has started! "
                "Complete 15 doodles this month to earn this epic badge."
            ),
            "timing": "month_start",
        }
    if days_between(today, badge.available_until) == 7:
        return {
            "title": "⏰ One Week Left!",
            "body": f"Only 7 days left to earn the {month} Dedicated Doodler badge! Keep doodling!",
            "timing": "week_remaining",
        }
    return None


def due_announcements(today: date) -> List[tuple]:
    """(badge, message) pairs to announce on `today`."""
    due = []
    for badge in HOLIDAY_BADGES:
        message = _holiday_message(badge, days_between(today, badge.available_from))
        if message:
            due.append((badge, message))
    for badge in MONTHLY_BADGES:
        message = _monthly_message(badge, today)
        if message:
            due.append((badge, message))
    return due


def _held_by_user(user_ids: List[str], badge_types: List[str]) -> Dict[str, Set[str]]:
    held: Dict[str, Set[str]] = {}
    if not user_ids or not badge_types:
        return held
    with get_db_session() as session:
        rows = session.execute(
            select(badges.c.user_id, badges.c.badge_type).where(
                badges.c.user_id.in_(user_ids),
                badges.c.badge_type.in_(badge_types),
            )
        ).fetchall()
    for user_id, badge_type in rows:
        held.setdefault(user_id, set()).add(badge_type)
    return held


def run_badge_availability(today: Optional[date] = None) -> Dict[str, Any]:
    today = today or today_est()
    due = due_announcements(today)
    summary = {
        "holidayBadges": [b.id for b, _ in due if b.category == "holiday"],
        "monthlyBadges": [b.id for b, _ in due if b.category == "monthly"],
    }

    user_ids = profile_service.list_notifiable_user_ids() if due else []
    held = _held_by_user(user_ids, [b.id for b, _ in due])

    sent = 0
    for badge, message in due:
        for user_id in user_ids:
            if badge.id in held.get(user_id, ()):
                continue
            key = f"badge-available:{user_id}:{badge.id}:{today.isoformat()}"
            if idempotency.check_and_set(key, "badge_available"):
                continue
            notification_service.notify(
                user_id,
                "badge_available",
                message["title"],
                message["body"],
                link="/prompt",
                metadata={"badge_type": badge.id, "notification_timing": message["timing"]},
            )
            sent += 1

    log_event(
        "info",
        "badges.availability_run",
        event_type="cron.badge_notifications",
        extra={"date": today.isoformat(), "sent": sent, "recipients": len(user_ids)},
    )
    return {
        "success": True,
        "date": today.isoformat(),
        "notificationsSent": sent,
        "summary": summary,
    }
