"""
Badge awards.

A badge is granted when its counter meets the threshold and the user does not
hold it yet. Rows are append-only; the unique (user_id, badge_type) constraint
turns concurrent double-awards into no-ops.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.database import badges, get_db_session
from dailydoodle.core.errors import ValidationError
from dailydoodle.core.logging import log_event
from dailydoodle.features.badges.catalog import (
    BADGE_CATALOG,
    MONTHLY_BADGE_DOODLE_TARGET,
    badges_for_counter,
    holiday_badge_for,
    monthly_badge_for,
)
from dailydoodle.features.email.service import get_email_service
from dailydoodle.features.notifications.service import notification_service
from dailydoodle.features.profiles.service import profile_service
from dailydoodle.models.badge import Badge


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class BadgeService:
    def list_badges(self, user_id: str) -> List[Badge]:
        with get_db_session() as session:
            rows = session.execute(
                select(badges).where(badges.c.user_id == user_id).order_by(badges.c.earned_at, badges.c.id)
            ).fetchall()
        return [Badge(user_id=r.user_id, badge_type=r.badge_type, earned_at=_aware(r.earned_at)) for r in rows]

    def held_types(self, user_id: str) -> set:
        with get_db_session() as session:
            rows = session.execute(select(badges.c.badge_type).where(badges.c.user_id == user_id)).fetchall()
        return {r[0] for r in rows}

    def has_badge(self, user_id: str, badge_type: str) -> bool:
        return badge_type in self.held_types(user_id)

    def award_badge(self, user_id: str, badge_type: str) -> bool:
        """Grant one badge. False if already held."""
        if badge_type not in BADGE_CATALOG:
            raise ValidationError(f"Unknown badge type: {badge_type}")
        return bool(self._award_many(user_id, [badge_type]))

    def evaluate(self, user_id: str, counters: Dict[str, int]) -> List[str]:
        """Award every badge whose counter threshold is met and not yet held.

        All crossings in one call land in a single transaction.
        """
        candidates: List[str] = []
        for counter, value in counters.items():
            for badge_type in badges_for_counter(counter, value or 0):
                if badge_type not in candidates:
                    candidates.append(badge_type)
        if not candidates:
            return []
        return self._award_many(user_id, candidates)

    def evaluate_upload_day(self, user_id: str, upload_day: date, doodles_in_month: int) -> List[str]:
        """Holiday badge for uploading on its date; monthly badge at the target count."""
        candidates = []
        holiday = holiday_badge_for(upload_day)
        if holiday is not None:
            candidates.append(holiday.id)
        monthly = monthly_badge_for(upload_day)
        if monthly is not None and doodles_in_month >= MONTHLY_BADGE_DOODLE_TARGET:
            candidates.append(monthly.id)
        if not candidates:
            return []
        return self._award_many(user_id, candidates)

    def sync_badges(self, user_id: str) -> List[str]:
        """Recompute every counter from the store and award anything missing."""
        from dailydoodle.features.social.service import social_service
        from dailydoodle.features.streaks.service import streak_service

        counters = social_service.get_user_stats(user_id)
        counters["streak"] = streak_service.get_state(user_id).current_streak
        awarded = self.evaluate(user_id, counters)
        if profile_service.is_premium_flag(user_id):
            awarded += self._award_many(user_id, ["premium_patron"])
        return awarded

    # Internal helpers -------------------------------------------------
    def _award_many(self, user_id: str, badge_types: Iterable[str]) -> List[str]:
        held = self.held_types(user_id)
        new_types = [b for b in badge_types if b not in held]
        if not new_types:
            return []

        earned_at = datetime.now(timezone.utc)
        try:
            with get_db_session() as session:
                for badge_type in new_types:
                    session.execute(
                        badges.insert().values(user_id=user_id, badge_type=badge_type, earned_at=earned_at)
                    )
        except IntegrityError:
            # Lost a race for at least one row: fall back to per-row inserts
            new_types = [b for b in new_types if self._insert_one(user_id, b, earned_at)]

        for badge_type in new_types:
            self._announce(user_id, badge_type)
        return new_types

    def _insert_one(self, user_id: str, badge_type: str, earned_at: datetime) -> bool:
        try:
            with get_db_session() as session:
                session.execute(badges.insert().values(user_id=user_id, badge_type=badge_type, earned_at=earned_at))
            return True
        except IntegrityError:
            return False

    def _announce(self, user_id: str, badge_type: str) -> None:
        badge = BADGE_CATALOG[badge_type]
        log_event("info", "badges.awarded", user_id=user_id, event_type="badge.awarded", extra={"badge_type": badge_type})
        notification_service.notify(
            user_id,
            "badge_earned",
            f"Badge unlocked: {badge.name}",
            badge.description,
            link=f"/badge/{badge_type}",
            metadata={"badge_type": badge_type},
        )
        profile = profile_service.get_profile_row(user_id)
        if profile and profile.email and profile.email_notifications:
            get_email_service().send_badge_unlock(profile.email, profile.username, badge.name, badge.description)


badge_service = BadgeService()
