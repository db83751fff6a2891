from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.config import settings
from dailydoodle.core.database import get_db_session, streaks
from dailydoodle.core.eastern_time import days_between, month_key, today_est
from dailydoodle.core.logging import log_event
from dailydoodle.models.streak import StreakState

MAX_WRITE_ATTEMPTS = 3


def _row_to_state(row) -> StreakState:
    updated = row.updated_at
    if updated is not None and updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    return StreakState(
        user_id=row.user_id,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_viewed_date=row.last_viewed_date,
        streak_freeze_used_month=row.streak_freeze_used_month,
        streak_freeze_armed=bool(row.streak_freeze_armed),
        updated_at=updated,
    )


class StreakService:
    """Daily-view streak state machine, one conditional write per canonical day."""

    def __init__(self, grace_days: Optional[int] = None):
        self._grace_days = grace_days

    @property
    def grace_days(self) -> int:
        return settings.STREAK_GRACE_DAYS if self._grace_days is None else self._grace_days

    def get_state(self, user_id: str) -> StreakState:
        state = self._load(user_id)
        return state if state is not None else StreakState(user_id=user_id)

    def record_view(
        self,
        user_id: str,
        *,
        is_premium: bool,
        today: Optional[date] = None,
    ) -> Tuple[StreakState, List[dict]]:
        """Record today's prompt view. Repeat calls on the same day are no-ops."""
        day = today or today_est()

        for _ in range(MAX_WRITE_ATTEMPTS):
            current = self._load(user_id)
            next_state, emitted = self.advance(current or StreakState(user_id=user_id), day, is_premium)
            if next_state is None:
                return current or StreakState(user_id=user_id), []

            if self._write(current, next_state):
                break
            # another request advanced the row first; re-read and decide again
        else:
            return self.get_state(user_id), []

        from dailydoodle.features.badges.service import badge_service

        awarded = badge_service.evaluate(user_id, {"streak": next_state.current_streak})
        for badge_type in awarded:
            emitted.append({"type": "badge.awarded", "payload": {"userId": user_id, "badgeType": badge_type}})

        for event in emitted:
            log_event("info", event["type"], user_id=user_id, event_type=event["type"])
        return next_state, emitted

    def advance(self, state: StreakState, day: date, is_premium: bool) -> Tuple[Optional[StreakState], List[dict]]:
        """Pure transition. Returns (None, []) when nothing changes."""
        user_id = state.user_id
        now = datetime.now(timezone.utc)

        if state.last_viewed_date is None:
            started = replace(
                state,
                current_streak=1,
                longest_streak=max(1, state.longest_streak),
                last_viewed_date=day,
                updated_at=now,
            )
            return started, [_event("streak.incremented", user_id, day, started.current_streak)]

        gap = days_between(state.last_viewed_date, day)
        if gap <= 0:
            # same canonical day, or a clock older than what is stored
            return None, []

        emitted: List[dict] = []
        freeze_month = state.streak_freeze_used_month
        armed = state.streak_freeze_armed

        if gap <= self.grace_days:
            new_streak = state.current_streak + 1
        elif armed or (
            gap == self.grace_days + 1 and state.freeze_available(is_premium, month_key(day))
        ):
            new_streak = state.current_streak + 1
            # the forgiven gap is charged to the month it lands in
            freeze_month = month_key(day)
            armed = False
            emitted.append(
                {
                    "type": "streak.freeze_applied",
                    "payload": {"userId": user_id, "day": day.isoformat(), "gapDays": gap},
                }
            )
        else:
            new_streak = 1
            emitted.append(
                {
                    "type": "streak.reset",
                    "payload": {"userId": user_id, "day": day.isoformat(), "previousStreak": state.current_streak},
                }
            )

        next_state = replace(
            state,
            current_streak=new_streak,
            longest_streak=max(state.longest_streak, new_streak),
            last_viewed_date=day,
            streak_freeze_used_month=freeze_month,
            streak_freeze_armed=armed,
            updated_at=now,
        )
        if new_streak > 1:
            emitted.append(_event("streak.incremented", user_id, day, new_streak))
        return next_state, emitted

    def use_streak_freeze(self, user_id: str, *, is_premium: bool, today: Optional[date] = None) -> bool:
        """Spend this month's freeze; the next over-grace gap is forgiven."""
        if not is_premium:
            return False
        month = month_key(today or today_est())

        for _ in range(MAX_WRITE_ATTEMPTS):
            current = self._load(user_id)
            base = current or StreakState(user_id=user_id)
            if base.streak_freeze_armed or not base.freeze_available(is_premium, month):
                return False
            armed = replace(
                base,
                streak_freeze_used_month=month,
                streak_freeze_armed=True,
                updated_at=datetime.now(timezone.utc),
            )
            if self._write(current, armed, guard_month=True):
                log_event("info", "streak.freeze_armed", user_id=user_id, event_type="streak.freeze_armed")
                return True
        return False

    # Persistence ------------------------------------------------------
    def _load(self, user_id: str) -> Optional[StreakState]:
        with get_db_session() as session:
            row = session.execute(select(streaks).where(streaks.c.user_id == user_id)).first()
        return _row_to_state(row) if row else None

    def _write(self, previous: Optional[StreakState], state: StreakState, guard_month: bool = False) -> bool:
        """Insert, or update only if the row still holds what we read."""
        values = {
            "current_streak": state.current_streak,
            "longest_streak": state.longest_streak,
            "last_viewed_date": state.last_viewed_date,
            "streak_freeze_used_month": state.streak_freeze_used_month,
            "streak_freeze_armed": state.streak_freeze_armed,
            "updated_at": state.updated_at or datetime.now(timezone.utc),
        }
        if previous is None:
            try:
                with get_db_session() as session:
                    session.execute(streaks.insert().values(user_id=state.user_id, **values))
                return True
            except IntegrityError:
                return False

        conditions = [streaks.c.user_id == state.user_id]
        if previous.last_viewed_date is None:
            conditions.append(streaks.c.last_viewed_date.is_(None))
        else:
            conditions.append(streaks.c.last_viewed_date == previous.last_viewed_date)
        if guard_month:
            if previous.streak_freeze_used_month is None:
                conditions.append(streaks.c.streak_freeze_used_month.is_(None))
            else:
                conditions.append(streaks.c.streak_freeze_used_month == previous.streak_freeze_used_month)

        with get_db_session() as session:
            result = session.execute(streaks.update().where(*conditions).values(**values))
            return bool(result.rowcount)


def _event(kind: str, user_id: str, day: date, length: int) -> dict:
    return {
        "type": kind,
        "payload": {"userId": user_id, "streakDay": day.isoformat(), "currentStreak": length},
    }


# Singleton service used by routes
streak_service = StreakService()
