from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class StreakState:
    """
    Per-user daily-view streak. Dates are canonical (US/Eastern) calendar days.
    """

    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_viewed_date: Optional[date] = None
    streak_freeze_used_month: Optional[str] = None  # YYYY-MM
    streak_freeze_armed: bool = False
    updated_at: Optional[datetime] = None

    def freeze_available(self, is_premium: bool, current_month: str) -> bool:
        """One freeze per canonical month, premium only."""
        if not is_premium:
            return False
        return self.streak_freeze_used_month != current_month

    def to_dict(self, *, is_premium: bool, current_month: str) -> dict:
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_viewed_date": self.last_viewed_date.isoformat() if self.last_viewed_date else None,
            "streak_freeze_available": self.freeze_available(is_premium, current_month),
            "streak_freeze_used_month": self.streak_freeze_used_month,
            "streak_freeze_armed": self.streak_freeze_armed,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
