from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Badge:
    user_id: str
    badge_type: str
    earned_at: datetime

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "badge_type": self.badge_type,
            "earned_at": self.earned_at.isoformat(),
        }
