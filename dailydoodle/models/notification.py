from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

NOTIFICATION_TYPES = (
    "like_received",
    "follower_gained",
    "prompt_idea_reviewed",
    "badge_earned",
    "badge_available",
    "streak_reminder",
    "support_reply",
    "ticket_closed",
    "system_announcement",
    "admin_alert",
)


@dataclass
class Notification:
    id: int
    user_id: str
    type: str
    title: str
    body: str
    created_at: datetime
    link: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    read_at: Optional[datetime] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "link": self.link,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "read_at": self.read_at.isoformat() if self.read_at else None,
        }
