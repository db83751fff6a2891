from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    avatar_type: str = "initial"
    avatar_icon: Optional[str] = None
    is_premium: bool = False
    premium_purchased_at: Optional[datetime] = None
    is_admin: bool = False
    current_title: Optional[str] = None
    email_notifications: bool = True
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public_view(self) -> dict:
        """Fields safe to show other users."""
        return {
            "id": self.id,
            "username": self.username,
            "avatar_type": self.avatar_type,
            "avatar_icon": self.avatar_icon,
            "is_premium": self.is_premium,
            "current_title": self.current_title,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
