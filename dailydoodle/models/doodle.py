from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class Doodle:
    id: str
    user_id: str
    prompt_id: str
    prompt_title: str
    image_url: str
    upload_date: date
    created_at: datetime
    caption: Optional[str] = None
    is_public: bool = True
    likes_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "prompt_id": self.prompt_id,
            "prompt_title": self.prompt_title,
            "image_url": self.image_url,
            "caption": self.caption,
            "is_public": self.is_public,
            "likes_count": self.likes_count,
            "upload_date": self.upload_date.isoformat(),
            "created_at": self.created_at.isoformat(),
        }
