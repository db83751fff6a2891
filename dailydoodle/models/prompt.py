from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Prompt:
    """A daily drawing prompt; `id` doubles as its publish date (YYYY-MM-DD)."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    tags: List[str] = field(default_factory=list)

    @property
    def publish_date(self) -> str:
        return self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "publish_date": self.publish_date,
            "tags": list(self.tags),
        }
