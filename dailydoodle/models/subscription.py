from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class SubscriptionRecord:
    """Authoritative premium entitlement, keyed user:{user_id}:premium.

    Written once by the payment webhook; never downgraded.
    """

    user_id: str
    stripe_session_id: str
    purchased_at: str  # ISO-8601 UTC
    status: str = "active"
    stripe_customer_id: Optional[str] = None
    payment_intent: Optional[str] = None
    email: Optional[str] = None
    amount: Optional[int] = None  # minor units
    currency: Optional[str] = None

    @staticmethod
    def key_for(user_id: str) -> str:
        return f"user:{user_id}:premium"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SubscriptionRecord":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in fields})
