"""
Billing provider protocol.

Defines the interface the checkout, verification and webhook flows rely on,
so the Stripe specifics stay in stripe_provider.py.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class CheckoutSession:
    session_id: str
    url: Optional[str]


@dataclass
class CheckoutSessionStatus:
    """A retrieved checkout session, reduced to what verification reports."""
    session_id: str
    payment_status: Optional[str]  # paid, unpaid, no_payment_required
    status: Optional[str]  # open, complete, expired
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    customer_id: Optional[str] = None
    payment_intent: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


@dataclass
class BillingWebhookEvent:
    """A verified webhook event."""
    event_id: str
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)  # event.data.object


class BillingProvider(Protocol):
    def create_checkout_session(
        self,
        user_id: str,
        user_email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """
        Create a one-time payment checkout session for lifetime premium.

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        """
        Raises:
            BillingProviderError: If the provider call fails
        """
        ...

    def verify_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookEvent:
        """
        Verify webhook signature against the raw body, then parse it.

        Raises:
            BillingWebhookError: If signature invalid or parsing fails
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook verification errors."""
    pass
