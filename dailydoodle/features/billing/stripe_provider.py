"""
Stripe billing provider implementation.

Implements the BillingProvider protocol using the Stripe API: one-time
payment checkout for lifetime premium, session retrieval, and webhook
signature verification.
"""
import os
from typing import Dict, Any, Optional
import stripe

from dailydoodle.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookEvent,
    CheckoutSession,
    CheckoutSessionStatus,
)

PRODUCT_LIFETIME_PREMIUM = "lifetime_premium"


def _field(obj: Any, name: str) -> Any:
    """Read a key from a plain dict or a StripeObject."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY env var)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET env var)
        """
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY")
        self.webhook_secret = webhook_secret or os.getenv("STRIPE_WEBHOOK_SECRET")

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_checkout_session(
        self,
        user_id: str,
        user_email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Create a payment-mode checkout session carrying the user id both ways."""
        separator = "&" if "?" in success_url else "?"
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=f"{success_url}{separator}session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
                customer_email=user_email,
                client_reference_id=user_id,
                metadata={
                    "userId": user_id,
                    "userEmail": user_email,
                    "product": PRODUCT_LIFETIME_PREMIUM,
                },
            )
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
        return CheckoutSession(session_id=_field(session, "id"), url=_field(session, "url"))

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe session retrieval failed: {e}")
        return self.parse_session(session)

    def verify_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookEvent:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            event = stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        event_id = _field(event, "id")
        event_type = _field(event, "type")
        if not event_id or not event_type:
            raise BillingWebhookError("Invalid payload: missing event id or type")

        return BillingWebhookEvent(
            event_id=event_id,
            event_type=event_type,
            data=_field(_field(event, "data"), "object") or {},
        )

    @staticmethod
    def parse_session(session: Any) -> CheckoutSessionStatus:
        """Normalize a checkout session (API object or webhook dict)."""
        metadata = _field(session, "metadata") or {}
        details = _field(session, "customer_details") or {}
        return CheckoutSessionStatus(
            session_id=_field(session, "id"),
            payment_status=_field(session, "payment_status"),
            status=_field(session, "status"),
            user_id=_field(metadata, "userId") or _field(session, "client_reference_id"),
            user_email=(
                _field(metadata, "userEmail")
                or _field(session, "customer_email")
                or _field(details, "email")
            ),
            customer_id=_field(session, "customer"),
            payment_intent=_field(session, "payment_intent"),
            amount_total=_field(session, "amount_total"),
            currency=_field(session, "currency"),
        )
