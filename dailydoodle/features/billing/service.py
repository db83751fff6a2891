"""
Billing service orchestrator.

Coordinates:
- Checkout session creation (one-time lifetime premium)
- Session verification for the payment success page
- Webhook processing with event-id deduplication

All Stripe-specific code is in stripe_provider.py; entitlement writes are in
features/entitlements.
"""
import os
import hashlib
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.config import settings
from dailydoodle.core.database import get_db_session, billing_events
from dailydoodle.core.errors import (
    AppError,
    ConfigurationError,
    UpstreamError,
    ValidationError,
    WebhookSignatureError,
)
from dailydoodle.core.logging import log_event
from dailydoodle.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    CheckoutSession,
)
from dailydoodle.features.billing.stripe_provider import StripeProvider
from dailydoodle.features.entitlements.service import entitlement_service

CHECKOUT_COMPLETED = "checkout.session.completed"


class BillingDisabledError(AppError):
    code = "billing_disabled"
    status_code = 503


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(os.getenv("STRIPE_SECRET_KEY"))


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    try:
        return StripeProvider()
    except BillingProviderError:
        return None


def _require_provider() -> BillingProvider:
    provider = get_provider()
    if provider is None:
        raise BillingDisabledError("Billing disabled: Stripe is not configured")
    return provider


def start_checkout(user_id: Optional[str], user_email: Optional[str], origin: Optional[str] = None) -> CheckoutSession:
    if not user_id or not user_email:
        raise ValidationError("Missing required fields: userId and userEmail")
    provider = _require_provider()

    price_id = os.getenv("STRIPE_PRICE_ID") or settings.STRIPE_PRICE_ID
    if not price_id:
        raise ConfigurationError("Stripe Price ID not configured")

    base = origin or settings.PUBLIC_BASE_URL
    success_url = settings.STRIPE_SUCCESS_URL or f"{base}/payment/success"
    cancel_url = settings.STRIPE_CANCEL_URL or f"{base}/payment/cancel"

    try:
        session = provider.create_checkout_session(user_id, user_email, price_id, success_url, cancel_url)
    except BillingProviderError as e:
        log_event("error", "billing.checkout_failed", user_id=user_id, error_code="stripe_error", extra={"error": e})
        raise UpstreamError("Failed to create checkout session") from e

    log_event("info", "billing.checkout_created", user_id=user_id, event_type="checkout.created")
    return session


def verify_checkout_session(session_id: Optional[str]) -> Dict[str, Any]:
    """Report a checkout session's payment state. Read-only."""
    if not session_id:
        raise ValidationError("Missing session_id")
    provider = _require_provider()

    try:
        session = provider.retrieve_checkout_session(session_id)
    except BillingProviderError as e:
        log_event("error", "billing.verify_failed", error_code="stripe_error", extra={"error": e})
        raise UpstreamError("Failed to verify session") from e

    if not session.is_paid:
        return {"success": True, "paid": False, "status": session.payment_status}

    premium_recorded = False
    if session.user_id:
        premium_recorded = entitlement_service.get_subscription_record(session.user_id) is not None
    return {
        "success": True,
        "paid": True,
        "userId": session.user_id,
        "userEmail": session.user_email,
        "stripeCustomerId": session.customer_id,
        "sessionId": session.session_id,
        "paymentIntent": session.payment_intent,
        "amount": session.amount_total,
        "currency": session.currency,
        "premiumRecorded": premium_recorded,
    }


def _claim_event(event_id: str, event_type: str, payload_hash: str) -> bool:
    """Record the event. False if it was already processed successfully."""
    with get_db_session() as session:
        existing = session.execute(
            select(billing_events.c.processed).where(billing_events.c.stripe_event_id == event_id)
        ).fetchone()
    if existing is not None:
        # unprocessed rows are earlier failed attempts: process again
        return not existing[0]

    try:
        with get_db_session() as session:
            session.execute(
                insert(billing_events).values(
                    stripe_event_id=event_id,
                    event_type=event_type,
                    payload_hash=payload_hash,
                    processed=False,
                    received_at=datetime.now(timezone.utc),
                )
            )
    except IntegrityError:
        # Race condition: another delivery inserted this event first
        return False
    return True


def _mark_event(event_id: str, *, error: Optional[str] = None) -> None:
    values: Dict[str, Any] = {"error": error}
    if error is None:
        values.update(processed=True, processed_at=datetime.now(timezone.utc))
    with get_db_session() as session:
        session.execute(update(billing_events).where(billing_events.c.stripe_event_id == event_id).values(**values))


def process_webhook_event(headers: Dict[str, str], body: bytes) -> Dict[str, Any]:
    """
    Process billing webhook event (idempotent).

    1. Verify signature (before anything is parsed or written)
    2. Deduplicate on event id (skip if already processed)
    3. Apply checkout.session.completed; ignore other types
    4. Mark as processed, or record the error

    Raises:
        WebhookSignatureError: signature missing or invalid (400)
        ValidationError: paid session without a user id (400)
        UpstreamError: entitlement could not be persisted (500)
    """
    provider = _require_provider()

    try:
        event = provider.verify_webhook(headers, body)
    except BillingWebhookError as e:
        log_event("warning", "billing.webhook_rejected", error_code="invalid_signature", extra={"reason": e})
        raise WebhookSignatureError("Invalid signature") from e

    if event.event_type != CHECKOUT_COMPLETED:
        log_event("info", "billing.webhook_ignored", event_type=event.event_type)
        return {"received": True, "ignored": True, "event_id": event.event_id}

    payload_hash = hashlib.sha256(body).hexdigest()
    if not _claim_event(event.event_id, event.event_type, payload_hash):
        log_event("info", "billing.webhook_duplicate", event_type=event.event_type, extra={"event_id": event.event_id})
        return {"received": True, "duplicate": True, "event_id": event.event_id}

    session = StripeProvider.parse_session(event.data)
    if not session.user_id:
        _mark_event(event.event_id, error="Missing userId in session metadata")
        log_event("error", "billing.webhook_missing_user", event_type=event.event_type, error_code="missing_user_id", extra={"event_id": event.event_id})
        raise ValidationError("Missing userId in session metadata")

    try:
        entitlement_service.apply_checkout_completed(event.event_id, session)
    except Exception as e:
        _mark_event(event.event_id, error=str(e))
        log_event("error", "billing.webhook_failed", user_id=session.user_id, error_code="persist_failed", extra={"event_id": event.event_id, "error": e})
        raise

    _mark_event(event.event_id)
    log_event("info", "billing.webhook_processed", user_id=session.user_id, event_type=event.event_type, extra={"event_id": event.event_id})
    return {"received": True, "event_id": event.event_id}
