"""
Billing API routes (lifetime premium via Stripe Checkout).

- POST /api/checkout/create-session: Create checkout session
- POST /api/stripe/webhook: Handle Stripe webhooks (signature-verified)
- GET  /api/stripe/verify-session: Report a session's payment state

All three answer 503 billing_disabled when STRIPE_SECRET_KEY is unset.
"""
from typing import Optional
from fastapi import APIRouter, Request, Query
from pydantic import BaseModel

from dailydoodle.features.billing.service import (
    start_checkout,
    process_webhook_event,
    verify_checkout_session,
)


router = APIRouter(prefix="/api", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request to create checkout session."""
    userId: Optional[str] = None
    userEmail: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Response with checkout session id and redirect URL."""
    sessionId: str
    url: Optional[str]


@router.post("/checkout/create-session", response_model=CheckoutResponse)
async def create_checkout_session(request: CheckoutRequest, req: Request):
    """
    Create a one-time payment Checkout session.

    Errors:
        400: userId or userEmail missing
        500: Price not configured, or Stripe API error
        503: Billing disabled
    """
    session = start_checkout(request.userId, request.userEmail, origin=req.headers.get("origin"))
    return {"sessionId": session.session_id, "url": session.url}


@router.post("/stripe/webhook")
async def stripe_webhook(req: Request):
    """
    Handle Stripe webhook events.

    Signature is verified against the raw body before anything is parsed.
    Duplicate deliveries return 200 without repeating side effects.
    """
    body = await req.body()
    headers = dict(req.headers)
    return process_webhook_event(headers, body)


@router.get("/stripe/verify-session")
async def verify_session(session_id: Optional[str] = Query(None)):
    """Read-only: never changes entitlement state."""
    return verify_checkout_session(session_id)
