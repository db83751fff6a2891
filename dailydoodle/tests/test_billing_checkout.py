"""
Checkout session creation and the read-only verify endpoint.
"""
from unittest.mock import patch

import pytest
import stripe

from dailydoodle.core.kv import get_kv
from dailydoodle.features.profiles.service import profile_service


@pytest.fixture(autouse=True)
def stripe_env(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("STRIPE_PRICE_ID", "price_lifetime")


def _paid_session(**overrides):
    session = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "status": "complete",
        "customer": "cus_123",
        "payment_intent": "pi_123",
        "amount_total": 499,
        "currency": "usd",
        "metadata": {"userId": "user_a", "userEmail": "user_a@example.com"},
    }
    session.update(overrides)
    return session


def test_create_session(client):
    created = {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    with patch("stripe.checkout.Session.create", return_value=created) as create:
        resp = client.post(
            "/api/checkout/create-session",
            json={"userId": "user_a", "userEmail": "user_a@example.com"},
            headers={"origin": "https://doodle.example"},
        )

    assert resp.status_code == 200
    assert resp.json() == {"sessionId": "cs_test_1", "url": created["url"]}

    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["line_items"] == [{"price": "price_lifetime", "quantity": 1}]
    assert kwargs["client_reference_id"] == "user_a"
    assert kwargs["metadata"]["userId"] == "user_a"
    assert kwargs["success_url"] == "https://doodle.example/payment/success?session_id={CHECKOUT_SESSION_ID}"
    assert kwargs["cancel_url"] == "https://doodle.example/payment/cancel"


def test_create_session_requires_fields(client):
    resp = client.post("/api/checkout/create-session", json={"userId": "user_a"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_create_session_without_price_is_500(client, monkeypatch):
    monkeypatch.delenv("STRIPE_PRICE_ID", raising=False)
    resp = client.post(
        "/api/checkout/create-session",
        json={"userId": "user_a", "userEmail": "user_a@example.com"},
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Stripe Price ID not configured"


def test_create_session_stripe_error_is_500(client):
    with patch("stripe.checkout.Session.create", side_effect=stripe.StripeError("card network down")):
        resp = client.post(
            "/api/checkout/create-session",
            json={"userId": "user_a", "userEmail": "user_a@example.com"},
        )
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "upstream_error"


def test_verify_unpaid_session(client):
    with patch("stripe.checkout.Session.retrieve", return_value=_paid_session(payment_status="unpaid", status="open")):
        resp = client.get("/api/stripe/verify-session", params={"session_id": "cs_test_1"})

    assert resp.json() == {"success": True, "paid": False, "status": "unpaid"}


def test_verify_paid_session_is_read_only(client):
    with patch("stripe.checkout.Session.retrieve", return_value=_paid_session()):
        resp = client.get("/api/stripe/verify-session", params={"session_id": "cs_test_1"})

    body = resp.json()
    assert body["paid"] is True
    assert body["userId"] == "user_a"
    assert body["userEmail"] == "user_a@example.com"
    assert body["stripeCustomerId"] == "cus_123"
    assert body["amount"] == 499
    assert body["premiumRecorded"] is False

    # verification never grants premium on its own
    assert get_kv().get_json("user:user_a:premium") is None
    assert not profile_service.is_premium_flag("user_a")


def test_verify_requires_session_id(client):
    assert client.get("/api/stripe/verify-session").status_code == 400


def test_verify_stripe_error_is_500(client):
    with patch("stripe.checkout.Session.retrieve", side_effect=stripe.StripeError("no such session")):
        resp = client.get("/api/stripe/verify-session", params={"session_id": "cs_missing"})
    assert resp.status_code == 500
