"""
Transactional email is best-effort: a failure is a False, never an exception.
"""
from unittest.mock import patch

from dailydoodle.features.email.service import EmailService, format_amount


def test_format_amount():
    assert format_amount(499) == "$4.99"
    assert format_amount(1000, "eur") == "10.00 EUR"
    assert format_amount(None) == ""


def test_disabled_without_api_key():
    service = EmailService(api_key="")
    with patch("resend.Emails.send") as send:
        assert service.send("a@example.com", "Hi", "text") is False
    send.assert_not_called()


def test_premium_confirmation_content():
    service = EmailService(api_key="re_test")
    with patch("resend.Emails.send", return_value={"id": "email_1"}) as send:
        assert service.send_premium_confirmation("a@example.com", "sketch_bot", "March 11, 2026", 499, "usd") is True

    params = send.call_args[0][0]
    assert params["to"] == ["a@example.com"]
    assert params["subject"] == "Welcome to Premium!"
    assert "Hi sketch_bot" in params["text"]
    assert "$4.99" in params["text"]
    assert params["tags"] == [{"name": "type", "value": "premium_confirmation"}]


def test_badge_email_escapes_html():
    service = EmailService(api_key="re_test")
    with patch("resend.Emails.send", return_value={"id": "email_2"}) as send:
        service.send_badge_unlock("a@example.com", "<b>me</b>", "Creative Fire", "Visited 7 days in a row")

    assert "&lt;b&gt;me&lt;/b&gt;" in send.call_args[0][0]["html"]


def test_provider_failure_returns_false():
    service = EmailService(api_key="re_test")
    with patch("resend.Emails.send", side_effect=RuntimeError("provider down")):
        assert service.send("a@example.com", "Hi", "text") is False
    with patch("resend.Emails.send", return_value={}):
        assert service.send("a@example.com", "Hi", "text") is False
