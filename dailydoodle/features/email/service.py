"""
Transactional email through Resend.

Sending is best-effort: callers treat a False return as "not sent" and move
on. Without RESEND_API_KEY the service is disabled and every send returns
False after a log line.
"""
from __future__ import annotations

import html
import logging
import os
from typing import Optional

import resend

from dailydoodle.core.config import settings

logger = logging.getLogger("dailydoodle")


def format_amount(amount: Optional[int], currency: Optional[str] = "usd") -> str:
    """Minor units to a display string, e.g. 499 usd -> $4.99."""
    if amount is None:
        return ""
    value = f"{amount / 100:.2f}"
    code = (currency or "usd").lower()
    if code == "usd":
        return f"${value}"
    return f"{value} {code.upper()}"


class EmailService:
    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        self.api_key = api_key if api_key is not None else (os.getenv("RESEND_API_KEY") or settings.RESEND_API_KEY)
        self.from_email = from_email or settings.RESEND_FROM_EMAIL

    def is_available(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, text: str, html_body: Optional[str] = None, *, tag: str = "transactional") -> bool:
        if not self.is_available():
            logger.info("email.disabled", extra={"event_type": tag})
            return False
        if not to:
            return False

        resend.api_key = self.api_key
        params: resend.Emails.SendParams = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "text": text,
            "html": html_body or f"<pre>{html.escape(text)}</pre>",
            "tags": [{"name": "type", "value": tag}],
        }
        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.warning("email.send_failed", extra={"event_type": tag, "error_message": str(e)})
            return False

        if response and "id" in response:
            logger.info("email.sent", extra={"event_type": tag, "email_id": response["id"]})
            return True
        logger.warning("email.send_failed", extra={"event_type": tag})
        return False

    def send_premium_confirmation(
        self,
        email: str,
        username: Optional[str],
        purchase_date: str,
        amount: Optional[int] = None,
        currency: Optional[str] = "usd",
    ) -> bool:
        name = username or "there"
        price = format_amount(amount, currency)
        lines = [
            f"Hi {name},",
            "",
            "Thanks for unlocking Daily Doodle Prompt Premium! Your lifetime access is active.",
            f"Purchase date: {purchase_date}",
        ]
        if price:
            lines.append(f"Amount: {price}")
        lines += ["", f"Start doodling: {settings.PUBLIC_BASE_URL}/prompt"]
        text = "\n".join(lines)
        body = "".join(f"<p>{html.escape(line)}</p>" for line in lines if line)
        return self.send(email, "Welcome to Premium!", text, body, tag="premium_confirmation")

    def send_badge_unlock(self, email: str, username: Optional[str], badge_name: str, badge_description: str) -> bool:
        name = username or "there"
        text = (
            f"Hi {name},\n\n"
            f"You just earned the \"{badge_name}\" badge: {badge_description}\n\n"
            f"See your collection: {settings.PUBLIC_BASE_URL}/profile"
        )
        body = (
            f"<p>Hi {html.escape(name)},</p>"
            f"<p>You just earned the <strong>{html.escape(badge_name)}</strong> badge: "
            f"{html.escape(badge_description)}</p>"
        )
        return self.send(email, f"You earned a badge: {badge_name}", text, body, tag="badge_unlock")


def get_email_service() -> EmailService:
    return EmailService()
