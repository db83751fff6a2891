"""
Premium entitlement reconciliation.

The SubscriptionRecord in the key-value store (user:{id}:premium) is the
source of truth, written once by the payment webhook. The profile's
is_premium flag is a cache of it: reconciliation only ever flips it
false -> true.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from redis.exceptions import RedisError

from dailydoodle.core import idempotency
from dailydoodle.core.errors import UpstreamError
from dailydoodle.core.kv import get_kv
from dailydoodle.core.logging import log_event
from dailydoodle.features.billing.provider import CheckoutSessionStatus
from dailydoodle.features.email.service import get_email_service
from dailydoodle.features.profiles.service import profile_service
from dailydoodle.models.subscription import SubscriptionRecord


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class EntitlementService:
    def grant_premium(self, record: SubscriptionRecord) -> bool:
        """First-writer-wins write. True only for the write that created it."""
        try:
            created = get_kv().set_json(SubscriptionRecord.key_for(record.user_id), record.to_dict(), nx=True)
        except RedisError as e:
            raise UpstreamError("Failed to persist premium entitlement") from e
        log_event(
            "info",
            "entitlements.premium_granted" if created else "entitlements.premium_exists",
            user_id=record.user_id,
            event_type="premium.granted",
        )
        return created

    def get_subscription_record(self, user_id: str) -> Optional[SubscriptionRecord]:
        data = get_kv().get_json(SubscriptionRecord.key_for(user_id))
        if not data:
            return None
        if "user_id" not in data:
            data = {**data, "user_id": user_id}
        return SubscriptionRecord.from_dict(data)

    def reconcile_premium_flag(self, user_id: str) -> bool:
        """Read-through: a stored record upgrades the profile flag. Never downgrades.

        Returns whether the user is premium after reconciliation.
        """
        try:
            record = self.get_subscription_record(user_id)
        except RedisError as e:
            log_event("warning", "entitlements.kv_unavailable", user_id=user_id, error_code="kv_unavailable", extra={"error": e})
            return profile_service.is_premium_flag(user_id)

        if record is None:
            return profile_service.is_premium_flag(user_id)

        if profile_service.set_premium(user_id, _parse_timestamp(record.purchased_at)):
            log_event("info", "entitlements.flag_reconciled", user_id=user_id, event_type="premium.reconciled")
        from dailydoodle.features.badges.service import badge_service

        badge_service.award_badge(user_id, "premium_patron")
        return True

    def has_premium(self, user_id: str) -> bool:
        """Authoritative record first, cached profile flag otherwise."""
        try:
            if self.get_subscription_record(user_id) is not None:
                return True
        except RedisError as e:
            log_event("warning", "entitlements.kv_unavailable", user_id=user_id, error_code="kv_unavailable", extra={"error": e})
        return profile_service.is_premium_flag(user_id)

    def apply_checkout_completed(self, event_id: str, session: CheckoutSessionStatus) -> Dict[str, object]:
        """Persist the entitlement for a paid checkout, then run side effects.

        Persistence errors propagate (the provider retries). Side effects are
        best-effort and each one is keyed so a retry never repeats it.
        """
        record = SubscriptionRecord(
            user_id=session.user_id,
            stripe_session_id=session.session_id,
            stripe_customer_id=session.customer_id,
            payment_intent=session.payment_intent,
            email=session.user_email,
            amount=session.amount_total,
            currency=session.currency,
            purchased_at=datetime.now(timezone.utc).isoformat(),
        )
        created = self.grant_premium(record)
        stored = self.get_subscription_record(session.user_id) or record

        self._run_side_effect("reconcile", session.user_id, lambda: self.reconcile_premium_flag(session.user_id))
        self._run_keyed_side_effect(
            f"premium-notify:{session.user_id}",
            "premium_notify",
            session.user_id,
            lambda: self._notify_premium(session.user_id),
        )
        if stored.email:
            self._run_keyed_side_effect(
                f"premium-email:{event_id}",
                "premium_email",
                session.user_id,
                lambda: self._email_premium(stored),
            )
        return {"created": created, "user_id": session.user_id}

    # Side effects -----------------------------------------------------
    def _notify_premium(self, user_id: str) -> bool:
        from dailydoodle.features.notifications.service import notification_service

        notification_service.notify(
            user_id,
            "system_announcement",
            "Welcome to Premium!",
            "Your lifetime premium access is active. Enjoy uploads, bookmarks, titles and streak freezes.",
            link="/profile",
            metadata={"product": "lifetime_premium"},
        )
        return True

    def _email_premium(self, record: SubscriptionRecord) -> bool:
        profile = profile_service.get_profile_row(record.user_id)
        purchased = _parse_timestamp(record.purchased_at) or datetime.now(timezone.utc)
        return get_email_service().send_premium_confirmation(
            record.email,
            profile.username if profile else None,
            purchased.strftime("%B %d, %Y"),
            record.amount,
            record.currency,
        )

    def _run_side_effect(self, name: str, user_id: str, action) -> None:
        try:
            action()
        except Exception as e:
            log_event(
                "warning",
                "entitlements.side_effect_failed",
                user_id=user_id,
                error_code=name,
                extra={"error": e},
            )

    def _run_keyed_side_effect(self, key: str, operation: str, user_id: str, action) -> None:
        if idempotency.check_and_set(key, operation):
            return
        try:
            done = action()
        except Exception as e:
            done = False
            log_event(
                "warning",
                "entitlements.side_effect_failed",
                user_id=user_id,
                error_code=operation,
                extra={"error": e},
            )
        if not done:
            # leave the key free so a later replay can try again
            idempotency.release(key)


entitlement_service = EntitlementService()
