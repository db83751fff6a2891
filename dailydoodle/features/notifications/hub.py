"""
dailydoodle/features/notifications/hub.py
In-process pub/sub for newly created notifications.

Subscribers are plain callables keyed by user id. Publishing happens from
request worker threads, so the registry is guarded by a threading lock and
callbacks must be cheap (the WebSocket endpoint hands off to its event loop).
"""

from typing import Callable, Dict, List
import logging
import threading

from dailydoodle.models.notification import Notification

logger = logging.getLogger("dailydoodle")

Subscriber = Callable[[dict], None]


class NotificationHub:
    """Per-user fan-out of `notification.created` messages."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(user_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(user_id, None)

        return _unsubscribe

    def publish(self, notification: Notification) -> int:
        """Deliver to the owner's subscribers only. Returns deliveries made."""
        with self._lock:
            callbacks = list(self._subscribers.get(notification.user_id, []))
        if not callbacks:
            return 0

        message = {"type": "notification.created", "notification": notification.to_dict()}
        delivered = 0
        dead: List[Subscriber] = []
        for callback in callbacks:
            try:
                callback(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "notifications.subscriber_failed",
                    extra={"user_id": notification.user_id, "error_message": str(e)},
                )
                dead.append(callback)

        if dead:
            with self._lock:
                remaining = [cb for cb in self._subscribers.get(notification.user_id, []) if cb not in dead]
                if remaining:
                    self._subscribers[notification.user_id] = remaining
                else:
                    self._subscribers.pop(notification.user_id, None)
        return delivered

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(user_id, []))

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


# Global singleton hub instance
hub = NotificationHub()
