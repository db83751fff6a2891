"""
In-app notifications: listing, creation, read state and cleanup.

`read_at` only ever moves from NULL to a timestamp. The unread counter is
computed from the table; UnreadCountCache exists to spare the badge poller a
query and every mutation invalidates it.
"""
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, select

from dailydoodle.core.config import settings
from dailydoodle.core.database import get_db_session, notifications
from dailydoodle.core.errors import NotFoundError, ValidationError
from dailydoodle.core.logging import log_event
from dailydoodle.features.notifications.hub import NotificationHub, hub as default_hub
from dailydoodle.models.notification import NOTIFICATION_TYPES, Notification

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_notification(row) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        title=row.title,
        body=row.body,
        link=row.link,
        metadata=row.metadata_json or {},
        created_at=_aware(row.created_at),
        read_at=_aware(row.read_at),
    )


def clamp_limit(limit: Optional[int]) -> int:
    if not limit:
        return DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


class UnreadCountCache:
    """Single-entry cache: (value, timestamp, key) with a TTL."""

    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self.ttl_seconds = settings.UNREAD_COUNT_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self.value: Optional[int] = None
        self.timestamp: float = 0.0
        self.key: Optional[str] = None

    def get(self, key: str, now: Optional[float] = None) -> Optional[int]:
        if self.key != key or self.value is None:
            return None
        current = self._clock() if now is None else now
        if current - self.timestamp >= self.ttl_seconds:
            return None
        return self.value

    def put(self, key: str, value: int, now: Optional[float] = None) -> None:
        self.key = key
        self.value = value
        self.timestamp = self._clock() if now is None else now

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None or key == self.key:
            self.timestamp = 0.0
            self.value = None

    def set_zero(self, key: str, now: Optional[float] = None) -> None:
        self.put(key, 0, now)


class NotificationService:
    def __init__(self, hub: Optional[NotificationHub] = None):
        self.hub = hub or default_hub
        self.unread_cache = UnreadCountCache()
        self._cache_lock = threading.Lock()

    # Reads ------------------------------------------------------------
    def list_notifications(
        self,
        user_id: str,
        *,
        unread_only: bool = False,
        limit: Optional[int] = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> Tuple[List[Notification], int]:
        limit = clamp_limit(limit)
        offset = max(0, offset or 0)
        conditions = [notifications.c.user_id == user_id]
        if unread_only:
            conditions.append(notifications.c.read_at.is_(None))
        where = and_(*conditions)

        with get_db_session() as session:
            total = session.execute(
                select(func.count()).select_from(notifications).where(where)
            ).scalar_one()
            rows = session.execute(
                select(notifications)
                .where(where)
                .order_by(notifications.c.created_at.desc(), notifications.c.id.desc())
                .limit(limit)
                .offset(offset)
            ).fetchall()
        return [_row_to_notification(r) for r in rows], int(total)

    def get_notification(self, user_id: str, notification_id: int) -> Notification:
        with get_db_session() as session:
            row = session.execute(
                select(notifications).where(
                    notifications.c.id == notification_id,
                    notifications.c.user_id == user_id,
                )
            ).first()
        if row is None:
            raise NotFoundError("Notification not found")
        return _row_to_notification(row)

    def count_unread(self, user_id: str) -> int:
        """Authoritative unread count straight from the table."""
        with get_db_session() as session:
            count = session.execute(
                select(func.count()).select_from(notifications).where(
                    notifications.c.user_id == user_id,
                    notifications.c.read_at.is_(None),
                )
            ).scalar_one()
        return int(count)

    def unread_count(self, user_id: str, *, force_refresh: bool = False) -> int:
        if not force_refresh:
            with self._cache_lock:
                cached = self.unread_cache.get(user_id)
            if cached is not None:
                return cached
        count = self.count_unread(user_id)
        with self._cache_lock:
            self.unread_cache.put(user_id, count)
        return count

    # Writes -----------------------------------------------------------
    def create_notification(
        self,
        *,
        actor_id: str,
        actor_is_admin: bool,
        type: Optional[str],
        title: Optional[str],
        body: Optional[str],
        link: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        target_user_id: Optional[str] = None,
    ) -> Notification:
        if not type or not title or not body:
            raise ValidationError("Missing required fields: type, title, body")
        # Only admins may notify other users; everyone else writes to themselves
        recipient = target_user_id if (actor_is_admin and target_user_id) else actor_id
        if target_user_id and recipient != target_user_id:
            log_event(
                "info",
                "notifications.target_narrowed",
                user_id=actor_id,
                event_type="notifications.target_narrowed",
            )
        return self.notify(recipient, type, title, body, link=link, metadata=metadata)

    def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        body: str,
        *,
        link: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """System-side insert used by likes, follows, badges and cron."""
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Unknown notification type: {type}")

        created_at = datetime.now(timezone.utc)
        with get_db_session() as session:
            result = session.execute(
                notifications.insert().values(
                    user_id=user_id,
                    type=type,
                    title=title,
                    body=body,
                    link=link,
                    metadata_json=metadata or {},
                    created_at=created_at,
                    read_at=None,
                )
            )
            new_id = result.inserted_primary_key[0]

        notification = Notification(
            id=new_id,
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            link=link,
            metadata=metadata or {},
            created_at=created_at,
        )
        self._invalidate(user_id)
        self.hub.publish(notification)
        log_event("info", "notifications.created", user_id=user_id, event_type=type)
        return notification

    def mark_read(self, user_id: str, notification_id: int) -> Notification:
        with get_db_session() as session:
            session.execute(
                notifications.update()
                .where(
                    notifications.c.id == notification_id,
                    notifications.c.user_id == user_id,
                    notifications.c.read_at.is_(None),
                )
                .values(read_at=datetime.now(timezone.utc))
            )
        self._invalidate(user_id)
        return self.get_notification(user_id, notification_id)

    def mark_all_read(self, user_id: str) -> int:
        with get_db_session() as session:
            result = session.execute(
                notifications.update()
                .where(
                    notifications.c.user_id == user_id,
                    notifications.c.read_at.is_(None),
                )
                .values(read_at=datetime.now(timezone.utc))
            )
            updated = result.rowcount or 0
        with self._cache_lock:
            self.unread_cache.set_zero(user_id)
        return updated

    def delete_notification(self, user_id: str, notification_id: int) -> None:
        with get_db_session() as session:
            result = session.execute(
                notifications.delete().where(
                    notifications.c.id == notification_id,
                    notifications.c.user_id == user_id,
                )
            )
            if not result.rowcount:
                raise NotFoundError("Notification not found")
        self._invalidate(user_id)

    def delete_all_read(self, user_id: str) -> int:
        with get_db_session() as session:
            result = session.execute(
                notifications.delete().where(
                    notifications.c.user_id == user_id,
                    notifications.c.read_at.is_not(None),
                )
            )
            deleted = result.rowcount or 0
        self._invalidate(user_id)
        return deleted

    # Cache helpers ----------------------------------------------------
    def _invalidate(self, user_id: str) -> None:
        with self._cache_lock:
            self.unread_cache.invalidate(user_id)

    def reset_caches(self) -> None:
        with self._cache_lock:
            self.unread_cache.invalidate()


notification_service = NotificationService()
