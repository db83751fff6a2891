"""
dailydoodle/core/idempotency.py
Idempotency keys guarding side effects (emails, notifications, cron sends).
"""

from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.database import get_db_session, get_session_factory, idempotency_keys


def check_and_set(key: str, operation: str = "generic") -> bool:
    """
    Check if idempotency key exists, and set it if not (atomic).

    Args:
        key: Idempotency key string
        operation: Operation type (stored as scope for debugging)

    Returns:
        True if key was already seen (duplicate request)
        False if key is new (first time seeing it)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        session.execute(
            idempotency_keys.insert().values(
                key=key,
                scope=operation,
                created_at=datetime.now(timezone.utc),
            )
        )
        session.commit()
        return False
    except IntegrityError:
        # UNIQUE violation: another request already claimed this key
        session.rollback()
        return True
    finally:
        session.close()


def release(key: str) -> None:
    """Forget a key so a failed side effect can be retried."""
    with get_db_session() as session:
        session.execute(idempotency_keys.delete().where(idempotency_keys.c.key == key))


def check_key(key: str) -> bool:
    """
    Check if idempotency key exists (read-only).
    """
    with get_db_session() as session:
        result = session.execute(
            select(idempotency_keys.c.key).where(idempotency_keys.c.key == key)
        ).first()
        return result is not None


def clear_all_keys() -> None:
    """Clear all idempotency keys (testing only)."""
    with get_db_session() as session:
        session.execute(idempotency_keys.delete())
