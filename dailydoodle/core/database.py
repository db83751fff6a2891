"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (QueuePool for server databases)
- Test database support (TEST_DATABASE_URL, SQLite-friendly)
- Table definitions for every persisted entity
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, Date, DateTime, Boolean, JSON, Text, Index, UniqueConstraint, inspect, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from dailydoodle.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None

logger = logging.getLogger("dailydoodle")


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # SQLite: one file, shared across the TestClient threads
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging
        )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Drop the current engine so the next call re-reads the database URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Commits on clean exit, rolls back on any exception.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def truncate_all_tables():
    """Delete every row from every table (tests only)."""
    engine = get_engine()
    with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(table.delete())


def missing_tables() -> list:
    """Names of metadata tables not present in the connected database."""
    existing = set(inspect(get_engine()).get_table_names())
    return sorted(name for name in metadata.tables if name not in existing)


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("db.connection_check_failed", extra={"error_message": str(e)})
        return False


# User profiles (one row per auth user; absent row = defaults)
profiles = Table(
    'profiles',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('username', String(20), nullable=True, unique=True),
    Column('email', String(320), nullable=True),
    Column('avatar_type', String(20), nullable=False, server_default='initial'),
    Column('avatar_icon', String(50), nullable=True),
    Column('is_premium', Boolean, nullable=False, server_default='0'),
    Column('premium_purchased_at', DateTime(timezone=True), nullable=True),
    Column('is_admin', Boolean, nullable=False, server_default='0'),
    Column('current_title', String(50), nullable=True),
    Column('email_notifications', Boolean, nullable=False, server_default='1'),
    Column('onboarding_completed', Boolean, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Streak state (one row per user)
streaks = Table(
    'streaks',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('current_streak', Integer, nullable=False, server_default='0'),
    Column('longest_streak', Integer, nullable=False, server_default='0'),
    Column('last_viewed_date', Date, nullable=True),
    Column('streak_freeze_used_month', String(7), nullable=True),  # YYYY-MM
    Column('streak_freeze_armed', Boolean, nullable=False, server_default='0'),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Earned badges (append-only)
badges = Table(
    'badges',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('badge_type', String(64), nullable=False),
    Column('earned_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('user_id', 'badge_type', name='uq_badges_user_badge'),
)

# In-app notifications
notifications = Table(
    'notifications',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('type', String(40), nullable=False),
    Column('title', String(200), nullable=False),
    Column('body', Text, nullable=False),
    Column('link', String(500), nullable=True),
    Column('metadata_json', JSON, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('read_at', DateTime(timezone=True), nullable=True),
    Index('idx_notifications_user_created', 'user_id', 'created_at'),
    Index('idx_notifications_user_read', 'user_id', 'read_at'),
)

# Uploaded doodles
doodles = Table(
    'doodles',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('prompt_id', String(10), nullable=False),  # publish date YYYY-MM-DD
    Column('prompt_title', String(300), nullable=False),
    Column('image_url', String(1000), nullable=False),
    Column('caption', Text, nullable=True),
    Column('is_public', Boolean, nullable=False, server_default='1'),
    Column('likes_count', Integer, nullable=False, server_default='0'),
    Column('upload_date', Date, nullable=False),  # canonical day of upload
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_doodles_user_upload_date', 'user_id', 'upload_date'),
)

doodle_likes = Table(
    'doodle_likes',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('doodle_id', String(36), nullable=False, index=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('doodle_id', 'user_id', name='uq_doodle_likes_pair'),
)

follows = Table(
    'follows',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('follower_id', String(100), nullable=False, index=True),
    Column('following_id', String(100), nullable=False, index=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('follower_id', 'following_id', name='uq_follows_pair'),
)

shares = Table(
    'shares',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('target_type', String(20), nullable=False),
    Column('target_id', String(100), nullable=False),
    Column('platform', String(40), nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
)

bookmarks = Table(
    'bookmarks',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('prompt_id', String(10), nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('user_id', 'prompt_id', name='uq_bookmarks_user_prompt'),
)

# Idempotency keys table
idempotency_keys = Table(
    'idempotency_keys',
    metadata,
    Column('key', String(255), primary_key=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('scope', String(100), nullable=True, index=True),
    Index('idx_idempotency_keys_scope_created', 'scope', 'created_at'),
)

# Payment webhook events (dedupe by provider event id)
billing_events = Table(
    'billing_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('stripe_event_id', String(100), nullable=False),
    Column('event_type', String(100), nullable=False, index=True),
    Column('received_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('payload_hash', String(64), nullable=False),  # SHA256 of raw body
    Column('processed', Boolean, nullable=False, server_default='0', index=True),
    Column('processed_at', DateTime(timezone=True), nullable=True),
    Column('error', Text, nullable=True),
    UniqueConstraint('stripe_event_id', name='uq_billing_events_stripe_id'),
)
