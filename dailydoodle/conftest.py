# dailydoodle/conftest.py
import os
import tempfile
import time
from pathlib import Path

import jwt
import pytest

# Environment must be in place before any dailydoodle module reads settings
TEST_DB_PATH = Path(tempfile.gettempdir()) / f"dailydoodle-test-{os.getpid()}.db"
TEST_JWT_SECRET = "test-supabase-jwt-secret"

os.environ["ENV"] = "test"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
for _var in ("KV_URL", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "STRIPE_PRICE_ID", "RESEND_API_KEY", "CRON_SECRET"):
    os.environ.pop(_var, None)


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """
    Create all database tables once per test session.

    Uses a throwaway SQLite file; removed when the session ends.
    """
    from dailydoodle.core.database import create_all_tables, dispose_engine

    dispose_engine()
    create_all_tables()
    yield
    dispose_engine()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture(scope="function", autouse=True)
def reset_state():
    """
    Each test starts with empty tables, an empty key-value store, cold
    caches and no realtime subscribers.
    """
    from dailydoodle.core.database import truncate_all_tables
    from dailydoodle.core.kv import reset_kv
    from dailydoodle.features.notifications.hub import hub
    from dailydoodle.features.notifications.service import notification_service
    from dailydoodle.features.prompts.source import prompt_source

    truncate_all_tables()
    reset_kv()
    notification_service.reset_caches()
    hub.clear()
    prompt_source.invalidate()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from dailydoodle.main import app

    return TestClient(app)


@pytest.fixture
def make_token():
    """Build a Supabase-style access token for a user."""

    def _make(user_id: str, email: str = None, expires_in: int = 3600, secret: str = TEST_JWT_SECRET) -> str:
        payload = {
            "sub": user_id,
            "aud": "authenticated",
            "exp": int(time.time()) + expires_in,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(user_id: str, email: str = None) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, email)}"}

    return _headers


@pytest.fixture
def premium_user():
    """Flag a user as premium directly on the profile."""
    from dailydoodle.features.profiles.service import profile_service

    def _grant(user_id: str, email: str = None) -> str:
        profile_service.ensure_profile(user_id, email)
        profile_service.set_premium(user_id)
        return user_id

    return _grant
