import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database & key-value store
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    KV_URL: Optional[str] = None  # redis://...; unset = in-process store

    # Supabase auth (access tokens are HS256 JWTs)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None
    SUPABASE_JWT_AUDIENCE: str = "authenticated"

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_ID: Optional[str] = None
    STRIPE_SUCCESS_URL: Optional[str] = None
    STRIPE_CANCEL_URL: Optional[str] = None

    # Email (Resend)
    RESEND_API_KEY: Optional[str] = None
    RESEND_FROM_EMAIL: str = "Daily Doodle Prompt <hello@dailydoodleprompt.com>"

    # Prompt spreadsheet (public CSV export)
    PROMPT_SHEET_ID: str = "1tWJQOUhUfENl-xBd-TOQEv0BmaRb5USG"
    PROMPT_SHEET_GID: str = "1177623891"
    PROMPT_CACHE_TTL_SECONDS: int = 120

    # Calendar / streak policy
    CANONICAL_TIMEZONE: str = "America/New_York"
    STREAK_GRACE_DAYS: int = 2

    # Notifications
    UNREAD_COUNT_CACHE_TTL_SECONDS: int = 30

    # App URLs
    PUBLIC_BASE_URL: str = "http://localhost:5173"
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173"  # comma-separated

    # Cron
    CRON_SECRET: Optional[str] = None

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("dailydoodle")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "SUPABASE_JWT_SECRET",
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
        "STRIPE_PRICE_ID",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
