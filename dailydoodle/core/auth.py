"""
Auth utilities for the Daily Doodle API.

Validates Supabase access tokens (HS256 JWTs signed with the project's JWT
secret) and exposes the caller as a FastAPI dependency. Fails closed: there
is no anonymous or header-based fallback.
"""
from dataclasses import dataclass
from typing import Optional
import logging
import os

import jwt
from fastapi import HTTPException, Request

from dailydoodle.core.config import settings
from dailydoodle.core.errors import ConfigurationError

logger = logging.getLogger("dailydoodle")


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None


def _jwt_secret() -> Optional[str]:
    return os.getenv("SUPABASE_JWT_SECRET") or settings.SUPABASE_JWT_SECRET


def verify_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and extract the user.

    Raises:
        HTTPException 401: invalid, expired or subject-less token
        ConfigurationError: no signing secret configured
    """
    secret = _jwt_secret()
    if not secret:
        raise ConfigurationError("Authentication is not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Invalid token")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return AuthUser(id=str(user_id), email=payload.get("email"))


def bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


async def get_current_user(request: Request) -> AuthUser:
    """FastAPI dependency: the authenticated caller, or 401."""
    token = bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return verify_access_token(token)


async def get_optional_user(request: Request) -> Optional[AuthUser]:
    """Caller if a bearer token is present; a bad token is still a 401."""
    token = bearer_token(request)
    if not token:
        return None
    return verify_access_token(token)
