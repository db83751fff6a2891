"""
Liveness and readiness endpoints.

Lightweight, unauthenticated, and never expose secrets or stack traces.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dailydoodle.core.database import check_connection, missing_tables

logger = logging.getLogger("dailydoodle")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    try:
        missing = missing_tables()
    except Exception as e:
        logger.error(f"[readyz] table inspection failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok"}
