import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from dailydoodle/.env
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from dailydoodle.core.config import settings, validate_config
from dailydoodle.core.database import create_all_tables
from dailydoodle.core.logging import configure_logging
from dailydoodle.core.middleware.request_id import RequestIdMiddleware
from dailydoodle.core.validation import validate_env
from dailydoodle.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from dailydoodle.api import (
    badges,
    billing,
    health,
    notifications,
    profile,
    prompts,
    share,
    social,
    streaks,
)

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("dailydoodle")
    logger.info("Starting Daily Doodle backend...")
    app.state.startup_time = time.time()
    create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping Daily Doodle backend...")


app = FastAPI(title="Daily Doodle Prompt - Backend", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

allowed_origins = [o.strip() for o in (settings.CORS_ALLOW_ORIGINS or settings.PUBLIC_BASE_URL).split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(profile.router)
app.include_router(notifications.router)
app.include_router(billing.router)
app.include_router(streaks.router)
app.include_router(badges.router)
app.include_router(social.router)
app.include_router(prompts.router)
app.include_router(share.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("dailydoodle.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
