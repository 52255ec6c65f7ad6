from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from later.api.routers.cron import router as cron_router
from later.api.routers.reminders import router as reminders_router
from later.api.routers.settings import router as settings_router
from later.api.routers.uploads import router as uploads_router
from later.errors import (
    LaterError,
    http_exception_handler,
    later_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from later.logging_utils import configure_logging
from later.rate_limit import build_rate_limiter
from later.repositories import ReminderRepository, build_repository
from later.services.identity import IdentityClient
from later.services.storage import StorageClient
from later.services.time_state import utc_now
from later.settings import Settings
from later.settings import settings as default_settings

logger = logging.getLogger(__name__)


def _build_identity(settings: Settings) -> IdentityClient | None:
    if not settings.identity_configured:
        return None
    return IdentityClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, timeout=settings.UPSTREAM_TIMEOUT_SEC)


def _build_storage(settings: Settings) -> StorageClient | None:
    if not settings.storage_configured:
        return None
    return StorageClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        settings.STORAGE_BUCKET,
        timeout=settings.UPSTREAM_TIMEOUT_SEC,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    for client in (app.state.identity, app.state.storage):
        if client is not None:
            client.close()


def create_app(
    settings: Settings | None = None,
    repository: ReminderRepository | None = None,
    *,
    clock=utc_now,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Later Reminders API", lifespan=_lifespan)
    app.state.settings = settings
    app.state.clock = clock
    app.state.identity = _build_identity(settings)
    app.state.storage = _build_storage(settings)
    app.state.repository = repository or build_repository(settings, storage=app.state.storage)
    app.state.rate_limiter = build_rate_limiter(settings)

    if app.state.identity is None:
        logger.warning("Identity provider not configured; running in demo mode")

    app.add_exception_handler(LaterError, later_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(reminders_router)
    app.include_router(settings_router)
    app.include_router(uploads_router)
    app.include_router(cron_router)

    @app.get("/health")
    def health():
        return {"ok": True, **app.state.repository.describe()}

    return app
