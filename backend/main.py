"""
Supacortex FastAPI application.

Entry point for the API server: `uvicorn backend.main:app`.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from backend.config import settings
from backend.db import Database
from backend.deps import build_device_auth
from backend.errors import register_error_handlers
from backend.middleware.rate_limit import RateLimiter
from backend.repos import memory_storage, postgres_storage
from backend.repos.base import Storage
from backend.routes import api_keys as api_key_routes
from backend.routes import auth_routes
from backend.routes import cli_auth as cli_auth_routes
from backend.services.device_auth import Clock, utcnow

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 60


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run_cleanup_once(app: FastAPI) -> int:
    """
    Delete device pairings past their retention window and prune rate limit entries.

    Returns the number of pairings deleted.
    """
    service = build_device_auth(app.state.storage, app.state.clock)
    deleted = await service.purge_expired(timedelta(hours=settings.DEVICE_CODE_RETENTION_HOURS))
    if deleted > 0:
        logger.info("Cleaned up %d expired device codes", deleted)

    app.state.rate_limiter.cleanup_old_entries(max_age_hours=2)
    return deleted


async def cleanup_task(app: FastAPI):
    """
    Background retention job. Runs every 60 seconds.

    Expiry itself is decided at read time; this only reclaims storage.
    """
    while True:
        try:
            await run_cleanup_once(app)
        except Exception:
            logger.exception("Error in cleanup task")

        await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles startup and shutdown logic:
    - Connect storage unless one was injected
    - Start background cleanup task
    - Close database pool on shutdown
    """
    database: Database | None = None
    if app.state.storage is None:
        if settings.STORAGE_BACKEND == "memory":
            logger.warning("Using in-memory storage; data is lost on restart")
            app.state.storage = memory_storage()
        else:
            database = Database(settings.DATABASE_URL)
            await database.connect()
            app.state.storage = postgres_storage(database)

    cleanup_task_handle = asyncio.create_task(cleanup_task(app))
    logger.info("Background cleanup task started")

    yield

    cleanup_task_handle.cancel()
    try:
        await cleanup_task_handle
    except asyncio.CancelledError:
        logger.info("Background cleanup task stopped")

    if database is not None:
        await database.close()


def create_app(storage: Storage | None = None, clock: Clock = utcnow) -> FastAPI:
    """
    Build an application instance.

    Args:
        storage: Pre-built storage. When omitted, the lifespan connects the
            backend selected by STORAGE_BACKEND.
        clock: Source of "now" for expiry decisions
    """
    configure_logging()

    app = FastAPI(
        title="Supacortex",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.clock = clock
    app.state.rate_limiter = RateLimiter()

    register_error_handlers(app)

    app.include_router(auth_routes.router)
    app.include_router(api_key_routes.router)
    app.include_router(cli_auth_routes.router)

    @app.get("/health")
    async def health():
        """Health check endpoint for uptime monitoring."""
        return {"status": "ok"}

    return app


app = create_app()
