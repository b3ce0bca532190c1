"""Application lifecycle management for startup and shutdown tasks."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from trackdeck.application.services import TrackingService
from trackdeck.application.workers import NotificationCleanupWorker
from trackdeck.config import Settings, get_settings
from trackdeck.infrastructure.integrations import RemoteFunctionClient, build_platform_sources
from trackdeck.infrastructure.observability import configure_logging
from trackdeck.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Listen future me, @asynccontextmanager makes this the FastAPI lifespan! Everything before
# `yield` runs at STARTUP, everything after at SHUTDOWN. Resources live on app.state so the
# dependencies in api/dependencies.py can find them. create_app() may pre-seed app.state.settings
# and app.state.platform_sources (tests do) - we only build what's missing.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Database initialization (tables are created if missing)
    - Remote platform client and adapters
    - Notification cleanup worker
    - Resource cleanup
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db = Database(settings)
    app.state.db = db
    client: RemoteFunctionClient | None = None
    worker: NotificationCleanupWorker | None = None
    worker_task: asyncio.Task[None] | None = None

    try:
        await db.create_tables()
        logger.info("Database initialized: %s", settings.database.url)

        sources = getattr(app.state, "platform_sources", None)
        if sources is None:
            client = RemoteFunctionClient(settings.platforms)
            sources = build_platform_sources(client)
        app.state.tracking = TrackingService(db, sources, settings.tracking)

        if settings.access.bootstrap_admin_user_id:
            await app.state.tracking.ensure_admin(settings.access.bootstrap_admin_user_id)

        if settings.tracking.cleanup_worker_enabled:
            worker = NotificationCleanupWorker(
                app.state.tracking, check_interval=settings.tracking.cleanup_interval_seconds
            )
            app.state.cleanup_worker = worker
            worker_task = asyncio.create_task(worker.start())
            logger.info("Notification cleanup worker started")

        yield

    finally:
        logger.info("Shutting down application")

        if worker is not None and worker_task is not None:
            worker.stop()
            worker_task.cancel()
            with suppress(asyncio.CancelledError):
                await worker_task
            logger.info("Notification cleanup worker stopped")

        if client is not None:
            try:
                await client.close()
            except Exception as e:
                logger.exception("Error closing platform client: %s", e)

        try:
            await db.close()
            logger.info("Database connection closed")
        except Exception as e:
            logger.exception("Error closing database: %s", e)
