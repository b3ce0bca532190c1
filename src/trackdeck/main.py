"""FastAPI application factory."""

from fastapi import FastAPI

from trackdeck import __version__
from trackdeck.api.exception_handlers import register_exception_handlers
from trackdeck.api.routers import api_router
from trackdeck.config import Settings
from trackdeck.domain.entities import Platform
from trackdeck.domain.ports import IPlatformStatsSource
from trackdeck.infrastructure.lifecycle import lifespan
from trackdeck.infrastructure.observability.middleware import RequestLoggingMiddleware


def create_app(
    settings: Settings | None = None,
    platform_sources: dict[Platform, IPlatformStatsSource] | None = None,
) -> FastAPI:
    """Create the application.

    Args:
        settings: Settings override (defaults to get_settings() at startup)
        platform_sources: Adapter override, e.g. fakes in tests
    """
    app = FastAPI(
        title="TrackDeck",
        description="Release tracking and notification lifecycle engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.platform_sources = platform_sources

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
