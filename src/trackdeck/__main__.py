"""Run the API server: `python -m trackdeck` or the `trackdeck` console script."""

import uvicorn

from trackdeck.config import get_settings


def main() -> None:
    """Serve create_app() with uvicorn, host and port from TRACKDECK_SERVER__*."""
    settings = get_settings()
    uvicorn.run(
        "trackdeck.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        log_level=settings.observability.log_level.lower(),
    )


if __name__ == "__main__":
    main()
