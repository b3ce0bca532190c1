"""API router initialization."""

# Yo, this is the main API router that aggregates everything! Gets mounted at /api in main.py,
# so tracking.router's "/tracking/stats" becomes /api/tracking/stats.

from fastapi import APIRouter

from trackdeck.api.routers import artists, games, notifications, tracking, users

api_router = APIRouter()

api_router.include_router(tracking.router)
api_router.include_router(artists.router)
api_router.include_router(games.router)
api_router.include_router(notifications.router)
api_router.include_router(users.router)

__all__ = [
    "api_router",
    "artists",
    "games",
    "notifications",
    "tracking",
    "users",
]
