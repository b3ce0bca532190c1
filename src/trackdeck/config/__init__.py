"""Configuration module for TrackDeck."""

from .settings import (
    AccessSettings,
    DatabaseSettings,
    ObservabilitySettings,
    PlatformSettings,
    ServerSettings,
    Settings,
    TrackingSettings,
    get_settings,
)

__all__ = [
    "AccessSettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "PlatformSettings",
    "ServerSettings",
    "Settings",
    "TrackingSettings",
    "get_settings",
]
