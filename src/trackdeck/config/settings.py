"""Application settings loaded from environment variables and .env files.

Hey future me - every section is a plain pydantic model nested inside Settings.
Override any value with TRACKDECK_<SECTION>__<FIELD>, e.g.
TRACKDECK_TRACKING__NOTIFICATION_TTL_DAYS=14 or TRACKDECK_DATABASE__URL=...
Tests build Settings(...) directly and pass nested dicts.
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./trackdeck.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: str = Field(default="INFO")
    log_json_format: bool = Field(
        default=False, description="Emit JSON logs (recommended for production)"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


class PlatformSettings(BaseModel):
    """Remote platform function endpoint.

    Every platform lookup (Spotify, Deezer, SoundCloud, YouTube) is a named
    remote function reachable under functions_url.
    """

    functions_url: str = Field(default="http://localhost:54321/functions/v1")
    api_key: str | None = Field(default=None, description="Bearer token for the functions")
    timeout_seconds: float = Field(default=15.0, gt=0)


class TrackingSettings(BaseModel):
    """Release tracking and notification lifecycle tuning."""

    notification_ttl_days: int = Field(default=7, ge=1)
    popularity_precision: int = Field(
        default=0, ge=0, le=4, description="Decimal digits for average popularity"
    )
    stats_batch_size: int = Field(default=10, ge=1)
    stats_stale_after_minutes: int = Field(default=60, ge=0)
    job_lock_ttl_seconds: int = Field(
        default=900, ge=1, description="Locks older than this are considered abandoned"
    )
    cleanup_worker_enabled: bool = Field(default=True)
    cleanup_interval_seconds: int = Field(default=3600, ge=1)


class AccessSettings(BaseModel):
    """User access settings."""

    bootstrap_admin_user_id: str | None = Field(
        default=None,
        description="User promoted to admin at startup, so a fresh install has someone "
        "who can assign roles",
    )


class ServerSettings(BaseModel):
    """HTTP server settings used by `python -m trackdeck`."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = Field(default=False)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKDECK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="trackdeck")
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    platforms: PlatformSettings = Field(default_factory=PlatformSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    access: AccessSettings = Field(default_factory=AccessSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
