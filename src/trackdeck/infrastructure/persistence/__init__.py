"""Persistence layer: SQLAlchemy models, database sessions and repositories."""

from trackdeck.infrastructure.persistence.database import Database
from trackdeck.infrastructure.persistence.models import Base
from trackdeck.infrastructure.persistence.repositories import (
    ArtistRepository,
    GameRepository,
    JobLockRepository,
    NotificationRepository,
    ReleaseRepository,
    UserRoleRepository,
)

__all__ = [
    "ArtistRepository",
    "Base",
    "Database",
    "GameRepository",
    "JobLockRepository",
    "NotificationRepository",
    "ReleaseRepository",
    "UserRoleRepository",
]
