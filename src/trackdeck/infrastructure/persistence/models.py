"""SQLAlchemy ORM models for TrackDeck."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive. Wrap every
# datetime read from the DB with this before comparing against datetime.now(UTC), otherwise
# you get "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, ArtistModel is the canonical artist row. links and platform_stats are JSON lists
# (one entry per platform) - they're always rewritten as a whole, never mutated in place, so
# SQLAlchemy change tracking on JSON isn't needed. Deleting an artist deletes its releases via
# ON DELETE CASCADE; notifications are NOT foreign keys (their subject may be a game) and get
# retracted by the service instead.
class ArtistModel(Base):
    """Canonical artist followed by a user."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    links: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    platform_stats: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    total_followers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_popularity: Mapped[float | None] = mapped_column(Float, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_release: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_stats_update: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    releases: Mapped[list["ReleaseModel"]] = relationship(
        back_populates="artist",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# Hey future me, the (artist_id, native_key) unique constraint is THE dedupe guarantee for
# releases. native_key is "<platform>:<platform release id>". release_date stays a string
# (YYYY, YYYY-MM or YYYY-MM-DD) because platforms report different precisions.
class ReleaseModel(Base):
    """A release reported by a platform for an artist."""

    __tablename__ = "artist_releases"
    __table_args__ = (
        UniqueConstraint("artist_id", "native_key", name="uq_artist_releases_artist_native_key"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    native_id: Mapped[str] = mapped_column(String(255), nullable=False)
    native_key: Mapped[str] = mapped_column(String(300), nullable=False)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    release_type: Mapped[str] = mapped_column(String(32), nullable=False, default="album")
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    total_tracks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    popularity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    artist: Mapped[ArtistModel] = relationship(back_populates="releases")


class GameModel(Base):
    """A game followed by a user."""

    __tablename__ = "games"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[str] = mapped_column(String(50), nullable=False, default="steam")
    url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    release_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="unknown", index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


# Yo, NotificationModel rows are NEVER deleted by the engine - sweeps only flip state.
# The partial unique index enforces "at most one ACTIVE notification per (subject, release)"
# at the storage level. Both SQLite (3.8+) and PostgreSQL support partial indexes.
class NotificationModel(Base):
    """Time-bounded new-release alert."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "uq_notifications_active_subject_release",
            "subject_type",
            "subject_id",
            "release_key",
            unique=True,
            sqlite_where=text("state = 'active'"),
            postgresql_where=text("state = 'active'"),
        ),
        Index("ix_notifications_state_expires_at", "state", "expires_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    subject_type: Mapped[str] = mapped_column(String(10), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    release_key: Mapped[str] = mapped_column(String(300), nullable=False)
    release_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    platform_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    state: Mapped[str] = mapped_column(String(10), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    state_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    retraction_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)


class UserRoleModel(Base):
    """Role assigned to a user."""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


# Hey future me, this is the SHARED exclusivity table behind UpdateCoordinator. key is the
# PRIMARY KEY, so two instances racing to INSERT the same key can't both win - the loser gets
# an IntegrityError. A row exists only while a job runs.
class JobLockModel(Base):
    """In-flight job per trigger key."""

    __tablename__ = "job_locks"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    owner: Mapped[str] = mapped_column(String(64), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
