"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from trackdeck.domain.entities.access import Operation, UserRole
from trackdeck.domain.entities.notification import (
    DEFAULT_NOTIFICATION_TTL,
    Notification,
    NotificationCounts,
    NotificationState,
    SubjectType,
)
from trackdeck.domain.value_objects import (
    ArtistId,
    GameId,
    ReleaseId,
    is_concrete_past_date,
    is_recent_release,
    parse_release_date,
)


# Hey future me, Platform is the closed set of services we can link an artist to. The value
# is what we store in the DB and what the remote function adapters are keyed by. Adding a
# platform means: new enum member + new adapter in infrastructure/integrations.
class Platform(str, Enum):
    """External service providing artist metadata and statistics."""

    SPOTIFY = "spotify"
    DEEZER = "deezer"
    SOUNDCLOUD = "soundcloud"
    YOUTUBE = "youtube"


@dataclass(frozen=True)
class PlatformLink:
    """Link between a canonical artist and one platform profile."""

    platform: Platform
    platform_id: str
    url: str | None = None


# Listen, PlatformStat is ONE row of the artist's platform_stats set. followers/popularity
# are None when the platform doesn't report them. available=False means the last fetch for
# that platform FAILED - the numbers are absent on purpose, we never invent placeholders.
@dataclass(frozen=True)
class PlatformStat:
    """Statistics reported by a single platform."""

    platform: Platform
    followers: int | None = None
    popularity: float | None = None
    available: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform.value,
            "followers": self.followers,
            "popularity": self.popularity,
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlatformStat":
        return cls(
            platform=Platform(data["platform"]),
            followers=data.get("followers"),
            popularity=data.get("popularity"),
            available=data.get("available", True),
        )


@dataclass(frozen=True)
class PlatformArtistSummary:
    """Search hit returned by a platform."""

    platform: Platform
    platform_id: str
    name: str
    followers: int | None = None
    image_url: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class PlatformArtistDetail:
    """Artist details returned by a platform. Every statistic is optional."""

    platform: Platform
    platform_id: str
    name: str | None = None
    followers: Any = None
    popularity: Any = None
    image_url: str | None = None
    genres: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlatformRelease:
    """A release as reported by a platform."""

    platform: Platform
    native_id: str
    name: str
    release_type: str = "album"
    release_date: str | None = None
    total_tracks: int | None = None
    popularity: int | None = None
    url: str | None = None
    image_url: str | None = None

    @property
    def native_key(self) -> str:
        return f"{self.platform.value}:{self.native_id}"


@dataclass(frozen=True)
class AggregatedArtistStats:
    """Merged statistics of one canonical artist."""

    total_followers: int = 0
    average_popularity: float | None = None
    platform_stats: tuple[PlatformStat, ...] = ()


# Yo, Artist is the CANONICAL artist - one real-world artist followed by one user, linked
# to N platform profiles. total_followers and average_popularity are DERIVED from
# platform_stats and only ever written through apply_stats() so they can't drift apart.
@dataclass
class Artist:
    """Canonical artist followed by a user."""

    id: ArtistId
    user_id: str
    name: str
    links: list[PlatformLink] = field(default_factory=list)
    platform_stats: list[PlatformStat] = field(default_factory=list)
    total_followers: int = 0
    average_popularity: float | None = None
    image_url: str | None = None
    genres: list[str] = field(default_factory=list)
    last_release: datetime | None = None
    last_stats_update: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Artist name cannot be empty")

    def get_link(self, platform: Platform) -> PlatformLink | None:
        for link in self.links:
            if link.platform == platform:
                return link
        return None

    def link_platform(self, link: PlatformLink) -> None:
        """Link (or re-link) a platform profile.

        One link per platform: linking the same platform again replaces the
        previous profile id.
        """
        self.links = [existing for existing in self.links if existing.platform != link.platform]
        self.links.append(link)
        if not any(stat.platform == link.platform for stat in self.platform_stats):
            self.platform_stats.append(PlatformStat(platform=link.platform))
        self.updated_at = datetime.now(UTC)

    def apply_stats(self, stats: AggregatedArtistStats, now: datetime) -> None:
        """Replace platform statistics and derived totals."""
        self.platform_stats = list(stats.platform_stats)
        self.total_followers = stats.total_followers
        self.average_popularity = stats.average_popularity
        self.last_stats_update = now
        self.updated_at = now

    def record_release(self, released_at: datetime) -> None:
        """Track the most recent release date."""
        if self.last_release is None or released_at > self.last_release:
            self.last_release = released_at
            self.updated_at = datetime.now(UTC)


# Hey future me, Release is keyed by (artist_id, native_key) - NOT by name! Platforms rename
# releases ("Deluxe Edition" appears later), so matching by name would create duplicates.
# apply_report() returns True when anything changed so callers only write real updates.
@dataclass
class Release:
    """A distinct release event of an artist on one platform."""

    id: ReleaseId
    artist_id: ArtistId
    platform: Platform
    native_id: str
    name: str
    release_type: str = "album"
    release_date: str | None = None
    total_tracks: int | None = None
    popularity: int | None = None
    url: str | None = None
    image_url: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    _REPORTED_FIELDS = (
        "name",
        "release_type",
        "release_date",
        "total_tracks",
        "popularity",
        "url",
        "image_url",
    )

    @property
    def native_key(self) -> str:
        return f"{self.platform.value}:{self.native_id}"

    @classmethod
    def from_report(
        cls, artist_id: ArtistId, reported: PlatformRelease, now: datetime
    ) -> "Release":
        return cls(
            id=ReleaseId.generate(),
            artist_id=artist_id,
            platform=reported.platform,
            native_id=reported.native_id,
            name=reported.name,
            release_type=reported.release_type,
            release_date=reported.release_date,
            total_tracks=reported.total_tracks,
            popularity=reported.popularity,
            url=reported.url,
            image_url=reported.image_url,
            created_at=now,
            updated_at=now,
        )

    def apply_report(self, reported: PlatformRelease, now: datetime) -> bool:
        """Update fields from a re-reported release.

        Returns:
            True if any field changed
        """
        changed = False
        for name in self._REPORTED_FIELDS:
            new_value = getattr(reported, name)
            if getattr(self, name) != new_value:
                setattr(self, name, new_value)
                changed = True
        if changed:
            self.updated_at = now
        return changed

    def released_at(self) -> datetime | None:
        parsed = parse_release_date(self.release_date)
        if parsed is None:
            return None
        return datetime(parsed.year, parsed.month, parsed.day, tzinfo=UTC)

    def qualifies_as_new(
        self, now: datetime, window: timedelta = DEFAULT_NOTIFICATION_TTL
    ) -> bool:
        """A release is 'new' once it has a concrete date inside [now - window, now].

        Undated, placeholder ("TBD") and future dates never qualify.
        """
        return is_recent_release(self.release_date, now, window)


class GameReleaseStatus(str, Enum):
    """Release status of a followed game."""

    RELEASED = "released"
    COMING_SOON = "coming_soon"
    UNKNOWN = "unknown"


@dataclass
class Game:
    """A game followed by a user."""

    id: GameId
    user_id: str
    name: str
    platform: str = "steam"
    url: str | None = None
    image_url: str | None = None
    release_date: str | None = None
    release_status: GameReleaseStatus = GameReleaseStatus.UNKNOWN
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Game name cannot be empty")

    @property
    def release_key(self) -> str:
        return f"game:{self.id.value}"

    def is_released(self, now: datetime) -> bool:
        """Released status AND a concrete release date that already passed.

        Hey future me - storefronts flip games to "released" while the date still says
        "Coming soon" or "Q2". Both checks must hold.
        """
        return self.release_status is GameReleaseStatus.RELEASED and is_concrete_past_date(
            self.release_date, now
        )

    def qualifies_as_new(
        self, now: datetime, window: timedelta = DEFAULT_NOTIFICATION_TTL
    ) -> bool:
        """Released, and the release date falls inside [now - window, now]."""
        return self.release_status is GameReleaseStatus.RELEASED and is_recent_release(
            self.release_date, now, window
        )


# Hey future me, StatsScope says WHICH artists a stats update or release check covers.
# Use the constructors - StatsScope.all(), .for_artist(id), .for_user(id) - never build one by hand.
@dataclass(frozen=True)
class StatsScope:
    """Target of a stats update or release check."""

    kind: str
    artist_id: ArtistId | None = None
    user_id: str | None = None

    @classmethod
    def all(cls) -> "StatsScope":
        return cls(kind="all")

    @classmethod
    def for_artist(cls, artist_id: ArtistId) -> "StatsScope":
        return cls(kind="artist", artist_id=artist_id)

    @classmethod
    def for_user(cls, user_id: str) -> "StatsScope":
        if not user_id:
            raise ValueError("user_id cannot be empty")
        return cls(kind="user", user_id=user_id)


__all__ = [
    "DEFAULT_NOTIFICATION_TTL",
    "AggregatedArtistStats",
    "Artist",
    "Game",
    "GameReleaseStatus",
    "Notification",
    "NotificationCounts",
    "NotificationState",
    "Operation",
    "Platform",
    "PlatformArtistDetail",
    "PlatformArtistSummary",
    "PlatformLink",
    "PlatformRelease",
    "PlatformStat",
    "Release",
    "StatsScope",
    "SubjectType",
    "UserRole",
]
