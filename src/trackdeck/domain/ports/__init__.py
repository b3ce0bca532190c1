"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from trackdeck.domain.entities import (
    Artist,
    Game,
    Notification,
    NotificationCounts,
    NotificationState,
    Platform,
    PlatformArtistDetail,
    PlatformArtistSummary,
    PlatformRelease,
    Release,
    SubjectType,
    UserRole,
)
from trackdeck.domain.value_objects import ArtistId, GameId, NotificationId, ReleaseId


class IArtistRepository(ABC):
    """Repository interface for canonical artists."""

    @abstractmethod
    async def add(self, artist: Artist) -> None:
        """Add a new artist."""
        pass

    @abstractmethod
    async def get_by_id(self, artist_id: ArtistId) -> Artist | None:
        """Get an artist by ID."""
        pass

    @abstractmethod
    async def update(self, artist: Artist) -> None:
        """Update an existing artist."""
        pass

    @abstractmethod
    async def delete(self, artist_id: ArtistId) -> None:
        """Delete an artist (its releases are deleted with it)."""
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str, limit: int | None = None) -> list[Artist]:
        """List the artists followed by a user."""
        pass

    @abstractmethod
    async def list_all(self, limit: int | None = None) -> list[Artist]:
        """List every artist."""
        pass

    @abstractmethod
    async def list_stale(self, updated_before: datetime, limit: int) -> list[Artist]:
        """List artists whose stats were never updated or not since updated_before."""
        pass


class IReleaseRepository(ABC):
    """Repository interface for releases."""

    @abstractmethod
    async def add(self, release: Release) -> None:
        pass

    @abstractmethod
    async def update(self, release: Release) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, release_id: ReleaseId) -> Release | None:
        pass

    @abstractmethod
    async def list_for_artist(self, artist_id: ArtistId) -> list[Release]:
        pass


class IGameRepository(ABC):
    """Repository interface for followed games."""

    @abstractmethod
    async def add(self, game: Game) -> None:
        pass

    @abstractmethod
    async def update(self, game: Game) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, game_id: GameId) -> Game | None:
        pass

    @abstractmethod
    async def delete(self, game_id: GameId) -> None:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str | None = None) -> list[Game]:
        """List games of one user, or every game when user_id is None."""
        pass


class INotificationRepository(ABC):
    """Repository interface for notifications."""

    @abstractmethod
    async def add(self, notification: Notification) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, notification_id: NotificationId) -> Notification | None:
        pass

    @abstractmethod
    async def list_active(self) -> list[Notification]:
        pass

    @abstractmethod
    async def list_active_due(self, now: datetime) -> list[Notification]:
        """Active notifications with expires_at <= now."""
        pass

    @abstractmethod
    async def list_active_for_subject(
        self, subject_type: SubjectType, subject_id: str
    ) -> list[Notification]:
        pass

    @abstractmethod
    async def exists_for(
        self, subject_type: SubjectType, subject_id: str, release_key: str
    ) -> bool:
        """Check for a notification in ANY state for (subject, release)."""
        pass

    @abstractmethod
    async def notified_release_keys(self, subject_type: SubjectType, subject_id: str) -> set[str]:
        """Release keys of a subject that ever had a notification, in any state."""
        pass

    @abstractmethod
    async def save_transition(self, notification: Notification) -> bool:
        """Persist a state transition made on the entity.

        Only applies while the stored row is still active.

        Returns:
            True if the row transitioned, False if it was already terminal
        """
        pass

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        state: NotificationState | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        pass

    @abstractmethod
    async def count_by_state(self, user_id: str | None = None) -> NotificationCounts:
        pass


class IUserRoleRepository(ABC):
    """Repository interface for user roles."""

    @abstractmethod
    async def get_role(self, user_id: str | None) -> UserRole:
        """Role of the user, UNKNOWN when missing."""
        pass

    @abstractmethod
    async def set_role(self, user_id: str, role: UserRole) -> None:
        pass

    @abstractmethod
    async def list_users(self, role: UserRole | None = None) -> list[tuple[str, UserRole]]:
        """(user_id, role) pairs ordered by user_id, optionally filtered by role."""
        pass


class IJobLockRepository(ABC):
    """Shared exclusivity table keyed by trigger class.

    Hey future me - implementations MUST be atomic across processes and server
    instances. An in-memory dict is NOT a valid implementation.
    """

    @abstractmethod
    async def acquire(self, key: str, owner: str, now: datetime, stale_before: datetime) -> bool:
        """Try to take the key.

        Locks acquired before stale_before are treated as abandoned and taken over.

        Returns:
            True if the caller now holds the key
        """
        pass

    @abstractmethod
    async def release(self, key: str, owner: str) -> None:
        """Release the key if still held by owner."""
        pass

    @abstractmethod
    async def is_locked(self, key: str) -> bool:
        pass


class IPlatformStatsSource(ABC):
    """One external platform (Spotify, Deezer, ...).

    Any call may raise ExternalServiceError. Empty-but-successful answers
    are NOT errors: they return empty lists or details without statistics.
    """

    @property
    @abstractmethod
    def platform(self) -> Platform:
        pass

    @abstractmethod
    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        pass

    @abstractmethod
    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        pass

    @abstractmethod
    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        pass


__all__ = [
    "IArtistRepository",
    "IGameRepository",
    "IJobLockRepository",
    "INotificationRepository",
    "IPlatformStatsSource",
    "IReleaseRepository",
    "IUserRoleRepository",
]
