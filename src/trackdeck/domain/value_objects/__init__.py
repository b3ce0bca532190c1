"""Domain value objects."""

import uuid
from dataclasses import dataclass
from typing import Self


# Hey future me, IDs are frozen dataclasses wrapping a UUID string! Frozen means hashable, so
# they work as dict keys and in sets. Always build them with generate() or from_string() -
# from_string() validates the format and raises ValueError on garbage like "not-a-uuid".
@dataclass(frozen=True)
class EntityId:
    value: str

    def __post_init__(self) -> None:
        try:
            uuid.UUID(self.value)
        except (ValueError, AttributeError, TypeError) as e:
            raise ValueError(f"Invalid {type(self).__name__}: {self.value!r}") from e

    @classmethod
    def generate(cls) -> Self:
        """Create a new random ID."""
        return cls(str(uuid.uuid4()))

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Parse an ID from its string form."""
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ArtistId(EntityId):
    """Artist identifier."""


@dataclass(frozen=True)
class ReleaseId(EntityId):
    """Release identifier."""


@dataclass(frozen=True)
class GameId(EntityId):
    """Game identifier."""


@dataclass(frozen=True)
class NotificationId(EntityId):
    """Notification identifier."""


from trackdeck.domain.value_objects.release_date import (  # noqa: E402
    is_concrete_past_date,
    is_recent_release,
    parse_release_date,
)

__all__ = [
    "ArtistId",
    "EntityId",
    "GameId",
    "NotificationId",
    "ReleaseId",
    "is_concrete_past_date",
    "is_recent_release",
    "parse_release_date",
]
