"""Notification entity and its state machine.

Hey future me - a Notification is a TIME-BOUNDED alert:

    active ──(now >= expires_at)──► expired
       │
       └──(justifying condition gone)──► retracted

expired and retracted are TERMINAL. There is no way back to active, and the
methods below raise InvalidStateException instead of silently doing nothing, so
sweeps can never double-count a transition.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from trackdeck.domain.exceptions import InvalidStateException
from trackdeck.domain.value_objects import NotificationId

DEFAULT_NOTIFICATION_TTL = timedelta(days=7)


class NotificationState(str, Enum):
    """Lifecycle state of a notification."""

    ACTIVE = "active"
    EXPIRED = "expired"
    RETRACTED = "retracted"

    @property
    def is_terminal(self) -> bool:
        return self is not NotificationState.ACTIVE


class SubjectType(str, Enum):
    """What a notification is about."""

    ARTIST = "artist"
    GAME = "game"


@dataclass
class Notification:
    """User-facing alert for a detected new release."""

    id: NotificationId
    user_id: str
    subject_type: SubjectType
    subject_id: str
    # Native key of the release ("spotify:4aawyAB9vmqN3uQ7FjRGTy") or "game:<id>"
    release_key: str
    title: str
    created_at: datetime
    expires_at: datetime
    description: str | None = None
    release_id: str | None = None
    platform_url: str | None = None
    image_url: str | None = None
    state: NotificationState = NotificationState.ACTIVE
    state_changed_at: datetime | None = None
    retraction_reason: str | None = None

    def __post_init__(self) -> None:
        if self.expires_at <= self.created_at:
            raise ValueError("Notification must expire after it was created")

    @classmethod
    def create(
        cls,
        *,
        user_id: str,
        subject_type: SubjectType,
        subject_id: str,
        release_key: str,
        title: str,
        now: datetime,
        ttl: timedelta = DEFAULT_NOTIFICATION_TTL,
        description: str | None = None,
        release_id: str | None = None,
        platform_url: str | None = None,
        image_url: str | None = None,
    ) -> "Notification":
        """Create a new active notification expiring ttl after now."""
        return cls(
            id=NotificationId(str(uuid.uuid4())),
            user_id=user_id,
            subject_type=subject_type,
            subject_id=subject_id,
            release_key=release_key,
            title=title,
            description=description,
            release_id=release_id,
            platform_url=platform_url,
            image_url=image_url,
            created_at=now,
            expires_at=now + ttl,
        )

    @property
    def is_active(self) -> bool:
        return self.state is NotificationState.ACTIVE

    def is_due(self, now: datetime) -> bool:
        """Check whether the expiration window has elapsed."""
        return now >= self.expires_at

    def expire(self, now: datetime) -> None:
        """Move active → expired."""
        if not self.is_active:
            raise InvalidStateException(
                f"Cannot expire notification {self.id.value} in state {self.state.value}"
            )
        if not self.is_due(now):
            raise InvalidStateException(
                f"Notification {self.id.value} does not expire before {self.expires_at.isoformat()}"
            )
        self.state = NotificationState.EXPIRED
        self.state_changed_at = now

    def retract(self, now: datetime, reason: str) -> None:
        """Move active → retracted."""
        if not self.is_active:
            raise InvalidStateException(
                f"Cannot retract notification {self.id.value} in state {self.state.value}"
            )
        self.state = NotificationState.RETRACTED
        self.state_changed_at = now
        self.retraction_reason = reason


@dataclass(frozen=True)
class NotificationCounts:
    """Per-state counts for one user (or everybody)."""

    active: int = 0
    expired: int = 0
    retracted: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
