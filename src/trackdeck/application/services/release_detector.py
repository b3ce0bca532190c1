"""Decide which reported platform releases are new and spawn notifications.

Hey future me - the detector is pure too. It gets what we already know (stored
releases + keys that were ever notified) and what the platform reports now, and
returns what to persist. The service does the I/O.

Rules:
- Identity is (artist, native_key). Never match by name.
- Unknown key → new Release. If it qualifies as new (concrete date inside the
  notification window, not in the future) it also gets ONE active notification.
- Known key → update in place when something changed. No second notification,
  EXCEPT when the release was stored before it qualified (pre-announced, date in
  the future) and has never been notified. Release day is news.
- Duplicate keys inside one report collapse: first in processing order wins.
- Processing order: release date descending, undated last, ties by native_key.
"""

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from trackdeck.domain.entities import (
    DEFAULT_NOTIFICATION_TTL,
    Artist,
    Game,
    Notification,
    PlatformRelease,
    Release,
    SubjectType,
)
from trackdeck.domain.value_objects import parse_release_date

logger = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    """What a release check wants persisted."""

    new_releases: list[Release] = field(default_factory=list)
    updated_releases: list[Release] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)


def _processing_order(reported: PlatformRelease) -> tuple[bool, int, str]:
    parsed = parse_release_date(reported.release_date)
    return (parsed is None, -parsed.toordinal() if parsed else 0, reported.native_key)


class ReleaseDetector:
    """Detects new releases for artists and games."""

    def __init__(self, notification_ttl: timedelta = DEFAULT_NOTIFICATION_TTL) -> None:
        self._ttl = notification_ttl

    @property
    def notification_ttl(self) -> timedelta:
        return self._ttl

    def detect_new(
        self,
        artist: Artist,
        known: Iterable[Release],
        reported: Iterable[PlatformRelease],
        now: datetime,
        notified_keys: Collection[str] = (),
    ) -> DetectionResult:
        """Compare a platform report against the stored release history.

        Args:
            artist: Canonical artist the report belongs to
            known: Stored releases of this artist
            reported: Releases reported by the platforms right now
            now: Detection time (notifications are created at now)
            notified_keys: release keys that already had a notification, in any state

        Returns:
            DetectionResult with new/updated releases and the notifications to create
        """
        known_by_key = {release.native_key: release for release in known}
        notified = set(notified_keys)
        result = DetectionResult()
        seen: set[str] = set()

        for item in sorted(reported, key=_processing_order):
            key = item.native_key
            if key in seen:
                logger.debug(f"Skipping duplicate release {key} in report for {artist.name}")
                continue
            seen.add(key)

            existing = known_by_key.get(key)
            if existing is None:
                release = Release.from_report(artist.id, item, now)
                result.new_releases.append(release)
            else:
                release = existing
                if release.apply_report(item, now):
                    result.updated_releases.append(release)

            if key in notified or not release.qualifies_as_new(now, self._ttl):
                continue

            result.notifications.append(self._artist_notification(artist, release, now))
            notified.add(key)

        return result

    def detect_game_release(
        self, game: Game, already_notified: bool, now: datetime
    ) -> Notification | None:
        """Spawn a notification when a followed game came out inside the window."""
        if already_notified or not game.qualifies_as_new(now, self._ttl):
            return None
        return Notification.create(
            user_id=game.user_id,
            subject_type=SubjectType.GAME,
            subject_id=game.id.value,
            release_key=game.release_key,
            title=game.name,
            description=f"{game.name} is out now",
            platform_url=game.url,
            image_url=game.image_url,
            now=now,
            ttl=self._ttl,
        )

    def _artist_notification(self, artist: Artist, release: Release, now: datetime) -> Notification:
        return Notification.create(
            user_id=artist.user_id,
            subject_type=SubjectType.ARTIST,
            subject_id=artist.id.value,
            release_key=release.native_key,
            release_id=release.id.value,
            title=release.name,
            description=f"New {release.release_type} by {artist.name}: {release.name}",
            platform_url=release.url,
            image_url=release.image_url,
            now=now,
            ttl=self._ttl,
        )
