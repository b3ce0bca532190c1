"""Notification state machine and the two cleanup sweeps.

Hey future me - notifications only ever move FORWARD:

    active → expired     sweep_expired: the 7-day window elapsed
    active → retracted   sweep_false_positives / retract_for_subject: the reason for the
                         notification is gone (artist unlinked, release corrected, ...)

Both sweeps are idempotent. They only look at ACTIVE rows, and every write goes through
save_transition(), which is an UPDATE ... WHERE state = 'active'. If two sweeps race, the
loser's UPDATE matches nothing and is NOT counted. Rows are never deleted here.
"""

import logging
from datetime import datetime, timedelta
from typing import TypeVar

from trackdeck.domain.entities import (
    DEFAULT_NOTIFICATION_TTL,
    Notification,
    SubjectType,
)
from trackdeck.domain.exceptions import InvalidStateException
from trackdeck.domain.ports import (
    IArtistRepository,
    IGameRepository,
    INotificationRepository,
    IReleaseRepository,
)
from trackdeck.domain.value_objects import ArtistId, EntityId, GameId, ReleaseId

logger = logging.getLogger(__name__)

IdT = TypeVar("IdT", bound=EntityId)

REASON_SUBJECT_REMOVED = "subject_removed"
REASON_RELEASE_REMOVED = "release_removed"
REASON_RELEASE_NOT_NEW = "release_no_longer_new"
REASON_GAME_NOT_RELEASED = "game_not_released"


class NotificationLifecycleManager:
    """Creates notifications and retires stale or incorrect ones."""

    def __init__(
        self,
        notifications: INotificationRepository,
        artists: IArtistRepository,
        releases: IReleaseRepository,
        games: IGameRepository,
        notification_ttl: timedelta = DEFAULT_NOTIFICATION_TTL,
    ) -> None:
        self._notifications = notifications
        self._artists = artists
        self._releases = releases
        self._games = games
        self._ttl = notification_ttl

    async def publish(self, notifications: list[Notification]) -> int:
        """Store freshly detected notifications.

        Returns:
            Number of notifications stored
        """
        for notification in notifications:
            await self._notifications.add(notification)
        return len(notifications)

    async def sweep_expired(self, now: datetime) -> int:
        """Expire every active notification whose window has elapsed.

        Returns:
            Number of notifications moved to expired
        """
        count = 0
        for notification in await self._notifications.list_active_due(now):
            if not notification.is_due(now):
                continue
            notification.expire(now)
            if await self._notifications.save_transition(notification):
                count += 1

        if count:
            logger.info(f"Expired {count} notifications")
        return count

    async def sweep_false_positives(self, now: datetime) -> int:
        """Re-validate every active notification and retract the ones that no longer hold.

        Returns:
            Number of notifications moved to retracted
        """
        count = 0
        for notification in await self._notifications.list_active():
            reason = await self.invalidation_reason(notification, now)
            if reason is None:
                continue
            if await self._retract(notification, now, reason):
                count += 1
                logger.info(
                    f"Retracted notification {notification.id.value} "
                    f"({notification.subject_type.value} {notification.subject_id}): {reason}"
                )
        return count

    async def retract_for_subject(
        self,
        subject_type: SubjectType,
        subject_id: str,
        now: datetime,
        reason: str = REASON_SUBJECT_REMOVED,
    ) -> int:
        """Retract all active notifications of one artist or game.

        Returns:
            Number of notifications moved to retracted
        """
        count = 0
        for notification in await self._notifications.list_active_for_subject(
            subject_type, subject_id
        ):
            if await self._retract(notification, now, reason):
                count += 1
        return count

    async def invalidation_reason(self, notification: Notification, now: datetime) -> str | None:
        """Check whether the condition that created a notification still holds.

        Returns:
            None if the notification is still valid, otherwise the retraction reason
        """
        if notification.subject_type is SubjectType.ARTIST:
            return await self._artist_reason(notification, now)
        return await self._game_reason(notification, now)

    async def _artist_reason(self, notification: Notification, now: datetime) -> str | None:
        artist_id = _parse_id(ArtistId, notification.subject_id)
        artist = await self._artists.get_by_id(artist_id) if artist_id else None
        if artist is None:
            return REASON_SUBJECT_REMOVED

        release = None
        release_id = _parse_id(ReleaseId, notification.release_id)
        if release_id is not None:
            release = await self._releases.get_by_id(release_id)
        if release is None:
            # Older notifications may only carry the native key
            for candidate in await self._releases.list_for_artist(artist.id):
                if candidate.native_key == notification.release_key:
                    release = candidate
                    break
        if release is None or release.artist_id != artist.id:
            return REASON_RELEASE_REMOVED

        # Valid if it was news when we announced it, or is news under today's data.
        if release.qualifies_as_new(notification.created_at, self._ttl) or release.qualifies_as_new(
            now, self._ttl
        ):
            return None
        return REASON_RELEASE_NOT_NEW

    async def _game_reason(self, notification: Notification, now: datetime) -> str | None:
        game_id = _parse_id(GameId, notification.subject_id)
        game = await self._games.get_by_id(game_id) if game_id else None
        if game is None:
            return REASON_SUBJECT_REMOVED
        if not game.is_released(now):
            return REASON_GAME_NOT_RELEASED
        if game.qualifies_as_new(notification.created_at, self._ttl) or game.qualifies_as_new(
            now, self._ttl
        ):
            return None
        return REASON_RELEASE_NOT_NEW

    async def _retract(self, notification: Notification, now: datetime, reason: str) -> bool:
        try:
            notification.retract(now, reason)
        except InvalidStateException as e:
            logger.debug(f"Skipping retraction: {e}")
            return False
        return await self._notifications.save_transition(notification)


def _parse_id(id_type: type[IdT], value: str | None) -> IdT | None:
    if not value:
        return None
    try:
        return id_type.from_string(value)
    except ValueError:
        return None
