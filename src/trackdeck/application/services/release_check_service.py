"""Check linked platforms and followed games for new releases.

Hey future me - this wires the ReleaseDetector to storage and the platforms:
fetch reported releases (per artist, all platforms in parallel), hand them to the
detector together with what we already know, then persist new/updated releases and
publish the notifications. Everything happens on the caller's session, so a crash
halfway leaves nothing behind.

The count returned is the number of NOTIFICATIONS created - that's what the user sees.
"""

import asyncio
import logging
from datetime import datetime

from trackdeck.application.services.notification_lifecycle import NotificationLifecycleManager
from trackdeck.application.services.release_detector import ReleaseDetector
from trackdeck.domain.entities import (
    Artist,
    Platform,
    PlatformLink,
    PlatformRelease,
    StatsScope,
    SubjectType,
)
from trackdeck.domain.exceptions import EntityNotFoundException, ExternalServiceError
from trackdeck.domain.ports import (
    IArtistRepository,
    IGameRepository,
    INotificationRepository,
    IPlatformStatsSource,
    IReleaseRepository,
)

logger = logging.getLogger(__name__)


class ReleaseCheckService:
    """Runs release detection for artists and games."""

    def __init__(
        self,
        artists: IArtistRepository,
        releases: IReleaseRepository,
        games: IGameRepository,
        notifications: INotificationRepository,
        sources: dict[Platform, IPlatformStatsSource],
        detector: ReleaseDetector,
        lifecycle: NotificationLifecycleManager,
    ) -> None:
        self._artists = artists
        self._releases = releases
        self._games = games
        self._notifications = notifications
        self._sources = sources
        self._detector = detector
        self._lifecycle = lifecycle

    async def check_artists(self, scope: StatsScope, now: datetime) -> int:
        """Check every artist in scope.

        Returns:
            Number of notifications created
        """
        if scope.kind == "artist" and scope.artist_id is not None:
            artist = await self._artists.get_by_id(scope.artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", scope.artist_id.value)
            artists = [artist]
        elif scope.kind == "user" and scope.user_id:
            artists = await self._artists.list_by_user(scope.user_id)
        else:
            artists = await self._artists.list_all()

        created = 0
        for artist in artists:
            created += await self.check_artist(artist, now)
        return created

    async def check_artist(self, artist: Artist, now: datetime) -> int:
        """Detect new releases of one artist.

        Returns:
            Number of notifications created
        """
        if not artist.links:
            return 0

        batches = await asyncio.gather(*(self._fetch(link) for link in artist.links))
        reported = [release for batch in batches for release in batch]
        if not reported:
            return 0

        known = await self._releases.list_for_artist(artist.id)
        notified = await self._notifications.notified_release_keys(
            SubjectType.ARTIST, artist.id.value
        )
        result = self._detector.detect_new(artist, known, reported, now, notified_keys=notified)

        for release in result.new_releases:
            await self._releases.add(release)
        for release in result.updated_releases:
            await self._releases.update(release)

        release_dates = [
            released
            for release in result.new_releases + result.updated_releases
            if release.qualifies_as_new(now, self._detector.notification_ttl)
            and (released := release.released_at()) is not None
        ]
        if release_dates:
            artist.record_release(max(release_dates))
            await self._artists.update(artist)

        created = await self._lifecycle.publish(result.notifications)
        if result.new_releases or created:
            logger.info(
                f"Release check for {artist.name}: {len(result.new_releases)} new, "
                f"{len(result.updated_releases)} updated, {created} notifications"
            )
        return created

    async def check_games(self, user_id: str | None, now: datetime) -> int:
        """Notify about followed games that came out.

        Returns:
            Number of notifications created
        """
        notifications = []
        for game in await self._games.list_by_user(user_id):
            already = await self._notifications.exists_for(
                SubjectType.GAME, game.id.value, game.release_key
            )
            notification = self._detector.detect_game_release(game, already, now)
            if notification is not None:
                notifications.append(notification)
        return await self._lifecycle.publish(notifications)

    async def _fetch(self, link: PlatformLink) -> list[PlatformRelease]:
        source = self._sources.get(link.platform)
        if source is None:
            return []
        try:
            return await source.get_artist_releases(link.platform_id)
        except ExternalServiceError as e:
            logger.warning(f"Dropping {link.platform.value} releases for {link.platform_id}: {e}")
            return []
