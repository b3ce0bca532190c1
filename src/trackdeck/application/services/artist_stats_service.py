"""Refresh canonical artist statistics from the linked platforms.

Hey future me - this is the job behind "triggerStatsUpdate". Per artist:

1. Fan out get_artist_details() to every linked platform (asyncio.gather)
2. Drop the platforms that failed (ExternalServiceError) - logged as warning
3. Aggregate what came back; failed platforms are stored as available=False
4. Persist on the injected session (the caller commits)

If EVERY linked platform failed we leave the artist untouched and don't count it.
We never write made-up fallback numbers.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from trackdeck.application.services.stats_aggregator import StatsAggregator
from trackdeck.domain.entities import (
    Artist,
    Platform,
    PlatformArtistDetail,
    PlatformLink,
    StatsScope,
)
from trackdeck.domain.exceptions import EntityNotFoundException, ExternalServiceError
from trackdeck.domain.ports import IArtistRepository, IPlatformStatsSource

logger = logging.getLogger(__name__)

# Image and genres come from the first platform (in this order) that has them
_METADATA_PREFERENCE = (Platform.SPOTIFY, Platform.DEEZER, Platform.SOUNDCLOUD, Platform.YOUTUBE)


class ArtistStatsService:
    """Fetches, aggregates and stores artist statistics."""

    def __init__(
        self,
        artists: IArtistRepository,
        sources: dict[Platform, IPlatformStatsSource],
        aggregator: StatsAggregator,
        batch_size: int = 10,
        stale_after: timedelta = timedelta(minutes=60),
    ) -> None:
        self._artists = artists
        self._sources = sources
        self._aggregator = aggregator
        self._batch_size = batch_size
        self._stale_after = stale_after

    async def update(self, scope: StatsScope, now: datetime) -> int:
        """Update every artist in scope.

        Returns:
            Number of artists whose stats were updated
        """
        updated = 0
        for artist in await self.select_artists(scope, now):
            if await self.update_artist(artist, now):
                updated += 1
        return updated

    async def select_artists(self, scope: StatsScope, now: datetime) -> list[Artist]:
        """Resolve a scope to the artists it covers.

        "all" is batched to the stalest stats_batch_size artists so one trigger can't
        hammer every platform for the whole catalogue.
        """
        if scope.kind == "artist" and scope.artist_id is not None:
            artist = await self._artists.get_by_id(scope.artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", scope.artist_id.value)
            return [artist]
        if scope.kind == "user" and scope.user_id:
            return await self._artists.list_by_user(scope.user_id, limit=self._batch_size)
        return await self._artists.list_stale(now - self._stale_after, self._batch_size)

    async def update_artist(self, artist: Artist, now: datetime) -> bool:
        """Refresh one artist.

        Returns:
            True if the artist was updated, False if nothing could be fetched
        """
        if not artist.links:
            logger.debug(f"Artist {artist.name} has no linked platforms, skipping")
            return False

        results = await asyncio.gather(*(self._fetch(link) for link in artist.links))
        details = [detail for detail in results if detail is not None]
        failed = [link.platform for link, detail in zip(artist.links, results) if detail is None]

        if not details:
            logger.warning(
                f"All {len(artist.links)} platforms failed for artist {artist.name} "
                f"({artist.id.value}), keeping previous stats"
            )
            return False

        stats = self._aggregator.aggregate(details, unavailable=failed)
        artist.apply_stats(stats, now)
        self._apply_metadata(artist, details)
        await self._artists.update(artist)

        logger.debug(
            f"Updated stats for {artist.name}: {stats.total_followers} followers, "
            f"popularity {stats.average_popularity}, {len(failed)} platform(s) unavailable"
        )
        return True

    async def _fetch(self, link: PlatformLink) -> PlatformArtistDetail | None:
        source = self._sources.get(link.platform)
        if source is None:
            logger.warning(f"No source configured for platform {link.platform.value}")
            return None
        try:
            return await source.get_artist_details(link.platform_id)
        except ExternalServiceError as e:
            logger.warning(f"Dropping {link.platform.value} stats for {link.platform_id}: {e}")
            return None

    @staticmethod
    def _apply_metadata(artist: Artist, details: list[PlatformArtistDetail]) -> None:
        ranked = sorted(
            details,
            key=lambda d: _METADATA_PREFERENCE.index(d.platform)
            if d.platform in _METADATA_PREFERENCE
            else len(_METADATA_PREFERENCE),
        )
        image = next((d.image_url for d in ranked if d.image_url), None)
        if image:
            artist.image_url = image
        genres = next((d.genres for d in ranked if d.genres), None)
        if genres:
            artist.genres = list(genres)
