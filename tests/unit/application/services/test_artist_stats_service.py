"""Tests for ArtistStatsService."""

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from trackdeck.application.services import ArtistStatsService, StatsAggregator
from trackdeck.domain.entities import (
    Artist,
    Platform,
    PlatformArtistDetail,
    PlatformLink,
    PlatformStat,
    StatsScope,
)
from trackdeck.domain.exceptions import EntityNotFoundException
from trackdeck.domain.value_objects import ArtistId

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def artist() -> Artist:
    artist = Artist(id=ArtistId.generate(), user_id="user-1", name="Jon Hopkins")
    artist.link_platform(PlatformLink(Platform.SPOTIFY, "sp1"))
    artist.link_platform(PlatformLink(Platform.DEEZER, "dz1"))
    return artist


@pytest.fixture
def artists_repo(artist: Artist) -> AsyncMock:
    repo = AsyncMock()
    repo.get_by_id.return_value = artist
    repo.list_by_user.return_value = [artist]
    repo.list_stale.return_value = [artist]
    return repo


@pytest.fixture
def sources(platform_sources: dict[Platform, Any]) -> dict[Platform, Any]:
    platform_sources[Platform.SPOTIFY].details["sp1"] = PlatformArtistDetail(
        platform=Platform.SPOTIFY,
        platform_id="sp1",
        followers=100,
        popularity=80,
        image_url="https://img.example/sp1.jpg",
        genres=("electronic",),
    )
    platform_sources[Platform.DEEZER].details["dz1"] = PlatformArtistDetail(
        platform=Platform.DEEZER,
        platform_id="dz1",
        followers=50,
        image_url="https://img.example/dz1.jpg",
    )
    return platform_sources


@pytest.fixture
def service(artists_repo: AsyncMock, sources: dict[Platform, Any]) -> ArtistStatsService:
    return ArtistStatsService(
        artists_repo,
        sources,  # type: ignore[arg-type]
        StatsAggregator(),
        batch_size=5,
        stale_after=timedelta(minutes=30),
    )


class TestArtistStatsService:
    """Test stats refresh per artist and per scope."""

    async def test_updates_artist_from_all_platforms(
        self, service: ArtistStatsService, artist: Artist, artists_repo: AsyncMock
    ) -> None:
        assert await service.update(StatsScope.for_artist(artist.id), NOW) == 1

        assert artist.total_followers == 150
        assert artist.average_popularity == 80
        assert artist.last_stats_update == NOW
        assert artist.image_url == "https://img.example/sp1.jpg"
        assert artist.genres == ["electronic"]
        artists_repo.update.assert_awaited_once_with(artist)

    async def test_failed_platform_is_dropped_not_faked(
        self,
        service: ArtistStatsService,
        artist: Artist,
        sources: dict[Platform, Any],
    ) -> None:
        sources[Platform.SPOTIFY].failing.add("sp1")

        assert await service.update_artist(artist, NOW) is True

        assert artist.total_followers == 50
        assert artist.average_popularity is None
        assert PlatformStat(platform=Platform.SPOTIFY, available=False) in artist.platform_stats
        assert artist.image_url == "https://img.example/dz1.jpg"

    async def test_all_platforms_failing_leaves_artist_untouched(
        self,
        service: ArtistStatsService,
        artist: Artist,
        artists_repo: AsyncMock,
        sources: dict[Platform, Any],
    ) -> None:
        artist.total_followers = 999
        sources[Platform.SPOTIFY].failing.add("sp1")
        sources[Platform.DEEZER].failing.add("dz1")

        assert await service.update(StatsScope.for_artist(artist.id), NOW) == 0

        assert artist.total_followers == 999
        assert artist.last_stats_update is None
        artists_repo.update.assert_not_awaited()

    async def test_artist_without_links_is_skipped(
        self, service: ArtistStatsService, artists_repo: AsyncMock
    ) -> None:
        lonely = Artist(id=ArtistId.generate(), user_id="user-1", name="Nobody")
        assert await service.update_artist(lonely, NOW) is False
        artists_repo.update.assert_not_awaited()

    async def test_missing_artist_raises(
        self, service: ArtistStatsService, artists_repo: AsyncMock
    ) -> None:
        artists_repo.get_by_id.return_value = None
        with pytest.raises(EntityNotFoundException):
            await service.update(StatsScope.for_artist(ArtistId.generate()), NOW)

    async def test_scope_user_is_batched(
        self, service: ArtistStatsService, artists_repo: AsyncMock
    ) -> None:
        await service.update(StatsScope.for_user("user-1"), NOW)
        artists_repo.list_by_user.assert_awaited_once_with("user-1", limit=5)

    async def test_scope_all_takes_stalest_batch(
        self, service: ArtistStatsService, artists_repo: AsyncMock
    ) -> None:
        await service.update(StatsScope.all(), NOW)
        artists_repo.list_stale.assert_awaited_once_with(NOW - timedelta(minutes=30), 5)
