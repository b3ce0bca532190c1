"""Platform adapters on top of the remote functions.

Hey future me - each adapter knows two things: which remote function to call
with which payload, and how to read that platform's response shape. Everything
else (aggregation, dedupe, notifications) happens in the application layer.

Error contract (IPlatformStatsSource):
- FunctionResult.error → ExternalServiceError (the caller drops the record)
- data None / empty → empty-but-valid answer ([] or a detail without statistics)
"""

from __future__ import annotations

import logging
from typing import Any

from trackdeck.domain.entities import (
    Platform,
    PlatformArtistDetail,
    PlatformArtistSummary,
    PlatformRelease,
)
from trackdeck.domain.exceptions import ExternalServiceError
from trackdeck.domain.ports import IPlatformStatsSource
from trackdeck.infrastructure.integrations.remote_function_client import RemoteFunctionClient

logger = logging.getLogger(__name__)


def _first_image(images: Any) -> str | None:
    if isinstance(images, list) and images and isinstance(images[0], dict):
        return _text(images[0].get("url"))
    return None


# Yo, YouTube reports subscriberCount as a STRING ("12500"). Numeric strings become ints,
# anything else passes through untouched and the aggregator treats it as absent.
def _numeric(value: Any) -> Any:
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _count(value: Any) -> int | None:
    value = _numeric(value)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list | tuple):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _as_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class RemoteFunctionSource(IPlatformStatsSource):
    """Base class for adapters backed by one remote function."""

    FUNCTION_NAME: str = ""
    PLATFORM: Platform

    def __init__(self, client: RemoteFunctionClient) -> None:
        self._client = client

    @property
    def platform(self) -> Platform:
        return self.PLATFORM

    async def _call(self, payload: dict[str, Any]) -> Any:
        result = await self._client.invoke(self.FUNCTION_NAME, payload)
        if result.error is not None:
            raise ExternalServiceError(
                f"{self.PLATFORM.value} lookup failed: {result.error}",
                service=self.PLATFORM.value,
            )
        return result.data


class SpotifySource(RemoteFunctionSource):
    """Spotify via get-spotify-artist-info.

    Artist payload: {"artist": {...}, "releases": [...]}. One call answers
    both details and releases.
    """

    FUNCTION_NAME = "get-spotify-artist-info"
    PLATFORM = Platform.SPOTIFY

    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        data = await self._call({"query": query, "type": "search"})
        return [
            PlatformArtistSummary(
                platform=self.PLATFORM,
                platform_id=str(item["id"]),
                name=_text(item.get("name")) or "",
                followers=_count(_as_dict(item.get("followers")).get("total")),
                image_url=_first_image(item.get("images")),
                url=_text(_as_dict(item.get("external_urls")).get("spotify")),
            )
            for item in _as_list(data)
            if item.get("id")
        ]

    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        data = await self._call({"query": platform_id, "type": "artist"})
        artist = data.get("artist") if isinstance(data, dict) else None
        if not isinstance(artist, dict):
            return PlatformArtistDetail(platform=self.PLATFORM, platform_id=platform_id)
        return PlatformArtistDetail(
            platform=self.PLATFORM,
            platform_id=platform_id,
            name=_text(artist.get("name")),
            followers=_as_dict(artist.get("followers")).get("total"),
            popularity=artist.get("popularity"),
            image_url=_first_image(artist.get("images")),
            genres=_strings(artist.get("genres")),
        )

    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        data = await self._call({"query": platform_id, "type": "artist"})
        releases = data.get("releases") if isinstance(data, dict) else None
        return [
            PlatformRelease(
                platform=self.PLATFORM,
                native_id=str(item["id"]),
                name=item.get("name") or "Untitled",
                release_type=item.get("album_type") or "album",
                release_date=item.get("release_date"),
                total_tracks=item.get("total_tracks"),
                url=_text(_as_dict(item.get("external_urls")).get("spotify")),
                image_url=_first_image(item.get("images")),
            )
            for item in _as_list(releases)
            if item.get("id")
        ]


class DeezerSource(RemoteFunctionSource):
    """Deezer via get-deezer-artist-info.

    Deezer reports fans (nb_fan) but no popularity score.
    """

    FUNCTION_NAME = "get-deezer-artist-info"
    PLATFORM = Platform.DEEZER

    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        data = await self._call({"artistName": query})
        return [
            PlatformArtistSummary(
                platform=self.PLATFORM,
                platform_id=str(item["id"]),
                name=_text(item.get("name")) or "",
                followers=_count(item.get("nb_fan")),
                image_url=_text(item.get("picture_xl")) or _text(item.get("picture")),
                url=_text(item.get("link")),
            )
            for item in _as_list(data)
            if item.get("id")
        ]

    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        data = await self._call({"artistId": str(platform_id)})
        if not isinstance(data, dict) or not data:
            return PlatformArtistDetail(platform=self.PLATFORM, platform_id=platform_id)
        return PlatformArtistDetail(
            platform=self.PLATFORM,
            platform_id=platform_id,
            name=_text(data.get("name")),
            followers=data.get("nb_fan"),
            popularity=None,
            image_url=_text(data.get("picture_xl")) or _text(data.get("picture")),
        )

    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        data = await self._call({"artistId": str(platform_id)})
        albums = data.get("albums") if isinstance(data, dict) else None
        # Deezer wraps lists as {"data": [...]} in some responses
        if isinstance(albums, dict):
            albums = albums.get("data")
        return [
            PlatformRelease(
                platform=self.PLATFORM,
                native_id=str(item["id"]),
                name=item.get("title") or "Untitled",
                release_type=item.get("record_type") or "album",
                release_date=item.get("release_date"),
                total_tracks=item.get("nb_tracks"),
                url=_text(item.get("link")),
                image_url=item.get("cover_xl") or item.get("cover"),
            )
            for item in _as_list(albums)
            if item.get("id")
        ]


# Hey future me - SoundCloud profiles are identified by their permalink URL, not a numeric
# id. That's what the remote function expects as artistUrl, so platform_id IS the URL here.
class SoundCloudSource(RemoteFunctionSource):
    """SoundCloud via get-soundcloud-info."""

    FUNCTION_NAME = "get-soundcloud-info"
    PLATFORM = Platform.SOUNDCLOUD
    RELEASE_LIMIT = 10

    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        data = await self._call({"query": query, "type": "search-artists"})
        artists = data.get("artists") if isinstance(data, dict) else None
        return [
            PlatformArtistSummary(
                platform=self.PLATFORM,
                platform_id=_text(item.get("permalink_url")) or str(item["id"]),
                name=_text(item.get("full_name")) or _text(item.get("username")) or "",
                followers=_count(item.get("followers_count")),
                image_url=_text(item.get("avatar_url")),
                url=_text(item.get("permalink_url")),
            )
            for item in _as_list(artists)
            if item.get("id") or item.get("permalink_url")
        ]

    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        data = await self._call({"artistUrl": platform_id, "type": "artist-info"})
        artist = data.get("artist") if isinstance(data, dict) else None
        if not isinstance(artist, dict):
            return PlatformArtistDetail(platform=self.PLATFORM, platform_id=platform_id)
        return PlatformArtistDetail(
            platform=self.PLATFORM,
            platform_id=platform_id,
            name=_text(artist.get("full_name")) or _text(artist.get("username")),
            followers=artist.get("followers_count"),
            popularity=None,
            image_url=_text(artist.get("avatar_url")),
        )

    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        data = await self._call(
            {"artistUrl": platform_id, "type": "artist-releases", "limit": self.RELEASE_LIMIT}
        )
        releases = data.get("releases") if isinstance(data, dict) else None
        result = []
        for item in _as_list(releases):
            if not item.get("id"):
                continue
            created_at = item.get("created_at")
            result.append(
                PlatformRelease(
                    platform=self.PLATFORM,
                    native_id=str(item["id"]),
                    name=item.get("title") or "Untitled",
                    release_type="track",
                    # "2024-05-17T10:00:00Z" → "2024-05-17"
                    release_date=created_at[:10] if isinstance(created_at, str) else None,
                    url=item.get("permalink_url"),
                    image_url=item.get("artwork_url"),
                )
            )
        return result


class YouTubeSource(RemoteFunctionSource):
    """YouTube via get-youtube-info. Subscribers count as followers."""

    FUNCTION_NAME = "get-youtube-info"
    PLATFORM = Platform.YOUTUBE

    async def search_artists(self, query: str) -> list[PlatformArtistSummary]:
        data = await self._call({"artistName": query, "type": "search"})
        return [
            PlatformArtistSummary(
                platform=self.PLATFORM,
                platform_id=str(item["id"]),
                name=_text(item.get("name")) or "",
                followers=_count(item.get("subscriberCount")),
                image_url=_first_image(item.get("thumbnails")),
                url=_text(item.get("channelUrl")),
            )
            for item in _as_list(data)
            if item.get("id")
        ]

    async def get_artist_details(self, platform_id: str) -> PlatformArtistDetail:
        data = await self._call({"channelId": platform_id, "type": "artist"})
        if not isinstance(data, dict) or not data:
            return PlatformArtistDetail(platform=self.PLATFORM, platform_id=platform_id)
        statistics = _as_dict(data.get("statistics"))
        subscribers = statistics.get("subscriberCount", data.get("subscriberCount"))
        return PlatformArtistDetail(
            platform=self.PLATFORM,
            platform_id=platform_id,
            name=_text(data.get("name")),
            followers=_numeric(subscribers),
            popularity=None,
            image_url=_first_image(data.get("thumbnails")),
        )

    async def get_artist_releases(self, platform_id: str) -> list[PlatformRelease]:
        # Channel uploads are videos, not releases. Nothing to track here.
        return []


def build_platform_sources(client: RemoteFunctionClient) -> dict[Platform, IPlatformStatsSource]:
    """Create one adapter per supported platform, sharing one client."""
    sources: list[IPlatformStatsSource] = [
        SpotifySource(client),
        DeezerSource(client),
        SoundCloudSource(client),
        YouTubeSource(client),
    ]
    return {source.platform: source for source in sources}
