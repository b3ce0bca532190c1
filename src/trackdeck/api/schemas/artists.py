"""Artist request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from trackdeck.domain.entities import Artist, Platform, PlatformArtistSummary, PlatformLink


class PlatformLinkRequest(BaseModel):
    platform: Platform
    platform_id: str = Field(alias="platformId", min_length=1)
    url: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_link(self) -> PlatformLink:
        return PlatformLink(platform=self.platform, platform_id=self.platform_id, url=self.url)


class ArtistCreateRequest(BaseModel):
    """Follow an artist, linked to at least one platform profile."""

    name: str = Field(min_length=1, max_length=255)
    links: list[PlatformLinkRequest] = Field(min_length=1)


class PlatformStatResponse(BaseModel):
    platform: Platform
    followers: int | None
    popularity: float | None
    available: bool


class ArtistResponse(BaseModel):
    id: str
    user_id: str
    name: str
    links: list[PlatformLinkRequest]
    platform_stats: list[PlatformStatResponse]
    total_followers: int
    average_popularity: float | None
    image_url: str | None
    genres: list[str]
    last_release: datetime | None
    last_stats_update: datetime | None
    created_at: datetime

    @classmethod
    def from_entity(cls, artist: Artist) -> "ArtistResponse":
        return cls(
            id=artist.id.value,
            user_id=artist.user_id,
            name=artist.name,
            links=[
                PlatformLinkRequest(
                    platform=link.platform, platform_id=link.platform_id, url=link.url
                )
                for link in artist.links
            ],
            platform_stats=[
                PlatformStatResponse(
                    platform=stat.platform,
                    followers=stat.followers,
                    popularity=stat.popularity,
                    available=stat.available,
                )
                for stat in artist.platform_stats
            ],
            total_followers=artist.total_followers,
            average_popularity=artist.average_popularity,
            image_url=artist.image_url,
            genres=artist.genres,
            last_release=artist.last_release,
            last_stats_update=artist.last_stats_update,
            created_at=artist.created_at,
        )


class RemovedResponse(BaseModel):
    retracted_count: int = Field(serialization_alias="retractedCount")


class ArtistSearchHitResponse(BaseModel):
    """Artist found on a platform, ready to be followed via its platformId."""

    platform: Platform
    platform_id: str = Field(serialization_alias="platformId")
    name: str
    followers: int | None
    image_url: str | None = Field(serialization_alias="imageUrl")
    url: str | None

    @classmethod
    def from_entity(cls, hit: PlatformArtistSummary) -> "ArtistSearchHitResponse":
        return cls(
            platform=hit.platform,
            platform_id=hit.platform_id,
            name=hit.name,
            followers=hit.followers,
            image_url=hit.image_url,
            url=hit.url,
        )
