"""Artist endpoints: follow, link platforms, unfollow."""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, status

from trackdeck.api.dependencies import RoleDep, TrackingDep, UserIdDep
from trackdeck.api.schemas.artists import (
    ArtistCreateRequest,
    ArtistResponse,
    ArtistSearchHitResponse,
    PlatformLinkRequest,
    RemovedResponse,
)
from trackdeck.domain.entities import Platform
from trackdeck.domain.value_objects import ArtistId

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artists", tags=["Artists"])


@router.get("", response_model=list[ArtistResponse])
async def list_artists(tracking: TrackingDep, user_id: UserIdDep) -> list[ArtistResponse]:
    """List the acting user's artists."""
    artists = await tracking.list_artists(user_id)
    return [ArtistResponse.from_entity(artist) for artist in artists]


# Declared before /{artist_id}, otherwise "search" is matched as an artist id.
@router.get("/search", response_model=list[ArtistSearchHitResponse])
async def search_artists(
    tracking: TrackingDep,
    q: Annotated[str, Query(min_length=1, max_length=200)],
    platform: Platform | None = None,
) -> list[ArtistSearchHitResponse]:
    """Search artists on one platform or all of them. Failing platforms are left out."""
    hits = await tracking.search_artists(q, platform)
    return [ArtistSearchHitResponse.from_entity(hit) for hit in hits]


@router.get("/{artist_id}", response_model=ArtistResponse)
async def get_artist(artist_id: str, tracking: TrackingDep) -> ArtistResponse:
    artist = await tracking.get_artist(ArtistId.from_string(artist_id))
    return ArtistResponse.from_entity(artist)


@router.post("", response_model=ArtistResponse, status_code=status.HTTP_201_CREATED)
async def add_artist(
    request: ArtistCreateRequest,
    tracking: TrackingDep,
    role: RoleDep,
    user_id: UserIdDep,
) -> ArtistResponse:
    """Follow an artist linked to one or more platform profiles."""
    artist = await tracking.add_artist(
        role, user_id, request.name, [link.to_link() for link in request.links]
    )
    return ArtistResponse.from_entity(artist)


@router.post("/{artist_id}/links", response_model=ArtistResponse)
async def link_platform(
    artist_id: str,
    request: PlatformLinkRequest,
    tracking: TrackingDep,
    role: RoleDep,
) -> ArtistResponse:
    """Link (or re-link) a platform profile."""
    artist = await tracking.link_platform(role, ArtistId.from_string(artist_id), request.to_link())
    return ArtistResponse.from_entity(artist)


@router.delete("/{artist_id}", response_model=RemovedResponse)
async def remove_artist(artist_id: str, tracking: TrackingDep, role: RoleDep) -> RemovedResponse:
    """Unfollow an artist. Its releases go, its active notifications are retracted."""
    retracted = await tracking.remove_artist(role, ArtistId.from_string(artist_id))
    return RemovedResponse(retracted_count=retracted)
