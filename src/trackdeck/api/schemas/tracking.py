"""Request/response models for the tracking triggers."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from trackdeck.domain.entities import StatsScope
from trackdeck.domain.value_objects import ArtistId


class ScopeRequest(BaseModel):
    """Which artists a stats update or release check covers."""

    scope: Literal["all", "artist", "user"] = "all"
    artist_id: str | None = Field(default=None, alias="artistId")
    user_id: str | None = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_target(self) -> "ScopeRequest":
        if self.scope == "artist" and not self.artist_id:
            raise ValueError("artistId is required for scope 'artist'")
        if self.scope == "user" and not self.user_id:
            raise ValueError("userId is required for scope 'user'")
        return self

    def to_scope(self) -> StatsScope:
        if self.scope == "artist" and self.artist_id:
            return StatsScope.for_artist(ArtistId.from_string(self.artist_id))
        if self.scope == "user" and self.user_id:
            return StatsScope.for_user(self.user_id)
        return StatsScope.all()


class GameCheckRequest(BaseModel):
    """Target of a game check. No user means every followed game."""

    user_id: str | None = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)


class UpdatedCountResponse(BaseModel):
    updated_count: int = Field(serialization_alias="updatedCount")


class CleanedCountResponse(BaseModel):
    cleaned_count: int = Field(serialization_alias="cleanedCount")


class TriggerErrorResponse(BaseModel):
    """Body for denied / already-running / failed triggers."""

    status: str
    detail: str | None = None
