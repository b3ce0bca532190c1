"""Game request/response models."""

from datetime import datetime

from pydantic import BaseModel, Field

from trackdeck.domain.entities import Game, GameReleaseStatus


class GameCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    platform: str = "steam"
    url: str | None = None
    image_url: str | None = None
    release_date: str | None = None
    release_status: GameReleaseStatus = GameReleaseStatus.UNKNOWN


class GameResponse(BaseModel):
    id: str
    user_id: str
    name: str
    platform: str
    url: str | None
    image_url: str | None
    release_date: str | None
    release_status: GameReleaseStatus
    created_at: datetime

    @classmethod
    def from_entity(cls, game: Game) -> "GameResponse":
        return cls(
            id=game.id.value,
            user_id=game.user_id,
            name=game.name,
            platform=game.platform,
            url=game.url,
            image_url=game.image_url,
            release_date=game.release_date,
            release_status=game.release_status,
            created_at=game.created_at,
        )
