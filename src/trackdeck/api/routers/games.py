"""Game endpoints."""

from fastapi import APIRouter, status

from trackdeck.api.dependencies import RoleDep, TrackingDep, UserIdDep
from trackdeck.api.schemas.artists import RemovedResponse
from trackdeck.api.schemas.games import GameCreateRequest, GameResponse
from trackdeck.domain.value_objects import GameId

router = APIRouter(prefix="/games", tags=["Games"])


@router.get("", response_model=list[GameResponse])
async def list_games(tracking: TrackingDep, user_id: UserIdDep) -> list[GameResponse]:
    games = await tracking.list_games(user_id)
    return [GameResponse.from_entity(game) for game in games]


@router.post("", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def add_game(
    request: GameCreateRequest,
    tracking: TrackingDep,
    role: RoleDep,
    user_id: UserIdDep,
) -> GameResponse:
    game = await tracking.add_game(
        role,
        user_id,
        request.name,
        platform=request.platform,
        url=request.url,
        image_url=request.image_url,
        release_date=request.release_date,
        release_status=request.release_status,
    )
    return GameResponse.from_entity(game)


@router.delete("/{game_id}", response_model=RemovedResponse)
async def remove_game(game_id: str, tracking: TrackingDep, role: RoleDep) -> RemovedResponse:
    retracted = await tracking.remove_game(role, GameId.from_string(game_id))
    return RemovedResponse(retracted_count=retracted)
