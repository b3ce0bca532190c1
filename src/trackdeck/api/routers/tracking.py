"""Trigger endpoints: stats updates, release checks and notification cleanup.

Hey future me - every endpoint here resolves a TriggerResult to HTTP:

    SUCCESS          200 {"updatedCount": n} / {"cleanedCount": n}
    DENIED           403
    ALREADY_RUNNING  409  (not an error - the earlier request is still in flight)
    FAILED           502  (platform or storage trouble, nothing was committed)
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from trackdeck.api.dependencies import RoleDep, TrackingDep
from trackdeck.api.schemas.tracking import (
    CleanedCountResponse,
    GameCheckRequest,
    ScopeRequest,
    TriggerErrorResponse,
    UpdatedCountResponse,
)
from trackdeck.application.services import TriggerResult, TriggerStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking", tags=["Tracking"])

_STATUS_CODES = {
    TriggerStatus.SUCCESS: 200,
    TriggerStatus.DENIED: 403,
    TriggerStatus.ALREADY_RUNNING: 409,
    TriggerStatus.FAILED: 502,
}

_ERROR_RESPONSES: dict[int | str, dict] = {
    403: {"model": TriggerErrorResponse, "description": "Role may not trigger this"},
    409: {"model": TriggerErrorResponse, "description": "Same job already running"},
    502: {"model": TriggerErrorResponse, "description": "Job failed"},
}


def trigger_response(result: TriggerResult, count_field: str) -> JSONResponse:
    """Map a TriggerResult to an HTTP response."""
    status_code = _STATUS_CODES[result.status]
    if result.status is TriggerStatus.SUCCESS:
        return JSONResponse(status_code=status_code, content={count_field: result.count})
    return JSONResponse(
        status_code=status_code,
        content=TriggerErrorResponse(
            status=result.status.value, detail=result.message
        ).model_dump(),
    )


@router.post("/stats", response_model=UpdatedCountResponse, responses=_ERROR_RESPONSES)
async def trigger_stats_update(
    tracking: TrackingDep,
    role: RoleDep,
    request: ScopeRequest | None = None,
) -> JSONResponse:
    """Refresh artist statistics (all stale artists, one artist or one user's artists)."""
    result = await tracking.trigger_stats_update(role, (request or ScopeRequest()).to_scope())
    return trigger_response(result, "updatedCount")


@router.post("/releases", response_model=UpdatedCountResponse, responses=_ERROR_RESPONSES)
async def trigger_release_check(
    tracking: TrackingDep,
    role: RoleDep,
    request: ScopeRequest | None = None,
) -> JSONResponse:
    """Check linked platforms for new releases. updatedCount = notifications created."""
    result = await tracking.trigger_release_check(role, (request or ScopeRequest()).to_scope())
    return trigger_response(result, "updatedCount")


@router.post("/games", response_model=UpdatedCountResponse, responses=_ERROR_RESPONSES)
async def trigger_game_check(
    tracking: TrackingDep,
    role: RoleDep,
    request: GameCheckRequest | None = None,
) -> JSONResponse:
    """Notify about followed games that came out."""
    result = await tracking.trigger_game_check(role, request.user_id if request else None)
    return trigger_response(result, "updatedCount")


@router.post("/cleanup/expired", response_model=CleanedCountResponse, responses=_ERROR_RESPONSES)
async def trigger_expiry_cleanup(tracking: TrackingDep, role: RoleDep) -> JSONResponse:
    """Expire notifications older than their window."""
    result = await tracking.trigger_expiry_cleanup(role)
    return trigger_response(result, "cleanedCount")


@router.post(
    "/cleanup/false-positives", response_model=CleanedCountResponse, responses=_ERROR_RESPONSES
)
async def trigger_false_positive_cleanup(tracking: TrackingDep, role: RoleDep) -> JSONResponse:
    """Retract notifications whose release or subject no longer justifies them."""
    result = await tracking.trigger_false_positive_cleanup(role)
    return trigger_response(result, "cleanedCount")
