"""Notification feed for the acting user."""

from typing import Annotated

from fastapi import APIRouter, Query

from trackdeck.api.dependencies import TrackingDep, UserIdDep
from trackdeck.api.schemas.notifications import (
    NotificationCountsResponse,
    NotificationResponse,
    NotificationsListResponse,
)
from trackdeck.domain.entities import NotificationState

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationsListResponse)
async def list_notifications(
    tracking: TrackingDep,
    user_id: UserIdDep,
    state: NotificationState | None = NotificationState.ACTIVE,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> NotificationsListResponse:
    """List notifications, active ones by default."""
    notifications = await tracking.list_notifications(
        user_id, state=state, limit=limit, offset=offset
    )
    counts = await tracking.notification_counts(user_id)
    return NotificationsListResponse(
        notifications=[NotificationResponse.from_entity(n) for n in notifications],
        counts=NotificationCountsResponse(
            active=counts.active, expired=counts.expired, retracted=counts.retracted
        ),
    )
