"""Notification response models."""

from datetime import datetime

from pydantic import BaseModel

from trackdeck.domain.entities import Notification, NotificationState, SubjectType


class NotificationResponse(BaseModel):
    id: str
    subject_type: SubjectType
    subject_id: str
    release_key: str
    title: str
    description: str | None
    platform_url: str | None
    image_url: str | None
    state: NotificationState
    created_at: datetime
    expires_at: datetime
    state_changed_at: datetime | None
    retraction_reason: str | None

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id.value,
            subject_type=notification.subject_type,
            subject_id=notification.subject_id,
            release_key=notification.release_key,
            title=notification.title,
            description=notification.description,
            platform_url=notification.platform_url,
            image_url=notification.image_url,
            state=notification.state,
            created_at=notification.created_at,
            expires_at=notification.expires_at,
            state_changed_at=notification.state_changed_at,
            retraction_reason=notification.retraction_reason,
        )


class NotificationCountsResponse(BaseModel):
    active: int
    expired: int
    retracted: int


class NotificationsListResponse(BaseModel):
    notifications: list[NotificationResponse]
    counts: NotificationCountsResponse
