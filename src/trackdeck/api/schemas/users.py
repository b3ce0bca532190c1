"""User role request/response models."""

from pydantic import BaseModel, Field

from trackdeck.domain.entities import UserRole


class RoleAssignmentRequest(BaseModel):
    role: UserRole


class UserRoleResponse(BaseModel):
    user_id: str = Field(serialization_alias="userId")
    role: UserRole
