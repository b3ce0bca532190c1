"""User role administration: approve pending users, promote, demote."""

from fastapi import APIRouter

from trackdeck.api.dependencies import RoleDep, TrackingDep
from trackdeck.api.schemas.users import RoleAssignmentRequest, UserRoleResponse
from trackdeck.domain.entities import UserRole

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserRoleResponse])
async def list_users(
    tracking: TrackingDep, role: RoleDep, with_role: UserRole | None = None
) -> list[UserRoleResponse]:
    """List users with their role. Pass ?with_role=pending for the approval queue."""
    users = await tracking.list_users(role, with_role)
    return [UserRoleResponse(user_id=user_id, role=user_role) for user_id, user_role in users]


@router.put("/{user_id}/role", response_model=UserRoleResponse)
async def assign_role(
    user_id: str, request: RoleAssignmentRequest, tracking: TrackingDep, role: RoleDep
) -> UserRoleResponse:
    """Assign a role. Admins only, anyone else gets 403."""
    assigned = await tracking.assign_role(role, user_id, request.role)
    return UserRoleResponse(user_id=user_id.strip(), role=assigned)
