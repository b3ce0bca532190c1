"""Dependency injection for API endpoints."""

import logging
from typing import Annotated, cast

from fastapi import Depends, Header, HTTPException, Request

from trackdeck.application.services import TrackingService
from trackdeck.domain.entities import UserRole
from trackdeck.infrastructure.persistence import Database, UserRoleRepository

logger = logging.getLogger(__name__)


def get_database(request: Request) -> Database:
    """Get the Database created during startup (see lifecycle.lifespan())."""
    if not hasattr(request.app.state, "db"):
        raise HTTPException(status_code=503, detail="Database not initialized")
    return cast(Database, request.app.state.db)


def get_tracking_service(request: Request) -> TrackingService:
    """Get the TrackingService created during startup."""
    if not hasattr(request.app.state, "tracking"):
        raise HTTPException(status_code=503, detail="Tracking service not initialized")
    return cast(TrackingService, request.app.state.tracking)


def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> str | None:
    """Acting user from the X-User-Id header (None when absent)."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def require_user_id(
    user_id: Annotated[str | None, Depends(get_current_user_id)],
) -> str:
    """Acting user, 401 when the header is missing."""
    if not user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return user_id


# Hey future me - the role ALWAYS comes from the user_roles table, never from the request.
# No header or no row → UNKNOWN, which RoleGate denies everything. Clients can't promote
# themselves by sending a role.
async def get_current_role(
    db: Annotated[Database, Depends(get_database)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
) -> UserRole:
    """Look up the acting user's role."""
    if not user_id:
        return UserRole.UNKNOWN
    async with db.session_scope() as session:
        return await UserRoleRepository(session).get_role(user_id)


TrackingDep = Annotated[TrackingService, Depends(get_tracking_service)]
RoleDep = Annotated[UserRole, Depends(get_current_role)]
UserIdDep = Annotated[str, Depends(require_user_id)]
