"""Role-based authorization for mutating operations."""

from enum import Enum

from trackdeck.domain.entities import Operation, UserRole
from trackdeck.domain.exceptions import OperationDeniedError


class Decision(str, Enum):
    """Outcome of an authorization check."""

    ALLOW = "allow"
    DENY = "deny"


# Hey future me - this table is EXHAUSTIVE on purpose: every UserRole member has an entry.
# PENDING and UNKNOWN get nothing. If you add a role, add a row here or it's denied everything.
_PERMISSIONS: dict[UserRole, frozenset[Operation]] = {
    UserRole.ADMIN: frozenset(Operation),
    UserRole.EDITOR: frozenset(
        {Operation.ADD, Operation.REMOVE, Operation.TRIGGER_STATS_UPDATE}
    ),
    UserRole.VIEWER: frozenset(),
    UserRole.PENDING: frozenset(),
    UserRole.UNKNOWN: frozenset(),
}


class RoleGate:
    """Maps a role to the operations it may invoke. Pure lookup, no side effects."""

    def authorize(self, role: UserRole | str | None, operation: Operation) -> Decision:
        """Check whether role may perform operation.

        Unrecognized role strings are treated as UNKNOWN.
        """
        allowed = _PERMISSIONS.get(UserRole.parse(role), frozenset())
        return Decision.ALLOW if operation in allowed else Decision.DENY

    def is_allowed(self, role: UserRole | str | None, operation: Operation) -> bool:
        return self.authorize(role, operation) is Decision.ALLOW

    def require(self, role: UserRole | str | None, operation: Operation) -> None:
        """Raise OperationDeniedError unless role may perform operation."""
        if self.authorize(role, operation) is Decision.DENY:
            raise OperationDeniedError(UserRole.parse(role), operation)
