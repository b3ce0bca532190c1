"""Roles and operations used for authorization."""

from enum import Enum


# Hey future me - UserRole is a CLOSED enum. Role strings come from the user_roles table
# (or nowhere at all), and anything we don't recognize becomes UNKNOWN, which is denied
# everything. Never grant access based on a raw string!
class UserRole(str, Enum):
    """Authorization tag of the acting user."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "str | UserRole | None") -> "UserRole":
        """Parse a stored role, defaulting to UNKNOWN."""
        if isinstance(value, UserRole):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Operation(str, Enum):
    """Mutating operations guarded by the RoleGate."""

    ADD = "add"
    REMOVE = "remove"
    TRIGGER_STATS_UPDATE = "triggerStatsUpdate"
    TRIGGER_CLEANUP = "triggerCleanup"
    MANAGE_ROLES = "manageRoles"
