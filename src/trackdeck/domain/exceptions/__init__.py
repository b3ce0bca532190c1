"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can read it without
    # parsing str(exception). Never raise this directly - use a subclass so callers can
    # catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when entity validation fails.

    HTTP Status: 422
    """

    pass


class InvalidStateException(DomainException):
    """Raised when an entity is in an invalid state for the requested operation.

    Example: expiring a notification that was already retracted.
    """

    pass


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity.

    HTTP Status: 409
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503
    """

    pass


class AuthorizationError(DomainException):
    """User is known but not allowed to perform this action.

    HTTP Status: 403
    """

    pass


class OperationDeniedError(AuthorizationError):
    """RoleGate refused an operation for the acting role.

    Hey future me - this is NON-RETRYABLE. Nothing was executed when this is raised,
    so there is nothing to roll back either.
    """

    def __init__(self, role: Any, operation: Any) -> None:
        role_value = getattr(role, "value", role)
        operation_value = getattr(operation, "value", operation)
        super().__init__(f"Role '{role_value}' may not perform '{operation_value}'")
        self.role = role
        self.operation = operation


class ExternalServiceError(DomainException):
    """A remote platform function returned an error or could not be reached.

    HTTP Status: 502
    """

    def __init__(self, message: str, service: str | None = None) -> None:
        super().__init__(message)
        self.service = service


class JobAlreadyRunningError(DomainException):
    """Another job holds the same trigger key.

    Not a failure - the earlier request is still in flight.

    HTTP Status: 409
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"A job for '{key}' is already running")
        self.key = key


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "DomainException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "InvalidStateException",
    "JobAlreadyRunningError",
    "OperationDeniedError",
    "ValidationException",
]
