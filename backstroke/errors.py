"""Error taxonomy shared by every Backstroke package.

Each domain package raises its own subclasses, but every failure that can
reach a caller belongs to exactly one kind below. The API layer maps kinds to
HTTP statuses and reports the kind as a stable ``code`` string.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.StrEnum):
    """Stable identifiers for the failure taxonomy."""

    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    CONFLICT = "Conflict"
    GATEWAY_ERROR = "GatewayError"
    WEBHOOK_REGISTRATION_FAILED = "WebhookRegistrationFailed"
    PERSISTENCE_ERROR = "PersistenceError"


class BackstrokeError(Exception):
    """Base class for errors surfaced to Backstroke callers."""

    kind: ErrorKind = ErrorKind.PERSISTENCE_ERROR
    title: str = "Internal error"


class InvalidInputError(BackstrokeError):
    """Raised when caller-supplied input is malformed.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    kind = ErrorKind.INVALID_INPUT
    title = "Invalid input"

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialise with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


class NotFoundError(BackstrokeError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    title = "Not found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialise with the entity type and the identifier that missed."""
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")


class ForbiddenError(BackstrokeError):
    """Raised when the acting user may not touch an entity."""

    kind = ErrorKind.FORBIDDEN
    title = "Forbidden"


class ConflictError(BackstrokeError):
    """Raised when a concurrent writer invalidated an operation."""

    kind = ErrorKind.CONFLICT
    title = "Conflict"


class PersistenceError(BackstrokeError):
    """Raised when the record store fails."""

    kind = ErrorKind.PERSISTENCE_ERROR
    title = "Persistence failure"

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        """Initialise with the failed operation and the store error."""
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Record store failed during {operation}")


__all__ = [
    "BackstrokeError",
    "ConflictError",
    "ErrorKind",
    "ForbiddenError",
    "InvalidInputError",
    "NotFoundError",
    "PersistenceError",
]
