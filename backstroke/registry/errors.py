"""Errors specific to the repository registry."""

from __future__ import annotations

from backstroke.errors import InvalidInputError, NotFoundError


class RepositoryNotFoundError(NotFoundError):
    """Raised when a repository identifier does not match a stored row."""

    def __init__(self, repository_id: str) -> None:
        """Initialise with the missing repository identifier."""
        super().__init__("Repository", repository_id)


class InvalidRepositoryDescriptorError(InvalidInputError):
    """Raised when an inline repository descriptor cannot be accepted."""

    @classmethod
    def missing(cls, field: str) -> InvalidRepositoryDescriptorError:
        """Return an error for a required descriptor field that is absent."""
        return cls("is required", field=field)

    @classmethod
    def unsupported_reference(cls, value: object) -> InvalidRepositoryDescriptorError:
        """Return an error for a reference that is neither an id nor a descriptor."""
        return cls(
            f"expected a repository id or descriptor, got {type(value).__name__}"
        )
