"""Errors raised by link lifecycle operations."""

from __future__ import annotations

import typing as typ

from backstroke.errors import (
    BackstrokeError,
    ConflictError,
    ErrorKind,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
)

if typ.TYPE_CHECKING:
    from backstroke.links.models import OrphanedHooks


class LinkNotFoundError(NotFoundError):
    """Raised when a link id does not match a stored link."""

    def __init__(self, link_id: str) -> None:
        """Initialise with the missing link id."""
        super().__init__("Link", link_id)
        self.link_id = link_id


class UserNotFoundError(NotFoundError):
    """Raised when the acting user does not exist."""

    def __init__(self, user_id: str) -> None:
        """Initialise with the missing user id."""
        super().__init__("User", user_id)


class LinkForbiddenError(ForbiddenError):
    """Raised when the acting user does not own the link."""

    def __init__(self, link_id: str) -> None:
        """Initialise with the link the caller tried to touch."""
        self.link_id = link_id
        super().__init__(f"Link {link_id} belongs to another user")


class LinkNotLinkedError(InvalidInputError):
    """Raised when enabling a link that has no upstream repository."""

    def __init__(self, link_id: str) -> None:
        """Initialise with the unlinked link id."""
        self.link_id = link_id
        super().__init__(
            f"link {link_id} needs an upstream before it can be enabled",
            field="enabled",
        )


class WebhookRegistrationFailedError(BackstrokeError):
    """Raised when registering upstream webhooks fails.

    The operation that needed the webhooks is abandoned and no link change
    is persisted.
    """

    kind = ErrorKind.WEBHOOK_REGISTRATION_FAILED
    title = "Webhook registration failed"

    def __init__(self, link_id: str, repo_slug: str) -> None:
        """Initialise with the link and the upstream that refused the hooks."""
        self.link_id = link_id
        self.repo_slug = repo_slug
        super().__init__(f"Could not register webhooks on {repo_slug}")


class LinkConflictError(ConflictError):
    """Raised when another writer updated the link first.

    Attributes
    ----------
    orphaned
        Hooks this writer registered before losing the race, if any.

    """

    def __init__(self, link_id: str, *, orphaned: OrphanedHooks | None = None) -> None:
        """Initialise with the contested link and any stranded hooks."""
        self.link_id = link_id
        self.orphaned = orphaned
        super().__init__(f"Link {link_id} was modified concurrently; retry")


class LinkPersistenceError(PersistenceError):
    """Raised when the link row could not be written.

    Attributes
    ----------
    orphaned
        Hooks registered before the write failed, if any.

    """

    def __init__(
        self,
        operation: str,
        original_error: Exception | None = None,
        *,
        orphaned: OrphanedHooks | None = None,
    ) -> None:
        """Initialise with the failed operation and any stranded hooks."""
        super().__init__(operation, original_error)
        self.orphaned = orphaned
