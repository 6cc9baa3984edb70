"""Structured events for link lifecycle and webhook bookkeeping.

Every event is a single log line of the form ``[event_type] key=value ...`` so
log aggregators can alert on stranded or failed webhooks without parsing
free text.
"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from backstroke.errors import InvalidInputError, NotFoundError
from backstroke.logging import LogLevel, get_logger, log_event
from backstroke.webhooks.errors import GatewayError, WebhookConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class LinkEventType(enum.StrEnum):
    """Structured log event types for link operations."""

    CREATED = "link.created"
    UPDATED = "link.updated"
    DELETED = "link.deleted"
    WEBHOOKS_REGISTERED = "link.webhooks.registered"
    WEBHOOKS_DEREGISTERED = "link.webhooks.deregistered"
    WEBHOOKS_DEREGISTER_FAILED = "link.webhooks.deregister_failed"
    WEBHOOKS_ORPHANED = "link.webhooks.orphaned"
    WEBHOOKS_REGISTRATION_FAILED = "link.webhooks.registration_failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (WebhookConfigError, ErrorCategory.CONFIGURATION),
    (InvalidInputError, ErrorCategory.CLIENT_ERROR),
    (NotFoundError, ErrorCategory.CLIENT_ERROR),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Gateway errors without a status code are transport failures and count as
    transient, like upstream 5xx responses.
    """
    if isinstance(exc, GatewayError):
        if (
            exc.status_code is None
            or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class LinkEventLogger:
    """Emit structured link events through femtologging.

    Successes log at INFO, webhooks left behind on an upstream at WARNING,
    and failed registrations at ERROR.
    """

    def log_link_created(self, link_id: str, owner_id: str) -> None:
        """Log creation of a new link."""
        log_event(
            logger,
            LogLevel.INFO,
            LinkEventType.CREATED,
            link_id=link_id,
            owner_id=owner_id,
        )

    def log_link_updated(self, link_id: str, posture: str, hook_count: int) -> None:
        """Log a persisted link change with its resulting posture."""
        log_event(
            logger,
            LogLevel.INFO,
            LinkEventType.UPDATED,
            link_id=link_id,
            posture=posture,
            hook_count=hook_count,
        )

    def log_link_deleted(self, link_id: str, released_hooks: int) -> None:
        """Log link deletion."""
        log_event(
            logger,
            LogLevel.INFO,
            LinkEventType.DELETED,
            link_id=link_id,
            released_hooks=released_hooks,
        )

    def log_webhooks_registered(
        self, link_id: str, repo_slug: str, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Log hooks registered on an upstream."""
        self._hooks_event(
            LogLevel.INFO,
            LinkEventType.WEBHOOKS_REGISTERED,
            link_id,
            repo_slug,
            hook_ids,
        )

    def log_webhooks_deregistered(
        self, link_id: str, repo_slug: str, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Log hooks removed from an upstream."""
        self._hooks_event(
            LogLevel.INFO,
            LinkEventType.WEBHOOKS_DEREGISTERED,
            link_id,
            repo_slug,
            hook_ids,
        )

    def log_webhooks_orphaned(
        self, link_id: str, repo_slug: str, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Log hooks registered by a write that was never persisted."""
        self._hooks_event(
            LogLevel.WARNING,
            LinkEventType.WEBHOOKS_ORPHANED,
            link_id,
            repo_slug,
            hook_ids,
        )

    def log_deregister_failed(
        self,
        link_id: str,
        repo_slug: str,
        hook_ids: cabc.Sequence[str],
        error: BaseException,
    ) -> None:
        """Log hooks that could not be removed and may still deliver."""
        log_event(
            logger,
            LogLevel.WARNING,
            LinkEventType.WEBHOOKS_DEREGISTER_FAILED,
            link_id=link_id,
            repo_slug=repo_slug,
            hook_ids=hook_ids,
            error_category=categorize_error(error),
            error_message=str(error),
        )

    def log_registration_failed(
        self, link_id: str, repo_slug: str, error: BaseException
    ) -> None:
        """Log a registration failure with error categorization."""
        log_event(
            logger,
            LogLevel.ERROR,
            LinkEventType.WEBHOOKS_REGISTRATION_FAILED,
            exc_info=error,
            link_id=link_id,
            repo_slug=repo_slug,
            error_type=type(error).__name__,
            error_category=categorize_error(error),
            error_message=str(error),
        )

    @staticmethod
    def _hooks_event(
        level: LogLevel,
        event: LinkEventType,
        link_id: str,
        repo_slug: str,
        hook_ids: cabc.Sequence[str],
    ) -> None:
        log_event(
            logger,
            level,
            event,
            link_id=link_id,
            repo_slug=repo_slug,
            hook_ids=hook_ids,
        )
