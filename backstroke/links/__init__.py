"""Link lifecycle: owner-scoped links and their upstream webhooks.

A link mirrors an upstream repository into a fork. While a link is enabled
and has an upstream it owns webhooks on that upstream; otherwise it owns
none. :class:`LinkService` keeps that rule true across every operation.

Usage
-----
Wire the service with a session factory and a webhook gateway::

    from backstroke.links import LinkService
    from backstroke.webhooks import InMemoryWebhookGateway

    service = LinkService(session_factory, InMemoryWebhookGateway())
    link = await service.create(user_id)
    link = await service.update(user_id, link.id, upstream=upstream_id)
    link = await service.enable(user_id, link.id, True)

"""

from backstroke.links.config import DEFAULT_LINK_NAME, LinkServiceConfig
from backstroke.links.errors import (
    LinkConflictError,
    LinkForbiddenError,
    LinkNotFoundError,
    LinkNotLinkedError,
    LinkPersistenceError,
    UserNotFoundError,
    WebhookRegistrationFailedError,
)
from backstroke.links.models import (
    LinkDelta,
    LinkInfo,
    LinkPosture,
    LinkView,
    OrphanedHooks,
    RepositoryView,
    UserView,
    posture_of,
)
from backstroke.links.observability import (
    ErrorCategory,
    LinkEventLogger,
    LinkEventType,
    categorize_error,
)
from backstroke.links.reconciler import LinkReconciler
from backstroke.links.service import LinkService

__all__ = [
    "DEFAULT_LINK_NAME",
    "ErrorCategory",
    "LinkConflictError",
    "LinkDelta",
    "LinkEventLogger",
    "LinkEventType",
    "LinkForbiddenError",
    "LinkInfo",
    "LinkNotFoundError",
    "LinkNotLinkedError",
    "LinkPersistenceError",
    "LinkPosture",
    "LinkReconciler",
    "LinkService",
    "LinkServiceConfig",
    "LinkView",
    "OrphanedHooks",
    "RepositoryView",
    "UserNotFoundError",
    "UserView",
    "WebhookRegistrationFailedError",
    "categorize_error",
    "posture_of",
]
