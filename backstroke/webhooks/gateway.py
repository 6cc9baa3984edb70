"""Webhook gateway contract consumed by the link reconciler."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from backstroke.registry.models import RepositoryInfo


class WebhookSubscriber(typ.Protocol):
    """The link on whose behalf webhooks are registered."""

    @property
    def id(self) -> str:
        """Return the link identifier used to route deliveries."""
        ...


class WebhookGateway(typ.Protocol):
    """Interface for managing upstream webhooks on the hosting platform.

    Both operations must be safe to retry. Registering twice for the same
    repository and link returns the same hook ids rather than creating
    duplicates.
    """

    async def register_webhooks(
        self, repository: RepositoryInfo, link: WebhookSubscriber
    ) -> list[str]:
        """Register webhooks for ``link`` on ``repository`` and return their ids."""
        ...

    async def deregister_webhooks(
        self, repository: RepositoryInfo, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Remove the webhooks identified by ``hook_ids`` from ``repository``."""
        ...
