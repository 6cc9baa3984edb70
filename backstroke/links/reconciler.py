"""Reconcile a link's webhook posture with a requested change.

A link owns upstream webhooks only while it is enabled and has an upstream.
The reconciler compares the stored link with the requested change, issues
the gateway calls that keep that rule true, and writes the resulting
``hook_ids`` back in the caller's unit of work.

Gateway calls are made against detached snapshots (:class:`LinkInfo`,
:class:`RepositoryInfo`) and the link row is only mutated once they finish,
so a failed registration leaves nothing to persist.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from backstroke.links.config import DEFAULT_LINK_NAME
from backstroke.links.errors import (
    LinkConflictError,
    LinkNotLinkedError,
    LinkPersistenceError,
    WebhookRegistrationFailedError,
)
from backstroke.links.models import LinkDelta, LinkInfo, OrphanedHooks
from backstroke.links.observability import LinkEventLogger
from backstroke.logging import get_logger, log_warning
from backstroke.persistence.storage import Link
from backstroke.registry.errors import RepositoryNotFoundError
from backstroke.registry.mapping import to_repository_info
from backstroke.webhooks.errors import GatewayError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession

    from backstroke.persistence.storage import Repository
    from backstroke.registry.models import RepositoryInfo, RepositoryRef
    from backstroke.registry.service import RepositoryRegistry
    from backstroke.webhooks.gateway import WebhookGateway

logger = get_logger(__name__)


class LinkReconciler:
    """Apply a :class:`LinkDelta` to a link and keep its webhooks in step.

    Parameters
    ----------
    registry
        Resolves upstream and fork references.
    gateway
        Registers and removes upstream webhooks.
    event_logger
        Receives structured webhook events. Defaults to a new
        :class:`LinkEventLogger`.
    default_name
        Name given to links inserted without one.

    """

    def __init__(
        self,
        registry: RepositoryRegistry,
        gateway: WebhookGateway,
        *,
        event_logger: LinkEventLogger | None = None,
        default_name: str = DEFAULT_LINK_NAME,
    ) -> None:
        """Store collaborators."""
        self._default_name = default_name
        self._registry = registry
        self._gateway = gateway
        self._events = event_logger or LinkEventLogger()

    async def reconcile(
        self,
        session: AsyncSession,
        current: Link | None,
        desired: LinkDelta,
        *,
        owner_id: str | None = None,
    ) -> Link:
        """Bring ``current`` to the state described by ``desired``.

        When ``current`` is ``None`` a new disabled link owned by
        ``owner_id`` is inserted first and the change is applied to it.

        Steps, in order:

        1. Resolve the requested upstream and fork through the registry.
        2. Refuse to enable a link that would have no upstream.
        3. If the link ends up enabled and either its upstream changed or it
           was disabled before, remove any old hooks and register new ones
           on the resulting upstream.
        4. If the link goes from enabled to disabled, remove its hooks.
        5. Write the new fields and flush.

        Returns
        -------
        Link
            The flushed link row.

        Raises
        ------
        LinkNotLinkedError
            If the link would be enabled without an upstream.
        WebhookRegistrationFailedError
            If the gateway refuses the new hooks. Nothing is written.
        LinkConflictError
            If another writer changed the link since it was loaded.
        LinkPersistenceError
            If flushing the link fails for any other reason.

        """
        link, _ = await self.apply(session, current, desired, owner_id=owner_id)
        return link

    async def apply(
        self,
        session: AsyncSession,
        current: Link | None,
        desired: LinkDelta,
        *,
        owner_id: str | None = None,
    ) -> tuple[Link, OrphanedHooks | None]:
        """Run :meth:`reconcile` and also return the hooks it registered.

        The second element is ``None`` when no registration happened. Callers
        that may still fail after the flush use it to remove those hooks.
        """
        if current is None:
            current = await self._insert(session, desired, owner_id)
        previous = LinkInfo.of(current)

        upstream = await self._resolve(session, desired.upstream)
        fork = await self._resolve(session, desired.fork)
        upstream_id = upstream.id if upstream is not None else previous.upstream_id
        fork_id = fork.id if fork is not None else previous.fork_id
        upstream_changed = upstream is not None and upstream.id != previous.upstream_id
        enabled = previous.enabled if desired.enabled is None else desired.enabled

        if enabled and upstream_id is None:
            raise LinkNotLinkedError(previous.id)

        hook_ids = list(previous.hook_ids)
        orphaned: OrphanedHooks | None = None
        if enabled and upstream_id is not None and (
            upstream_changed or not previous.enabled
        ):
            if previous.hook_ids:
                await self._release(session, previous)
            target = upstream or await self._registry.get(session, upstream_id)
            target_info = to_repository_info(target)
            hook_ids = await self._register(target_info, previous)
            orphaned = OrphanedHooks(target_info, tuple(hook_ids))
        elif previous.enabled and not enabled:
            if previous.hook_ids:
                await self._release(session, previous)
            hook_ids = []

        if desired.name is not None:
            current.name = desired.name
        current.enabled = enabled
        current.upstream_id = upstream_id
        current.fork_id = fork_id
        if hook_ids != list(previous.hook_ids):
            current.hook_ids = hook_ids

        await self._flush(session, previous.id, orphaned)
        return current, orphaned

    async def release_webhooks(self, session: AsyncSession, link: Link) -> int:
        """Remove every hook ``link`` holds without touching the row.

        Failures are logged and swallowed. Returns the number of hooks the
        call attempted to remove.
        """
        info = LinkInfo.of(link)
        if not info.hook_ids:
            return 0
        await self._release(session, info)
        return len(info.hook_ids)

    async def _insert(
        self, session: AsyncSession, desired: LinkDelta, owner_id: str | None
    ) -> Link:
        if owner_id is None:
            msg = "owner_id is required when reconciling a new link"
            raise ValueError(msg)
        link = Link(
            name=desired.name or self._default_name,
            enabled=False,
            hook_ids=[],
            owner_id=owner_id,
        )
        session.add(link)
        try:
            await session.flush()
        except SQLAlchemyError as exc:
            raise LinkPersistenceError("link insert", exc) from exc
        return link

    async def _resolve(
        self, session: AsyncSession, ref: RepositoryRef | None
    ) -> Repository | None:
        if ref is None:
            return None
        return await self._registry.resolve(session, ref)

    async def _register(
        self, repository: RepositoryInfo, link: LinkInfo
    ) -> list[str]:
        try:
            hook_ids = await self._gateway.register_webhooks(repository, link)
        except GatewayError as exc:
            self._events.log_registration_failed(link.id, repository.slug, exc)
            raise WebhookRegistrationFailedError(link.id, repository.slug) from exc
        self._events.log_webhooks_registered(link.id, repository.slug, hook_ids)
        return list(hook_ids)

    async def _release(self, session: AsyncSession, link: LinkInfo) -> None:
        """Deregister ``link``'s hooks from its stored upstream, best effort."""
        if link.upstream_id is None:
            log_warning(
                logger,
                "Link %s holds hooks %s without an upstream; dropping them",
                link.id,
                ",".join(link.hook_ids),
            )
            return
        try:
            upstream = await self._registry.get(session, link.upstream_id)
        except RepositoryNotFoundError:
            log_warning(
                logger,
                "Upstream %s of link %s is gone; dropping hooks %s",
                link.upstream_id,
                link.id,
                ",".join(link.hook_ids),
            )
            return
        await self.deregister_quietly(
            to_repository_info(upstream), link.id, link.hook_ids
        )

    async def deregister_quietly(
        self,
        repository: RepositoryInfo,
        link_id: str,
        hook_ids: cabc.Sequence[str],
    ) -> None:
        """Deregister ``hook_ids``, logging instead of raising on failure."""
        try:
            await self._gateway.deregister_webhooks(repository, list(hook_ids))
        except GatewayError as exc:
            self._events.log_deregister_failed(link_id, repository.slug, hook_ids, exc)
            return
        self._events.log_webhooks_deregistered(link_id, repository.slug, hook_ids)

    async def _flush(
        self,
        session: AsyncSession,
        link_id: str,
        orphaned: OrphanedHooks | None,
    ) -> None:
        try:
            await session.flush()
        except StaleDataError as exc:
            raise LinkConflictError(link_id, orphaned=orphaned) from exc
        except SQLAlchemyError as exc:
            raise LinkPersistenceError("link write", exc, orphaned=orphaned) from exc
