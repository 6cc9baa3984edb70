"""Lifecycle controller for links.

:class:`LinkService` is the entry point for every link operation. Each call
runs in its own unit of work, checks that the acting user owns the link,
delegates webhook bookkeeping to :class:`LinkReconciler`, and returns a
:class:`LinkView` with the owner, upstream and fork embedded.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from backstroke.errors import PersistenceError
from backstroke.links.config import LinkServiceConfig
from backstroke.links.errors import (
    LinkConflictError,
    LinkForbiddenError,
    LinkNotFoundError,
    LinkNotLinkedError,
    LinkPersistenceError,
    UserNotFoundError,
)
from backstroke.links.models import (
    LinkDelta,
    LinkView,
    OrphanedHooks,
    RepositoryView,
    UserView,
    posture_of,
)
from backstroke.links.observability import LinkEventLogger
from backstroke.links.reconciler import LinkReconciler
from backstroke.logging import get_logger, log_warning
from backstroke.persistence.storage import Link, Repository, User
from backstroke.registry.service import RepositoryRegistry

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from backstroke.registry.models import RepositoryRef
    from backstroke.webhooks.gateway import WebhookGateway

logger = get_logger(__name__)


class LinkService:
    """Create, change, toggle, delete and list a user's links.

    Parameters
    ----------
    session_factory
        Async session factory; every operation opens its own session.
    gateway
        Webhook gateway used for upstream hook registration.
    registry
        Repository registry. Defaults to a new :class:`RepositoryRegistry`.
    config
        Service settings. Defaults to :class:`LinkServiceConfig`.
    event_logger
        Structured event sink. Defaults to a new :class:`LinkEventLogger`.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: WebhookGateway,
        *,
        registry: RepositoryRegistry | None = None,
        config: LinkServiceConfig | None = None,
        event_logger: LinkEventLogger | None = None,
    ) -> None:
        """Configure the service and build its reconciler."""
        self._session_factory = session_factory
        self._config = config or LinkServiceConfig()
        self._events = event_logger or LinkEventLogger()
        self._reconciler = LinkReconciler(
            registry or RepositoryRegistry(),
            gateway,
            event_logger=self._events,
            default_name=self._config.default_name,
        )

    async def create(self, owner_id: str, name: str | None = None) -> LinkView:
        """Create a disabled, unlinked link for ``owner_id``.

        No webhook calls are made.

        Raises
        ------
        UserNotFoundError
            If ``owner_id`` is not a stored user.

        """
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(User, owner_id) is None:
                    raise UserNotFoundError(owner_id)
                link = Link(
                    name=name or self._config.default_name,
                    enabled=False,
                    hook_ids=[],
                    owner_id=owner_id,
                )
                session.add(link)
                await session.flush()
                view = await self._materialize(session, link)
        except SQLAlchemyError as exc:
            raise PersistenceError("link create", exc) from exc
        self._events.log_link_created(view.id, owner_id)
        return view

    async def update(
        self,
        owner_id: str,
        link_id: str,
        *,
        name: str | None = None,
        upstream: RepositoryRef | None = None,
        fork: RepositoryRef | None = None,
    ) -> LinkView:
        """Change a link's name, upstream or fork.

        An enabled link whose upstream changes moves its webhooks to the new
        upstream. The enabled flag itself never changes here.
        """
        delta = LinkDelta(name=name, upstream=upstream, fork=fork)
        return await self._reconcile(owner_id, link_id, delta, operation="link update")

    async def enable(
        self,
        owner_id: str,
        link_id: str,
        enabled: bool,  # noqa: FBT001
    ) -> LinkView:
        """Switch a link's webhooks on or off.

        Setting the flag to its current value is a no-op.

        Raises
        ------
        LinkNotLinkedError
            If enabling a link that has no upstream.

        """
        delta = LinkDelta(enabled=enabled)
        return await self._reconcile(
            owner_id, link_id, delta, operation="link enable", toggle=True
        )

    async def delete(self, owner_id: str, link_id: str) -> None:
        """Delete a link, removing its webhooks first.

        Webhook removal failures are logged and do not stop the delete.
        """
        try:
            async with self._session_factory() as session, session.begin():
                link = await self._load_owned(session, owner_id, link_id)
                released = await self._reconciler.release_webhooks(session, link)
                await session.delete(link)
        except StaleDataError as exc:
            raise LinkConflictError(link_id) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError("link delete", exc) from exc
        self._events.log_link_deleted(link_id, released)

    async def index(self, owner_id: str) -> list[LinkView]:
        """Return every link owned by ``owner_id``, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.scalars(
                    select(Link)
                    .where(Link.owner_id == owner_id)
                    .order_by(Link.created_at, Link.id)
                )
                return [await self._materialize(session, link) for link in result]
        except SQLAlchemyError as exc:
            raise PersistenceError("link index", exc) from exc

    async def get(self, owner_id: str, link_id: str) -> LinkView:
        """Return one link owned by ``owner_id``.

        Links owned by someone else are reported as missing.
        """
        try:
            async with self._session_factory() as session:
                link = await session.get(Link, link_id)
                if link is None or link.owner_id != owner_id:
                    raise LinkNotFoundError(link_id)
                return await self._materialize(session, link)
        except SQLAlchemyError as exc:
            raise PersistenceError("link get", exc) from exc

    async def _reconcile(
        self,
        owner_id: str,
        link_id: str,
        delta: LinkDelta,
        *,
        operation: str,
        toggle: bool = False,
    ) -> LinkView:
        registered: OrphanedHooks | None = None
        try:
            async with self._session_factory() as session, session.begin():
                link = await self._load_owned(session, owner_id, link_id)
                if toggle and link.enabled == delta.enabled:
                    return await self._materialize(session, link)
                if delta.enabled and link.upstream_id is None:
                    raise LinkNotLinkedError(link_id)
                link, registered = await self._reconciler.apply(session, link, delta)
                view = await self._materialize(session, link)
        except (LinkConflictError, LinkPersistenceError) as exc:
            if exc.orphaned is not None:
                await self._release_orphans(link_id, exc.orphaned)
            raise
        except SQLAlchemyError as exc:
            if registered is not None:
                await self._release_orphans(link_id, registered)
            raise PersistenceError(operation, exc) from exc
        self._events.log_link_updated(view.id, view.posture, len(view.hook_id))
        return view

    async def _load_owned(
        self, session: AsyncSession, owner_id: str, link_id: str
    ) -> Link:
        link = await session.get(Link, link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        if link.owner_id != owner_id:
            raise LinkForbiddenError(link_id)
        return link

    async def _release_orphans(self, link_id: str, orphaned: OrphanedHooks) -> None:
        """Remove hooks a failed write registered, sparing any the link kept.

        Registration reuses existing hooks, so the writer that won may hold
        the very ids this one got back. Those stay.
        """
        try:
            async with self._session_factory() as session:
                winner = await session.get(Link, link_id)
                kept = set(winner.hook_ids or ()) if winner is not None else set()
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Could not reload link %s to release hooks %s: %s",
                link_id,
                ",".join(orphaned.hook_ids),
                exc,
            )
            kept = set()
        stray = [hook_id for hook_id in orphaned.hook_ids if hook_id not in kept]
        if not stray:
            return
        self._events.log_webhooks_orphaned(link_id, orphaned.repository.slug, stray)
        await self._reconciler.deregister_quietly(orphaned.repository, link_id, stray)

    async def _materialize(self, session: AsyncSession, link: Link) -> LinkView:
        owner = await session.get(User, link.owner_id)
        upstream = await self._get_repository(session, link.upstream_id)
        fork = await self._get_repository(session, link.fork_id)
        return LinkView(
            id=link.id,
            name=link.name,
            enabled=link.enabled,
            hook_id=list(link.hook_ids or ()),
            owner_id=link.owner_id,
            upstream_id=link.upstream_id,
            fork_id=link.fork_id,
            posture=posture_of(enabled=link.enabled, upstream_id=link.upstream_id),
            owner=UserView.of(owner) if owner is not None else None,
            upstream=RepositoryView.of(upstream) if upstream is not None else None,
            fork=RepositoryView.of(fork) if fork is not None else None,
        )

    @staticmethod
    async def _get_repository(
        session: AsyncSession, repository_id: str | None
    ) -> Repository | None:
        if repository_id is None:
            return None
        return await session.get(Repository, repository_id)
