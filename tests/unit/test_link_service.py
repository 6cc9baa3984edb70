"""Unit tests for LinkService operations."""

from __future__ import annotations

import typing as typ
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from backstroke.errors import PersistenceError
from backstroke.links import (
    LinkForbiddenError,
    LinkNotFoundError,
    LinkNotLinkedError,
    LinkPosture,
    LinkService,
    LinkServiceConfig,
    UserNotFoundError,
    WebhookRegistrationFailedError,
)
from backstroke.registry import (
    InvalidRepositoryDescriptorError,
    RepositoryNotFoundError,
)
from backstroke.webhooks import DeregisterCall, RegisterCall
from tests.helpers.records import add_link, count_repositories, load_link

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from backstroke.webhooks import InMemoryWebhookGateway
    from tests.unit.conftest import SeededRepos


class TestCreate:
    """Tests for LinkService.create."""

    @pytest.mark.asyncio
    async def test_create_is_inert(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
    ) -> None:
        """A new link is disabled, unlinked and makes no webhook calls."""
        link = await link_service.create(owner_id)

        assert link.name == "Untitled Link"
        assert link.enabled is False
        assert link.hook_id == []
        assert link.upstream_id is None
        assert link.fork_id is None
        assert link.posture is LinkPosture.UNLINKED
        assert link.owner is not None
        assert link.owner.username == "octocat"
        assert gateway.register_calls == []
        assert gateway.deregister_calls == []

    @pytest.mark.asyncio
    async def test_create_uses_given_name(
        self, link_service: LinkService, owner_id: str
    ) -> None:
        """An explicit name overrides the default."""
        link = await link_service.create(owner_id, "Mirror reef")
        assert link.name == "Mirror reef"

    @pytest.mark.asyncio
    async def test_create_uses_configured_default_name(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: InMemoryWebhookGateway,
        owner_id: str,
    ) -> None:
        """The default name comes from LinkServiceConfig."""
        service = LinkService(
            session_factory, gateway, config=LinkServiceConfig(default_name="Fresh")
        )
        link = await service.create(owner_id)
        assert link.name == "Fresh"

    @pytest.mark.asyncio
    async def test_create_for_unknown_user_fails(
        self, link_service: LinkService
    ) -> None:
        """Creating a link for a missing user raises UserNotFoundError."""
        with pytest.raises(UserNotFoundError):
            await link_service.create("no-such-user")


class TestUpdate:
    """Tests for LinkService.update."""

    @pytest.mark.asyncio
    async def test_linking_disabled_link_makes_no_webhook_calls(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Setting an upstream on a disabled link only records the ids."""
        link = await link_service.create(owner_id)

        link = await link_service.update(
            owner_id, link.id, upstream=repos.upstream, fork=repos.fork
        )

        assert link.upstream_id == repos.upstream
        assert link.fork_id == repos.fork
        assert link.hook_id == []
        assert link.posture is LinkPosture.LINKED_DISABLED
        assert link.upstream is not None
        assert link.upstream.owner == "octo"
        assert link.fork is not None
        assert link.fork.fork is True
        assert gateway.register_calls == []

    @pytest.mark.asyncio
    async def test_repointing_enabled_link_moves_webhooks(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Scenario: an enabled link repointed at a new upstream gets new hooks."""
        link_id = await add_link(
            session_factory,
            owner_id,
            enabled=True,
            upstream_id=repos.other,
            hook_ids=["123456"],
        )

        link = await link_service.update(
            owner_id, link_id, upstream=repos.upstream, fork=repos.fork
        )

        assert link.upstream_id == repos.upstream
        assert link.fork_id == repos.fork
        assert link.hook_id == ["98765"]
        assert gateway.calls == [
            DeregisterCall(repos.other, ("123456",)),
            RegisterCall(repos.upstream, link_id),
        ]

        link = await link_service.enable(owner_id, link_id, False)

        assert link.hook_id == []
        assert link.upstream_id == repos.upstream
        assert gateway.deregister_calls[-1] == DeregisterCall(
            repos.upstream, ("98765",)
        )

    @pytest.mark.asyncio
    async def test_failed_deregistration_does_not_block_repoint(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Old hooks that cannot be removed are logged and the repoint proceeds."""
        link_id = await add_link(
            session_factory,
            owner_id,
            enabled=True,
            upstream_id=repos.other,
            hook_ids=["123456"],
        )
        gateway.fail_deregistration = True

        link = await link_service.update(owner_id, link_id, upstream=repos.upstream)

        assert link.hook_id == ["98765"]
        assert link.upstream_id == repos.upstream
        assert gateway.calls == [
            DeregisterCall(repos.other, ("123456",)),
            RegisterCall(repos.upstream, link_id),
        ]
        stored = await load_link(session_factory, link_id)
        assert stored is not None
        assert stored.hook_ids == ["98765"]

    @pytest.mark.asyncio
    async def test_same_upstream_does_not_reregister(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Resubmitting the current upstream keeps the existing hooks."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)

        link = await link_service.update(
            owner_id, link.id, upstream=repos.upstream, name="Renamed"
        )

        assert link.name == "Renamed"
        assert link.hook_id == ["98765"]
        assert len(gateway.register_calls) == 1
        assert gateway.deregister_calls == []

    @pytest.mark.asyncio
    async def test_fork_change_never_touches_webhooks(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Changing only the fork of an enabled link makes no gateway calls."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)

        link = await link_service.update(owner_id, link.id, fork=repos.other)

        assert link.fork_id == repos.other
        assert link.hook_id == ["98765"]
        assert len(gateway.register_calls) == 1
        assert gateway.deregister_calls == []

    @pytest.mark.asyncio
    async def test_inline_upstream_creates_repository(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        owner_id: str,
    ) -> None:
        """An inline descriptor inserts a new repository and links it."""
        link = await link_service.create(owner_id)

        link = await link_service.update(
            owner_id,
            link.id,
            upstream={
                "type": "repo",
                "owner": "foo",
                "repo": "bar",
                "branches": ["master"],
                "branch": "master",
            },
        )

        assert link.upstream is not None
        assert link.upstream_id == link.upstream.id
        assert (link.upstream.owner, link.upstream.repo) == ("foo", "bar")
        assert link.upstream.html_url == "https://github.com/foo/bar"
        assert await count_repositories(session_factory) == 1

    @pytest.mark.asyncio
    async def test_invalid_descriptor_persists_nothing(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """A malformed upstream aborts the update before anything is written."""
        link = await link_service.create(owner_id)

        with pytest.raises(InvalidRepositoryDescriptorError):
            await link_service.update(
                owner_id,
                link.id,
                fork={"owner": "foo", "repo": "bar"},
                upstream={"owner": "foo"},
                name="Never stored",
            )

        stored = await load_link(session_factory, link.id)
        assert stored is not None
        assert stored.name == "Untitled Link"
        assert await count_repositories(session_factory) == 3

    @pytest.mark.asyncio
    async def test_unknown_upstream_id_is_not_found(
        self, link_service: LinkService, owner_id: str
    ) -> None:
        """An upstream id with no repository raises RepositoryNotFoundError."""
        link = await link_service.create(owner_id)

        with pytest.raises(RepositoryNotFoundError):
            await link_service.update(owner_id, link.id, upstream="missing")

    @pytest.mark.asyncio
    async def test_registration_failure_rolls_back_everything(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """A refused registration leaves the link and repositories as they were."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)
        gateway.fail_registration = True

        with pytest.raises(WebhookRegistrationFailedError):
            await link_service.update(
                owner_id, link.id, upstream={"owner": "new", "repo": "home"}
            )

        stored = await load_link(session_factory, link.id)
        assert stored is not None
        assert stored.upstream_id == repos.upstream
        assert stored.hook_ids == ["98765"]
        assert await count_repositories(session_factory) == 3

    @pytest.mark.asyncio
    async def test_store_failure_after_registration_releases_new_hooks(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Hooks registered before a failed commit are removed again."""
        link_id = await add_link(
            session_factory,
            owner_id,
            enabled=True,
            upstream_id=repos.other,
            hook_ids=["123456"],
        )
        failure = OperationalError("SELECT", {}, Exception("connection lost"))

        with (
            mock.patch.object(link_service, "_materialize", side_effect=failure),
            pytest.raises(PersistenceError),
        ):
            await link_service.update(owner_id, link_id, upstream=repos.upstream)

        assert gateway.calls[-2:] == [
            RegisterCall(repos.upstream, link_id),
            DeregisterCall(repos.upstream, ("98765",)),
        ]
        assert gateway.active_hooks(repos.upstream) == []
        stored = await load_link(session_factory, link_id)
        assert stored is not None
        assert stored.upstream_id == repos.other
        assert stored.hook_ids == ["123456"]


class TestEnable:
    """Tests for LinkService.enable."""

    @pytest.mark.asyncio
    async def test_enable_registers_and_disable_deregisters(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Toggling on registers hooks; toggling off removes them."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)

        enabled = await link_service.enable(owner_id, link.id, True)

        assert enabled.enabled is True
        assert enabled.hook_id == ["98765"]
        assert enabled.posture is LinkPosture.LINKED_ENABLED
        assert gateway.active_hooks(repos.upstream) == ["98765"]

        disabled = await link_service.enable(owner_id, link.id, False)

        assert disabled.enabled is False
        assert disabled.hook_id == []
        assert disabled.upstream_id == repos.upstream
        assert disabled.posture is LinkPosture.LINKED_DISABLED
        assert gateway.active_hooks(repos.upstream) == []

    @pytest.mark.asyncio
    async def test_enable_is_idempotent(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Repeating a toggle makes no further gateway calls."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)

        await link_service.enable(owner_id, link.id, True)
        again = await link_service.enable(owner_id, link.id, True)
        assert again.hook_id == ["98765"]
        assert len(gateway.register_calls) == 1

        await link_service.enable(owner_id, link.id, False)
        await link_service.enable(owner_id, link.id, False)
        assert len(gateway.deregister_calls) == 1

    @pytest.mark.asyncio
    async def test_enable_unlinked_link_fails(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
    ) -> None:
        """A link without an upstream cannot be enabled."""
        link = await link_service.create(owner_id)

        with pytest.raises(LinkNotLinkedError):
            await link_service.enable(owner_id, link.id, True)
        assert gateway.register_calls == []

    @pytest.mark.asyncio
    async def test_disable_survives_deregistration_failure(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Deregistration errors are logged, and the link is still disabled."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)
        gateway.fail_deregistration = True

        disabled = await link_service.enable(owner_id, link.id, False)

        assert disabled.enabled is False
        assert disabled.hook_id == []

    @pytest.mark.asyncio
    async def test_registration_failure_keeps_link_disabled(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """A refused registration leaves the link disabled with no hooks."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        gateway.fail_registration = True

        with pytest.raises(WebhookRegistrationFailedError):
            await link_service.enable(owner_id, link.id, True)

        stored = await load_link(session_factory, link.id)
        assert stored is not None
        assert stored.enabled is False
        assert stored.hook_ids == []


class TestDelete:
    """Tests for LinkService.delete."""

    @pytest.mark.asyncio
    async def test_delete_tears_down_webhooks(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """Deleting an enabled link deregisters exactly its hooks."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)

        await link_service.delete(owner_id, link.id)

        assert gateway.deregister_calls == [DeregisterCall(repos.upstream, ("98765",))]
        assert await load_link(session_factory, link.id) is None

    @pytest.mark.asyncio
    async def test_delete_disabled_link_makes_no_calls(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
    ) -> None:
        """A link without hooks is deleted without touching the gateway."""
        link = await link_service.create(owner_id)

        await link_service.delete(owner_id, link.id)

        assert gateway.deregister_calls == []
        with pytest.raises(LinkNotFoundError):
            await link_service.get(owner_id, link.id)

    @pytest.mark.asyncio
    async def test_delete_survives_deregistration_failure(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        repos: SeededRepos,
    ) -> None:
        """The row is removed even when its hooks could not be."""
        link = await link_service.create(owner_id)
        await link_service.update(owner_id, link.id, upstream=repos.upstream)
        await link_service.enable(owner_id, link.id, True)
        gateway.fail_deregistration = True

        await link_service.delete(owner_id, link.id)

        assert await load_link(session_factory, link.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_link_is_not_found(
        self, link_service: LinkService, owner_id: str
    ) -> None:
        """Deleting an unknown link raises LinkNotFoundError."""
        with pytest.raises(LinkNotFoundError):
            await link_service.delete(owner_id, "missing")


class TestReadsAndOwnership:
    """Tests for index, get and owner scoping."""

    @pytest.mark.asyncio
    async def test_index_lists_only_own_links(
        self,
        link_service: LinkService,
        owner_id: str,
        stranger_id: str,
        repos: SeededRepos,
    ) -> None:
        """Index returns the caller's links, oldest first, fully expanded."""
        first = await link_service.create(owner_id, "first")
        second = await link_service.create(owner_id, "second")
        await link_service.create(stranger_id, "theirs")
        await link_service.update(owner_id, second.id, upstream=repos.upstream)

        links = await link_service.index(owner_id)

        assert [link.id for link in links] == [first.id, second.id]
        assert links[1].upstream is not None
        assert links[1].upstream.id == repos.upstream
        assert all(link.owner_id == owner_id for link in links)

    @pytest.mark.asyncio
    async def test_get_returns_materialized_link(
        self, link_service: LinkService, owner_id: str
    ) -> None:
        """Get returns the same view create produced."""
        created = await link_service.create(owner_id)
        assert await link_service.get(owner_id, created.id) == created

    @pytest.mark.asyncio
    async def test_foreign_link_reads_as_missing(
        self, link_service: LinkService, owner_id: str, stranger_id: str
    ) -> None:
        """Another user's link is reported as not found on read."""
        link = await link_service.create(owner_id)

        with pytest.raises(LinkNotFoundError):
            await link_service.get(stranger_id, link.id)

    @pytest.mark.asyncio
    async def test_foreign_link_cannot_be_changed(
        self,
        link_service: LinkService,
        gateway: InMemoryWebhookGateway,
        owner_id: str,
        stranger_id: str,
        repos: SeededRepos,
    ) -> None:
        """Writes to another user's link are forbidden and make no calls."""
        link = await link_service.create(owner_id)

        with pytest.raises(LinkForbiddenError):
            await link_service.update(stranger_id, link.id, upstream=repos.upstream)
        with pytest.raises(LinkForbiddenError):
            await link_service.enable(stranger_id, link.id, True)
        with pytest.raises(LinkForbiddenError):
            await link_service.delete(stranger_id, link.id)
        assert gateway.register_calls == []
        assert gateway.deregister_calls == []

    @pytest.mark.asyncio
    async def test_update_missing_link_is_not_found(
        self, link_service: LinkService, owner_id: str
    ) -> None:
        """Updating an unknown link raises LinkNotFoundError."""
        with pytest.raises(LinkNotFoundError):
            await link_service.update(owner_id, "missing", name="x")
