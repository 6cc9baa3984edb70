"""Unit-test fixtures for the link lifecycle."""

from __future__ import annotations

import dataclasses
import typing as typ

import pytest
import pytest_asyncio

from backstroke.links import LinkService
from backstroke.webhooks import InMemoryWebhookGateway
from tests.helpers.records import add_repository, add_user

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@dataclasses.dataclass(frozen=True, slots=True)
class SeededRepos:
    """Ids of the repositories seeded for a test."""

    upstream: str
    fork: str
    other: str


@pytest.fixture
def gateway() -> InMemoryWebhookGateway:
    """Return an in-memory gateway that hands out hook id 98765."""
    return InMemoryWebhookGateway(hook_ids=["98765"])


@pytest.fixture
def link_service(
    session_factory: async_sessionmaker[AsyncSession],
    gateway: InMemoryWebhookGateway,
) -> LinkService:
    """Return a link service backed by sqlite and the in-memory gateway."""
    return LinkService(session_factory, gateway)


@pytest_asyncio.fixture
async def owner_id(session_factory: async_sessionmaker[AsyncSession]) -> str:
    """Insert the acting user and return its id."""
    return await add_user(session_factory, "octocat")


@pytest_asyncio.fixture
async def stranger_id(session_factory: async_sessionmaker[AsyncSession]) -> str:
    """Insert a second user who owns nothing."""
    return await add_user(session_factory, "hubot")


@pytest_asyncio.fixture
async def repos(session_factory: async_sessionmaker[AsyncSession]) -> SeededRepos:
    """Insert an upstream, a fork and an unrelated repository."""
    return SeededRepos(
        upstream=await add_repository(session_factory, "octo", "reef"),
        fork=await add_repository(session_factory, "octocat", "reef", fork=True),
        other=await add_repository(session_factory, "octo", "lagoon"),
    )
