"""Value objects and response views for links."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    from backstroke.persistence.storage import Link, Repository, User
    from backstroke.registry.models import RepositoryInfo, RepositoryRef


class LinkPosture(enum.StrEnum):
    """Webhook posture of a link, derived from its row."""

    UNLINKED = "unlinked"
    LINKED_DISABLED = "linked_disabled"
    LINKED_ENABLED = "linked_enabled"


def posture_of(*, enabled: bool, upstream_id: str | None) -> LinkPosture:
    """Return the posture for a link with the given flags."""
    if upstream_id is None:
        return LinkPosture.UNLINKED
    return LinkPosture.LINKED_ENABLED if enabled else LinkPosture.LINKED_DISABLED


@dataclasses.dataclass(frozen=True, slots=True)
class LinkDelta:
    """Desired changes to a link. ``None`` leaves a field as it is.

    ``upstream`` and ``fork`` accept anything the repository registry can
    resolve: a stored repository id or an inline descriptor.
    """

    name: str | None = None
    upstream: RepositoryRef | None = None
    fork: RepositoryRef | None = None
    enabled: bool | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class LinkInfo:
    """Detached snapshot of a link row."""

    id: str
    name: str
    enabled: bool
    hook_ids: tuple[str, ...]
    owner_id: str
    upstream_id: str | None
    fork_id: str | None

    @property
    def posture(self) -> LinkPosture:
        """Return the webhook posture this snapshot is in."""
        return posture_of(enabled=self.enabled, upstream_id=self.upstream_id)

    @classmethod
    def of(cls, link: Link) -> LinkInfo:
        """Snapshot ``link`` so later mutations do not leak into it."""
        return cls(
            id=link.id,
            name=link.name,
            enabled=link.enabled,
            hook_ids=tuple(link.hook_ids or ()),
            owner_id=link.owner_id,
            upstream_id=link.upstream_id,
            fork_id=link.fork_id,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class OrphanedHooks:
    """Hooks registered by an operation whose link write did not land."""

    repository: RepositoryInfo
    hook_ids: tuple[str, ...]


class UserView(msgspec.Struct, kw_only=True, frozen=True):
    """Embedded owner representation."""

    id: str
    username: str
    email: str | None = None
    picture: str | None = None

    @classmethod
    def of(cls, user: User) -> UserView:
        """Build the view from a stored user."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            picture=user.picture,
        )


class RepositoryView(msgspec.Struct, kw_only=True, frozen=True):
    """Embedded upstream or fork representation."""

    id: str
    type: str
    owner: str
    repo: str
    html_url: str | None
    branches: list[str]
    branch: str | None
    fork: bool

    @classmethod
    def of(cls, repo: Repository) -> RepositoryView:
        """Build the view from a stored repository."""
        return cls(
            id=repo.id,
            type=repo.type,
            owner=repo.owner,
            repo=repo.repo,
            html_url=repo.html_url,
            branches=list(repo.branches or ()),
            branch=repo.branch,
            fork=repo.fork,
        )


class LinkView(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Materialized link returned to callers.

    Raw ``ownerId``/``upstreamId``/``forkId`` are kept next to the embedded
    ``owner``/``upstream``/``fork`` objects.
    """

    id: str
    name: str
    enabled: bool
    hook_id: list[str]
    owner_id: str
    upstream_id: str | None
    fork_id: str | None
    posture: LinkPosture
    owner: UserView | None = None
    upstream: RepositoryView | None = None
    fork: RepositoryView | None = None
