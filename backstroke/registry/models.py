"""Descriptors and transfer objects for the repository registry."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ

import msgspec

from backstroke.common.slug import repo_slug

_GITHUB_WEB_ROOT = "https://github.com"
_FALLBACK_BRANCH = "master"


class RepositoryDescriptor(msgspec.Struct, kw_only=True):
    """Inline repository data supplied in place of a repository id.

    Attributes
    ----------
    owner : str
        GitHub owner or organisation.
    repo : str
        Repository name.
    type : str
        Repository kind; ``"repo"`` for plain repositories.
    branches : list[str]
        Known branch names, in the order the client listed them.
    branch : str, optional
        Default branch. Falls back to the first listed branch.
    html_url : str, optional
        Browser URL. Derived from owner and repo when omitted.
    fork : bool
        Informational flag copied from the hosting platform.

    """

    owner: str
    repo: str
    type: str = "repo"
    branches: list[str] = msgspec.field(default_factory=list)
    branch: str | None = None
    html_url: str | None = None
    fork: bool = False

    @property
    def slug(self) -> str:
        """Return the GitHub-style owner/repo identifier."""
        return repo_slug(self.owner, self.repo)

    @property
    def default_branch(self) -> str:
        """Return the explicit default branch or the best available fallback."""
        if self.branch:
            return self.branch
        return self.branches[0] if self.branches else _FALLBACK_BRANCH

    @property
    def resolved_html_url(self) -> str:
        """Return ``html_url`` or the conventional GitHub URL."""
        return self.html_url or f"{_GITHUB_WEB_ROOT}/{self.owner}/{self.repo}"


RepositoryRef: typ.TypeAlias = str | RepositoryDescriptor | cabc.Mapping[str, typ.Any]


@dataclasses.dataclass(slots=True, frozen=True)
class RepositoryInfo:
    """Immutable snapshot of a stored repository.

    Handed to the webhook gateway so that network calls never hold a live
    ORM row.
    """

    id: str
    type: str
    owner: str
    repo: str
    html_url: str | None
    branches: tuple[str, ...]
    branch: str | None
    fork: bool

    @property
    def slug(self) -> str:
        """Return owner/repo to match GitHub notation."""
        return repo_slug(self.owner, self.repo)
