"""Mapping helpers for registry DTOs."""

from __future__ import annotations

import typing as typ

from backstroke.registry.models import RepositoryInfo

if typ.TYPE_CHECKING:
    from backstroke.persistence.storage import Repository


def to_repository_info(repo: Repository) -> RepositoryInfo:
    """Convert a stored repository row to a RepositoryInfo DTO.

    Parameters
    ----------
    repo
        Repository row from the record store.

    Returns
    -------
    RepositoryInfo
        Detached repository snapshot suitable for gateway calls.

    """
    return RepositoryInfo(
        id=repo.id,
        type=repo.type,
        owner=repo.owner,
        repo=repo.repo,
        html_url=repo.html_url,
        branches=tuple(repo.branches or ()),
        branch=repo.branch,
        fork=repo.fork,
    )
