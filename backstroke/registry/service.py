"""Repository registry: turn repository references into stored rows.

Links name their upstream and fork either by the id of a repository that is
already stored or by an inline descriptor. The registry resolves both forms
inside the caller's session so that any row it inserts commits or rolls back
together with the link change that needed it.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import msgspec
from sqlalchemy.exc import SQLAlchemyError

from backstroke.errors import PersistenceError
from backstroke.logging import get_logger, log_info
from backstroke.persistence.storage import Repository
from backstroke.registry.errors import (
    InvalidRepositoryDescriptorError,
    RepositoryNotFoundError,
)
from backstroke.registry.models import RepositoryDescriptor

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backstroke.registry.models import RepositoryRef

logger = get_logger(__name__)

_REQUIRED_FIELDS = ("owner", "repo")


def _require_fields(raw: cabc.Mapping[str, typ.Any]) -> None:
    for field in _REQUIRED_FIELDS:
        value = raw.get(field)
        if not isinstance(value, str) or not value.strip():
            raise InvalidRepositoryDescriptorError.missing(field)


def parse_descriptor(raw: cabc.Mapping[str, typ.Any]) -> RepositoryDescriptor:
    """Validate a mapping as a repository descriptor.

    Parameters
    ----------
    raw:
        Decoded JSON object describing a repository.

    Returns
    -------
    RepositoryDescriptor
        The validated descriptor.

    Raises
    ------
    InvalidRepositoryDescriptorError
        If ``owner`` or ``repo`` is missing or blank, or any field has the
        wrong type.

    """
    _require_fields(raw)
    try:
        return msgspec.convert(dict(raw), type=RepositoryDescriptor)
    except msgspec.ValidationError as exc:
        raise InvalidRepositoryDescriptorError(str(exc)) from exc


class RepositoryRegistry:
    """Resolve repository references to persisted repositories.

    The registry only ever inserts rows; it never updates or deletes one.
    Identical descriptors are not de-duplicated.
    """

    async def resolve(self, session: AsyncSession, ref: RepositoryRef) -> Repository:
        """Return the repository a reference points at, creating it if inline.

        Parameters
        ----------
        session:
            Session of the enclosing unit of work.
        ref:
            Repository id, :class:`RepositoryDescriptor`, or a mapping that
            validates as one.

        Returns
        -------
        Repository
            The existing row for an id, or a newly flushed row for a
            descriptor.

        Raises
        ------
        RepositoryNotFoundError
            If an id does not match a stored repository.
        InvalidRepositoryDescriptorError
            If a descriptor is malformed or ``ref`` has an unsupported type.
        PersistenceError
            If the record store fails.

        """
        if isinstance(ref, str):
            return await self.get(session, ref)
        if isinstance(ref, RepositoryDescriptor):
            _require_fields({"owner": ref.owner, "repo": ref.repo})
            return await self._create(session, ref)
        if isinstance(ref, cabc.Mapping):
            return await self._create(session, parse_descriptor(ref))
        raise InvalidRepositoryDescriptorError.unsupported_reference(ref)

    async def get(self, session: AsyncSession, repository_id: str) -> Repository:
        """Load a stored repository by id or raise RepositoryNotFoundError."""
        try:
            repo = await session.get(Repository, repository_id)
        except SQLAlchemyError as exc:
            raise PersistenceError("repository lookup", exc) from exc
        if repo is None:
            raise RepositoryNotFoundError(repository_id)
        return repo

    async def _create(
        self, session: AsyncSession, descriptor: RepositoryDescriptor
    ) -> Repository:
        """Insert a repository row for ``descriptor`` and flush it for its id."""
        repo = Repository(
            type=descriptor.type,
            owner=descriptor.owner.strip(),
            repo=descriptor.repo.strip(),
            html_url=descriptor.resolved_html_url,
            branches=list(descriptor.branches),
            branch=descriptor.default_branch,
            fork=descriptor.fork,
        )
        session.add(repo)
        try:
            await session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("repository insert", exc) from exc
        log_info(logger, "Stored repository %s as %s", descriptor.slug, repo.id)
        return repo
