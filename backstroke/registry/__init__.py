"""Repository registry for link upstreams and forks.

Links reference repositories either by stored id or by an inline descriptor.
The registry resolves both forms to persisted rows:

- an id must match an existing row, otherwise ``RepositoryNotFoundError``;
- a descriptor must carry ``owner`` and ``repo`` and always yields a new row.

Usage
-----
Resolve a reference inside an open unit of work::

    from backstroke.registry import RepositoryRegistry

    registry = RepositoryRegistry()
    async with session_factory() as session, session.begin():
        upstream = await registry.resolve(
            session, {"owner": "octo", "repo": "reef", "branches": ["main"]}
        )

"""

from backstroke.registry.errors import (
    InvalidRepositoryDescriptorError,
    RepositoryNotFoundError,
)
from backstroke.registry.mapping import to_repository_info
from backstroke.registry.models import (
    RepositoryDescriptor,
    RepositoryInfo,
    RepositoryRef,
)
from backstroke.registry.service import RepositoryRegistry, parse_descriptor

__all__ = [
    "InvalidRepositoryDescriptorError",
    "RepositoryDescriptor",
    "RepositoryInfo",
    "RepositoryNotFoundError",
    "RepositoryRef",
    "RepositoryRegistry",
    "parse_descriptor",
    "to_repository_info",
]
