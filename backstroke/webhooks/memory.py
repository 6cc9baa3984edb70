"""In-process webhook gateway for tests and local development."""

from __future__ import annotations

import dataclasses
import itertools
import typing as typ

from .errors import GatewayError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from backstroke.registry.models import RepositoryInfo

    from .gateway import WebhookSubscriber


@dataclasses.dataclass(frozen=True, slots=True)
class RegisterCall:
    """One recorded ``register_webhooks`` invocation."""

    repository_id: str
    link_id: str


@dataclasses.dataclass(frozen=True, slots=True)
class DeregisterCall:
    """One recorded ``deregister_webhooks`` invocation."""

    repository_id: str
    hook_ids: tuple[str, ...]


class InMemoryWebhookGateway:
    """Deterministic implementation of :class:`WebhookGateway`.

    Hooks live in a dictionary keyed by repository id. Every call is
    recorded per operation and, in order, in ``calls``. Either operation
    can be told to fail so callers can exercise their error paths.

    Parameters
    ----------
    hook_ids
        Optional fixed list of ids to hand out on each new registration.
        When omitted, ids are numbered sequentially from ``start``.
    start
        First sequential hook id.

    Examples
    --------
    >>> gateway = InMemoryWebhookGateway(hook_ids=["98765"])
    >>> gateway.fail_registration = True

    """

    def __init__(
        self,
        *,
        hook_ids: cabc.Sequence[str] | None = None,
        start: int = 1000,
    ) -> None:
        """Initialise empty hook storage and call logs."""
        self._fixed_ids = list(hook_ids) if hook_ids is not None else None
        self._counter = itertools.count(start)
        self.hooks: dict[str, dict[str, str]] = {}
        self.register_calls: list[RegisterCall] = []
        self.deregister_calls: list[DeregisterCall] = []
        self.calls: list[RegisterCall | DeregisterCall] = []
        self.fail_registration = False
        self.fail_deregistration = False

    def active_hooks(self, repository_id: str) -> list[str]:
        """Return hook ids currently present on ``repository_id``."""
        return list(self.hooks.get(repository_id, {}))

    async def register_webhooks(
        self, repository: RepositoryInfo, link: WebhookSubscriber
    ) -> list[str]:
        """Record the call and return the hooks owned by ``link``."""
        call = RegisterCall(repository.id, link.id)
        self.register_calls.append(call)
        self.calls.append(call)
        if self.fail_registration:
            raise GatewayError.http_error("hook create", 500)

        repo_hooks = self.hooks.setdefault(repository.id, {})
        owned = [hook_id for hook_id, owner in repo_hooks.items() if owner == link.id]
        if owned:
            return owned

        new_ids = (
            list(self._fixed_ids)
            if self._fixed_ids is not None
            else [str(next(self._counter))]
        )
        for hook_id in new_ids:
            repo_hooks[hook_id] = link.id
        return new_ids

    async def deregister_webhooks(
        self, repository: RepositoryInfo, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Record the call and drop the listed hooks."""
        call = DeregisterCall(repository.id, tuple(hook_ids))
        self.deregister_calls.append(call)
        self.calls.append(call)
        if self.fail_deregistration:
            raise GatewayError.partial_cleanup(list(hook_ids))

        repo_hooks = self.hooks.get(repository.id, {})
        for hook_id in hook_ids:
            repo_hooks.pop(hook_id, None)
