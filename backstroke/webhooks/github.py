"""GitHub REST implementation of the webhook gateway."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import os
import typing as typ

import httpx

from backstroke.logging import get_logger, log_info, log_warning

from .errors import GatewayError, WebhookConfigError

if typ.TYPE_CHECKING:
    from backstroke.registry.models import RepositoryInfo

    from .gateway import WebhookSubscriber

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404
_HOOKS_PAGE_SIZE = 100
_DEFAULT_EVENTS = ("push",)


def _parse_events(raw: str) -> tuple[str, ...]:
    events = tuple(part.strip() for part in raw.split(",") if part.strip())
    return events or _DEFAULT_EVENTS


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubWebhookConfig:
    """Configuration for the GitHub webhook gateway.

    Attributes
    ----------
    token
        Token used to authenticate against the GitHub REST API. It needs
        admin rights on the upstream repositories' hooks.
    webhook_url
        Public base URL that receives deliveries; each link gets
        ``{webhook_url}/{link_id}``.
    secret
        Optional HMAC secret GitHub signs deliveries with.
    api_url
        GitHub REST API root.
    events
        Event names each webhook subscribes to.

    """

    token: str
    webhook_url: str
    secret: str | None = None
    api_url: str = "https://api.github.com"
    events: tuple[str, ...] = _DEFAULT_EVENTS
    timeout_s: float = 20.0
    user_agent: str = "backstroke/0.1"

    @classmethod
    def from_env(cls) -> GitHubWebhookConfig:
        """Build configuration from ``BACKSTROKE_*`` environment variables.

        Reads ``BACKSTROKE_GITHUB_TOKEN`` and ``BACKSTROKE_WEBHOOK_URL``
        (both required), plus the optional ``BACKSTROKE_WEBHOOK_SECRET``,
        ``BACKSTROKE_GITHUB_API_URL`` and ``BACKSTROKE_WEBHOOK_EVENTS``
        (comma-separated).

        Raises
        ------
        WebhookConfigError
            If the token or the webhook URL is missing.

        """
        token = os.environ.get("BACKSTROKE_GITHUB_TOKEN", "").strip()
        if not token:
            raise WebhookConfigError.missing_token()
        webhook_url = os.environ.get("BACKSTROKE_WEBHOOK_URL", "").strip()
        if not webhook_url:
            raise WebhookConfigError.missing_webhook_url()

        secret = os.environ.get("BACKSTROKE_WEBHOOK_SECRET", "").strip() or None
        api_url = (
            os.environ.get("BACKSTROKE_GITHUB_API_URL", "").strip()
            or "https://api.github.com"
        )
        events = _parse_events(os.environ.get("BACKSTROKE_WEBHOOK_EVENTS", ""))
        return cls(
            token=token,
            webhook_url=webhook_url,
            secret=secret,
            api_url=api_url,
            events=events,
        )

    def callback_url(self, link_id: str) -> str:
        """Return the delivery URL for ``link_id``."""
        return f"{self.webhook_url.rstrip('/')}/{link_id}"


def _hook_config_url(hook: object) -> str | None:
    if not isinstance(hook, dict):
        return None
    config = hook.get("config")
    if not isinstance(config, dict):
        return None
    url = config.get("url")
    return url if isinstance(url, str) else None


def _hook_id(hook: object, *, operation: str) -> str:
    if isinstance(hook, dict):
        raw_id = hook.get("id")
        if isinstance(raw_id, int | str) and not isinstance(raw_id, bool):
            return str(raw_id)
    raise GatewayError.malformed(operation, "id")


class GitHubWebhookGateway:
    """GitHub REST implementation of :class:`WebhookGateway`.

    Registration first looks for a hook that already delivers to the link's
    callback URL and reuses it, so retrying a registration never stacks
    duplicate hooks on the upstream.
    """

    def __init__(
        self,
        config: GitHubWebhookConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the gateway with the provided API configuration."""
        if not config.token.strip():
            raise WebhookConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def register_webhooks(
        self, repository: RepositoryInfo, link: WebhookSubscriber
    ) -> list[str]:
        """Ensure one delivery hook for ``link`` exists on ``repository``."""
        callback_url = self._config.callback_url(link.id)
        existing = await self._find_hook(repository, callback_url)
        if existing is not None:
            log_info(
                logger,
                "Reusing webhook %s on %s for link %s",
                existing,
                repository.slug,
                link.id,
            )
            return [existing]

        config: dict[str, str] = {"url": callback_url, "content_type": "json"}
        if self._config.secret:
            config["secret"] = self._config.secret
        payload = {
            "name": "web",
            "active": True,
            "events": list(self._config.events),
            "config": config,
        }
        response = await self._send(
            "POST", self._hooks_path(repository), operation="hook create", json=payload
        )
        self._raise_for_status(response, operation="hook create")
        hook_id = _hook_id(
            self._decode(response, operation="hook create"), operation="hook create"
        )
        log_info(
            logger,
            "Created webhook %s on %s for link %s",
            hook_id,
            repository.slug,
            link.id,
        )
        return [hook_id]

    async def deregister_webhooks(
        self, repository: RepositoryInfo, hook_ids: cabc.Sequence[str]
    ) -> None:
        """Delete every hook in ``hook_ids``; already-missing hooks count as removed.

        All hooks are attempted even when some fail.

        Raises
        ------
        GatewayError
            If at least one hook could not be deleted.

        """
        failed: list[str] = []
        for hook_id in hook_ids:
            path = f"{self._hooks_path(repository)}/{hook_id}"
            try:
                response = await self._send("DELETE", path, operation="hook delete")
                if response.status_code == _HTTP_NOT_FOUND:
                    log_warning(
                        logger,
                        "Webhook %s already absent from %s",
                        hook_id,
                        repository.slug,
                    )
                    continue
                self._raise_for_status(response, operation="hook delete")
            except GatewayError as exc:
                log_warning(
                    logger,
                    "Failed to delete webhook %s on %s: %s",
                    hook_id,
                    repository.slug,
                    exc,
                )
                failed.append(hook_id)
        if failed:
            raise GatewayError.partial_cleanup(failed)

    async def _find_hook(
        self, repository: RepositoryInfo, callback_url: str
    ) -> str | None:
        """Return the id of a hook already delivering to ``callback_url``."""
        response = await self._send(
            "GET",
            self._hooks_path(repository),
            operation="hook list",
            params={"per_page": _HOOKS_PAGE_SIZE},
        )
        self._raise_for_status(response, operation="hook list")
        hooks = self._decode(response, operation="hook list")
        if not isinstance(hooks, list):
            raise GatewayError.malformed("hook list", "hooks")
        for hook in hooks:
            if _hook_config_url(hook) == callback_url:
                return _hook_id(hook, operation="hook list")
        return None

    def _hooks_path(self, repository: RepositoryInfo) -> str:
        return f"/repos/{repository.owner}/{repository.repo}/hooks"

    async def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, typ.Any] | None = None,
        params: dict[str, typ.Any] | None = None,
    ) -> httpx.Response:
        """Issue one REST call, translating transport failures."""
        url = f"{self._config.api_url.rstrip('/')}{path}"
        try:
            return await self._client.request(
                method, url, json=json, params=params, headers=self._headers
            )
        except httpx.HTTPError as exc:
            raise GatewayError.transport(operation, exc) from exc

    @staticmethod
    def _decode(response: httpx.Response, *, operation: str) -> object:
        """Return the JSON body of a successful response."""
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError.malformed(operation, "body") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, *, operation: str) -> None:
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GatewayError.http_error(operation, response.status_code)
