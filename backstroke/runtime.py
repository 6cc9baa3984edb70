"""Process entry point for the Backstroke service.

``backstroke.runtime:create_app`` is the Granian application factory. The
app always answers ``/health`` and ``/ready``. Setting
``BACKSTROKE_DATABASE_URL`` also mounts the ``/links`` routes, backed by the
GitHub webhook gateway; that mode additionally needs the settings read by
:meth:`~backstroke.webhooks.github.GitHubWebhookConfig.from_env`.

Environment:

- ``BACKSTROKE_HOST``: bind address (default ``0.0.0.0``)
- ``BACKSTROKE_PORT``: listen port (default ``8080``)
- ``BACKSTROKE_LOG_LEVEL``: log level (default ``INFO``)
- ``BACKSTROKE_DATABASE_URL``: SQLAlchemy async URL (optional)

Run the service with ``backstroke`` or ``python -m backstroke.runtime``.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

from backstroke.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from sqlalchemy.ext.asyncio import AsyncEngine

    from backstroke.links import LinkService
    from backstroke.webhooks import GitHubWebhookGateway

__all__ = ["RuntimeSettings", "create_app", "main"]

logger = get_logger(__name__)

_PORT_RANGE = range(1, 65536)
_DEFAULT_HOST = "0.0.0.0"  # noqa: S104 - containers bind every interface
_DEFAULT_PORT = 8080
_DEFAULT_LOG_LEVEL = "INFO"


def _parse_port(raw: str) -> int:
    """Return ``raw`` as a TCP port, exiting the process if it is not one."""
    try:
        port = int(raw)
    except ValueError:
        port = 0
    if port not in _PORT_RANGE:
        log_error(
            logger,
            "Invalid BACKSTROKE_PORT value %r; expected %d-%d",
            raw,
            _PORT_RANGE.start,
            _PORT_RANGE.stop - 1,
        )
        raise SystemExit(1)
    return port


@dataclasses.dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Server settings read from ``BACKSTROKE_*`` variables."""

    host: str = _DEFAULT_HOST
    port: int = _DEFAULT_PORT
    log_level: str = _DEFAULT_LOG_LEVEL
    database_url: str | None = None

    @classmethod
    def from_env(cls) -> RuntimeSettings:
        """Read settings from the environment.

        An unusable ``BACKSTROKE_PORT`` exits the process.
        """
        return cls(
            host=os.environ.get("BACKSTROKE_HOST", _DEFAULT_HOST),
            port=_parse_port(os.environ.get("BACKSTROKE_PORT", str(_DEFAULT_PORT))),
            log_level=os.environ.get("BACKSTROKE_LOG_LEVEL", _DEFAULT_LOG_LEVEL),
            database_url=os.environ.get("BACKSTROKE_DATABASE_URL") or None,
        )


def _build_link_stack(
    database_url: str,
) -> tuple[LinkService, AsyncEngine, GitHubWebhookGateway]:
    """Wire engine, gateway and link service for ``database_url``."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from backstroke.links import LinkService, LinkServiceConfig
    from backstroke.webhooks import GitHubWebhookConfig, GitHubWebhookGateway

    gateway = GitHubWebhookGateway(GitHubWebhookConfig.from_env())
    engine = create_async_engine(database_url)
    service = LinkService(
        async_sessionmaker(engine, expire_on_commit=False),
        gateway,
        config=LinkServiceConfig.from_env(),
    )
    return service, engine, gateway


def create_app() -> falcon.asgi.App:
    """Build the ASGI app for the current environment.

    Raises
    ------
    WebhookConfigError
        If a database URL is set but the GitHub settings are incomplete.

    """
    from backstroke.api.app import AppDependencies
    from backstroke.api.app import create_app as build_api

    database_url = os.environ.get("BACKSTROKE_DATABASE_URL") or None
    if database_url is None:
        log_info(logger, "BACKSTROKE_DATABASE_URL unset; serving health probes only")
        return build_api()

    service, engine, gateway = _build_link_stack(database_url)
    return build_api(
        AppDependencies(link_service=service, engine=engine, gateway=gateway)
    )


def main() -> None:
    """Configure logging and serve :func:`create_app` with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = RuntimeSettings.from_env()
    level, replaced = configure_logging(settings.log_level)
    if replaced:
        log_warning(
            logger,
            "Invalid BACKSTROKE_LOG_LEVEL %r, using %s",
            settings.log_level,
            level,
        )
    log_info(
        logger,
        "Starting Backstroke on %s:%d (log_level=%s, links=%s)",
        settings.host,
        settings.port,
        level,
        "on" if settings.database_url else "off",
    )

    Granian(
        "backstroke.runtime:create_app",
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
    ).serve()


if __name__ == "__main__":
    main()
