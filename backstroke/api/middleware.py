"""ASGI lifespan middleware owning the storage engine and webhook gateway.

The process entry point creates the engine and the gateway's HTTP client;
this middleware prepares the schema when the server starts and releases both
when it stops.

Usage
-----
Register the middleware when creating the Falcon app::

    from backstroke.api.middleware import StorageLifespan

    lifespan = StorageLifespan(engine, gateway=gateway)
    app = falcon.asgi.App(middleware=[lifespan])

"""

from __future__ import annotations

import typing as typ

from backstroke.logging import get_logger, log_info
from backstroke.persistence.storage import init_storage

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["StorageLifespan", "SupportsAclose"]

logger = get_logger(__name__)


class SupportsAclose(typ.Protocol):
    """Resource with an async ``aclose`` method."""

    async def aclose(self) -> None:
        """Release the resource."""
        ...


class StorageLifespan:
    """Falcon middleware tied to ASGI lifespan events.

    Parameters
    ----------
    engine
        Async engine shared by the session factory.
    gateway
        Optional resource, typically the webhook gateway, closed at shutdown.
    create_schema
        Create missing tables at startup.

    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        gateway: SupportsAclose | None = None,
        create_schema: bool = True,
    ) -> None:
        """Store the resources this middleware manages."""
        self._engine = engine
        self._gateway = gateway
        self._create_schema = create_schema

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create the schema when requested."""
        if self._create_schema:
            await init_storage(self._engine)
            log_info(logger, "Storage schema ready")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Close the gateway and dispose of the engine's pool."""
        try:
            if self._gateway is not None:
                await self._gateway.aclose()
        finally:
            await self._engine.dispose()
        log_info(logger, "Storage and webhook gateway released")
