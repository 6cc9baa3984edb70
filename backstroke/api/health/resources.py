"""Liveness and readiness probes.

These resources need no database access or acting user and are registered
whether or not link routes are available.

Usage
-----
Register health endpoints on the Falcon app::

    from backstroke.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource())

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe returning ``{"status": "ready"}``.

    Reports ``links`` as ``false`` when the app runs without link routes.
    """

    def __init__(self, *, links_enabled: bool = False) -> None:
        """Record whether link routes are mounted."""
        self._links_enabled = links_enabled

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        resp.media = {"status": "ready", "links": self._links_enabled}
        resp.status = HTTPStatus.OK
