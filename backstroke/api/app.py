"""Application factory for the Backstroke Falcon ASGI application.

``create_app()`` always registers the health probes. When a link service is
supplied it also mounts the ``/links`` routes behind acting-user resolution.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with link endpoints::

    from backstroke.api.app import AppDependencies, create_app

    deps = AppDependencies(link_service=service, engine=engine, gateway=gateway)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from backstroke.api.auth import ActingUserMiddleware, HeaderUserResolver
from backstroke.api.errors import handle_backstroke_error
from backstroke.api.health.resources import HealthResource, ReadyResource
from backstroke.errors import BackstrokeError

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from backstroke.api.auth import UserResolver
    from backstroke.api.middleware import SupportsAclose
    from backstroke.links.service import LinkService

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    link_service
        Link lifecycle service. Link routes are mounted only when set.
    user_resolver
        Strategy for the acting user. Defaults to
        :class:`~backstroke.api.auth.HeaderUserResolver`.
    engine
        Engine whose schema is prepared at startup and disposed at shutdown.
    gateway
        Webhook gateway closed at shutdown.

    """

    link_service: LinkService | None = None
    user_resolver: UserResolver | None = None
    engine: AsyncEngine | None = None
    gateway: SupportsAclose | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or without a link
        service, only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []

    if deps.engine is not None:
        from backstroke.api.middleware import StorageLifespan

        middleware.append(StorageLifespan(deps.engine, gateway=deps.gateway))

    if deps.link_service is not None:
        resolver = deps.user_resolver or HeaderUserResolver()
        middleware.append(ActingUserMiddleware(resolver))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(links_enabled=deps.link_service is not None))

    if deps.link_service is not None:
        from backstroke.api.links.resources import LinkResource, LinksResource

        app.add_route("/links", LinksResource(deps.link_service))
        app.add_route("/links/{link_id}", LinkResource(deps.link_service))

    app.add_error_handler(BackstrokeError, handle_backstroke_error)

    return app
