"""Link resources: the ``/links`` collection and single links.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/links", LinksResource(link_service))
    app.add_route("/links/{link_id}", LinkResource(link_service))

"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

from backstroke.api.links.schemas import (
    LinkCreateRequest,
    LinkPutRequest,
    decode_body,
)
from backstroke.errors import InvalidInputError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from backstroke.links.models import LinkView
    from backstroke.links.service import LinkService

__all__ = ["LinkResource", "LinksResource"]


def _serialize(view: LinkView) -> dict[str, typ.Any]:
    return typ.cast("dict[str, typ.Any]", msgspec.to_builtins(view))


def _acting_user(req: Request) -> str:
    return req.context.user_id


class LinksResource:
    """``GET /links`` lists the caller's links, ``POST /links`` creates one."""

    def __init__(self, link_service: LinkService) -> None:
        """Configure the resource with the link service."""
        self._service = link_service

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return every link owned by the acting user."""
        views = await self._service.index(_acting_user(req))
        resp.media = {"data": [_serialize(view) for view in views]}
        resp.status = falcon.HTTP_200

    async def on_post(self, req: Request, resp: Response) -> None:
        """Create a disabled, unlinked link.

        The body is optional; ``{"name": ...}`` overrides the default name.
        """
        raw = await req.stream.read()
        payload = (
            decode_body(raw, LinkCreateRequest) if raw.strip() else LinkCreateRequest()
        )
        view = await self._service.create(_acting_user(req), payload.name)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_201


class LinkResource:
    """Read, change, toggle or delete one link."""

    def __init__(self, link_service: LinkService) -> None:
        """Configure the resource with the link service."""
        self._service = link_service

    async def on_get(self, req: Request, resp: Response, *, link_id: str) -> None:
        """Return one link owned by the acting user."""
        view = await self._service.get(_acting_user(req), link_id)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_200

    async def on_put(self, req: Request, resp: Response, *, link_id: str) -> None:
        """Update link fields or toggle webhooks.

        ``{"link": {...}}`` updates name, upstream and fork. ``{"enabled":
        bool}`` switches webhooks on or off.

        Raises
        ------
        InvalidInputError
            If the body carries neither or both forms.

        """
        payload = decode_body(await req.stream.read(), LinkPutRequest)
        owner_id = _acting_user(req)
        if payload.link is not None and payload.enabled is not None:
            msg = "send either 'link' or 'enabled', not both"
            raise InvalidInputError(msg)
        if payload.link is not None:
            fields = payload.link
            view = await self._service.update(
                owner_id,
                link_id,
                name=fields.name,
                upstream=fields.upstream,
                fork=fields.fork,
            )
        elif payload.enabled is not None:
            view = await self._service.enable(owner_id, link_id, payload.enabled)
        else:
            msg = "body must contain 'link' or 'enabled'"
            raise InvalidInputError(msg)
        resp.media = _serialize(view)
        resp.status = falcon.HTTP_200

    async def on_delete(self, req: Request, resp: Response, *, link_id: str) -> None:
        """Delete a link and its webhooks."""
        await self._service.delete(_acting_user(req), link_id)
        resp.status = falcon.HTTP_204
