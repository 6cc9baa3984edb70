"""Acting-user resolution for the HTTP surface.

Backstroke does not authenticate anyone itself. A :class:`UserResolver`
turns a request into the id of the acting user, and
:class:`ActingUserMiddleware` stores it on ``req.context.user_id`` before
any link resource runs.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "ActingUserMiddleware",
    "HeaderUserResolver",
    "USER_HEADER",
    "UserResolver",
]

USER_HEADER = "X-Backstroke-User"


class UserResolver(typ.Protocol):
    """Return the acting user's id for a request, or ``None``."""

    async def resolve(self, req: Request) -> str | None:
        """Resolve the acting user."""
        ...


class HeaderUserResolver:
    """Read the acting user id from a trusted request header.

    Intended to sit behind a proxy that has already authenticated the
    caller and sets the header.
    """

    def __init__(self, header: str = USER_HEADER) -> None:
        """Configure the header name to read."""
        self._header = header

    async def resolve(self, req: Request) -> str | None:
        """Return the stripped header value, or ``None`` when blank."""
        value = req.get_header(self._header)
        if value is None:
            return None
        return value.strip() or None


class ActingUserMiddleware:
    """Attach the acting user id to ``req.context.user_id``.

    Requests without an acting user get HTTP 401, except on the paths in
    ``public_paths``.

    Parameters
    ----------
    resolver
        Strategy that extracts the user id from a request.
    public_paths
        Paths served without an acting user.

    """

    def __init__(
        self,
        resolver: UserResolver,
        *,
        public_paths: cabc.Iterable[str] = ("/health", "/ready"),
    ) -> None:
        """Store the resolver and the paths that skip it."""
        self._resolver = resolver
        self._public_paths = frozenset(public_paths)

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Resolve the acting user or reject the request."""
        if req.path in self._public_paths:
            return
        user_id = await self._resolver.resolve(req)
        if user_id is None:
            raise falcon.HTTPUnauthorized(
                title="Unauthorized",
                description="No acting user supplied with the request",
            )
        req.context.user_id = user_id
