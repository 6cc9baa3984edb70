"""Falcon error handler for the Backstroke error taxonomy.

Every :class:`~backstroke.errors.BackstrokeError` carries an
:class:`~backstroke.errors.ErrorKind`. One handler maps the kind to an HTTP
status and renders ``{"title", "description", "code"}``.

Usage
-----
Register the handler on the Falcon app::

    from backstroke.api.errors import handle_backstroke_error
    from backstroke.errors import BackstrokeError

    app.add_error_handler(BackstrokeError, handle_backstroke_error)

"""

from __future__ import annotations

import typing as typ

import falcon

from backstroke.errors import BackstrokeError, ErrorKind, InvalidInputError
from backstroke.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["STATUS_BY_KIND", "handle_backstroke_error", "status_for"]

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT: falcon.HTTP_400,
    ErrorKind.NOT_FOUND: falcon.HTTP_404,
    ErrorKind.FORBIDDEN: falcon.HTTP_403,
    ErrorKind.CONFLICT: falcon.HTTP_409,
    ErrorKind.GATEWAY_ERROR: falcon.HTTP_502,
    ErrorKind.WEBHOOK_REGISTRATION_FAILED: falcon.HTTP_502,
    ErrorKind.PERSISTENCE_ERROR: falcon.HTTP_500,
}


def status_for(kind: ErrorKind) -> str:
    """Return the HTTP status line for an error kind."""
    return STATUS_BY_KIND.get(kind, falcon.HTTP_500)


async def handle_backstroke_error(
    req: Request,
    resp: Response,
    ex: BackstrokeError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a ``BackstrokeError`` to its HTTP status and JSON body.

    Parameters
    ----------
    req
        Falcon request, used for the log line on server-side failures.
    resp
        Falcon response whose status and media are set.
    ex
        The domain exception.
    _params
        URI template parameters (unused).

    """
    if ex.kind is ErrorKind.PERSISTENCE_ERROR:
        log_exception(logger, f"{req.method} {req.path} failed: {ex}", ex)

    resp.status = status_for(ex.kind)
    media: dict[str, str] = {
        "title": ex.title,
        "description": str(ex),
        "code": ex.kind.value,
    }
    if isinstance(ex, InvalidInputError) and ex.field is not None:
        media["field"] = ex.field
    resp.media = media
