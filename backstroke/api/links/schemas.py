"""Request payloads accepted by the link resources."""

from __future__ import annotations

import typing as typ

import msgspec

from backstroke.errors import InvalidInputError

__all__ = ["LinkCreateRequest", "LinkFields", "LinkPutRequest", "decode_body"]


class LinkFields(msgspec.Struct, kw_only=True):
    """Editable link fields. Absent or ``null`` fields are left unchanged."""

    name: str | None = None
    upstream: str | dict[str, typ.Any] | None = None
    fork: str | dict[str, typ.Any] | None = None


class LinkPutRequest(msgspec.Struct, kw_only=True):
    """Body of ``PUT /links/{link_id}``.

    Exactly one of ``link`` (field update) or ``enabled`` (toggle) is given.
    """

    link: LinkFields | None = None
    enabled: bool | None = None


class LinkCreateRequest(msgspec.Struct, kw_only=True):
    """Optional body of ``POST /links``."""

    name: str | None = None


T = typ.TypeVar("T")


def decode_body(raw: bytes, type_: type[T]) -> T:
    """Decode a JSON request body into ``type_``.

    Raises
    ------
    InvalidInputError
        If the body is not valid JSON or does not match ``type_``.

    """
    try:
        return msgspec.json.decode(raw, type=type_)
    except msgspec.ValidationError as exc:
        raise InvalidInputError(str(exc)) from exc
    except msgspec.DecodeError as exc:
        raise InvalidInputError("request body is not valid JSON") from exc
