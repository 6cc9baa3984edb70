"""Logging helpers on top of femtologging.

femtologging loggers accept one finished message string, so every helper
here renders its message before the call. Two styles are offered:

- ``log_info(logger, "Registered %d webhook(s) on %s", 1, "octo/reef")`` for
  free-form percent-style messages;
- ``log_event(logger, LogLevel.INFO, "link.created", link_id="...")`` for
  lifecycle events, rendered as ``[event] key=value ...`` so log search can
  filter on both the event name and its fields.

Example:
>>> from backstroke.logging import get_logger, log_event, LogLevel
>>> logger = get_logger(__name__)
>>> log_event(logger, LogLevel.INFO, "link.deleted", link_id="l-1", released_hooks=2)

"""

from __future__ import annotations

import collections.abc as cabc
import enum
import typing as typ

from femtologging import basicConfig, get_logger

_DEFAULT_LEVEL = "INFO"
_LEVEL_ALIASES = {"WARN": "WARNING"}


class LogLevel(enum.StrEnum):
    """Log levels accepted by ``BACKSTROKE_LOG_LEVEL``."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class _SupportsLog(typ.Protocol):
    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the level to configure and whether ``level`` had to be replaced.

    Matching ignores case and surrounding whitespace, and ``WARN`` is read as
    ``WARNING``. Blank or unknown values fall back to ``INFO``.
    """
    candidate = (level or "").strip().upper()
    candidate = _LEVEL_ALIASES.get(candidate, candidate)
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_DEFAULT_LEVEL, True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Configure femtologging at ``level`` and return the normalized level."""
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into a percent-style ``template``."""
    return template % args if args else template


def _render_field(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, cabc.Sequence) and not isinstance(value, str | bytes):
        return ",".join(str(item) for item in value)
    return str(value)


def format_event(event: str, /, **fields: object) -> str:
    """Render an event as ``[event] key=value ...`` in keyword order.

    ``None`` renders as ``-`` and non-string sequences are comma-joined, so
    ``hook_ids=["1", "2"]`` becomes ``hook_ids=1,2``.
    """
    rendered = " ".join(
        f"{key}={_render_field(value)}" for key, value in fields.items()
    )
    return f"[{event}] {rendered}" if rendered else f"[{event}]"


def log_event(
    logger: _SupportsLog,
    level: LogLevel,
    event: str,
    /,
    *,
    exc_info: object | None = None,
    **fields: object,
) -> None:
    """Emit a lifecycle event at ``level``; see :func:`format_event`."""
    logger.log(
        level.value, format_event(event, **fields), exc_info=exc_info, stack_info=False
    )


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level.value,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_info(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at INFO with percent-style ``args``."""
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at WARNING with percent-style ``args``."""
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_error(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Log at ERROR with percent-style ``args``."""
    _emit(logger, LogLevel.ERROR, template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached."""
    logger.log(LogLevel.ERROR.value, message, exc_info=exc, stack_info=False)


__all__ = [
    "LogLevel",
    "configure_logging",
    "format_event",
    "format_log_message",
    "get_logger",
    "log_error",
    "log_event",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
