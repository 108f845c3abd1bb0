"""femtologging setup and percent-style logging helpers.

Messages are rendered before they reach femtologging, so the helpers accept
``logging``-style templates while the backend only ever sees finished text.
User-facing progress is printed by the commands themselves; these helpers
carry diagnostics (retries, rollbacks, failures with tracebacks).

Example:
>>> from coco_deploy.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Installing %s", "containerd")

"""

from __future__ import annotations

import enum
import os
import typing as typ

from femtologging import basicConfig, get_logger

LOG_LEVEL_ENV_VAR = "COCO_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Level names femtologging accepts."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class _SupportsLog(typ.Protocol):
    """Anything with femtologging's ``FemtoLogger.log`` signature."""

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
    """Return ``(level, invalid)`` with unknown or empty levels mapped to INFO.

    Examples
    --------
    >>> normalize_log_level(" debug ")
    ('DEBUG', False)
    >>> normalize_log_level("chatty")
    ('INFO', True)

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return candidate, False
    return DEFAULT_LOG_LEVEL, True


def configure_logging(level: str | None = None, *, force: bool = False) -> str:
    """Configure femtologging and return the level that was applied.

    Parameters
    ----------
    level : str | None, optional
        Explicit level. When omitted ``COCO_LOG_LEVEL`` is consulted, then
        ``INFO``.
    force : bool, optional
        Replace an existing root handler configuration.

    """
    requested = level if level is not None else os.environ.get(LOG_LEVEL_ENV_VAR)
    normalized, invalid = normalize_log_level(requested)
    basicConfig(level=normalized, force=force)
    if invalid and requested:
        log_warning(
            get_logger(__name__),
            "Unknown log level %r, falling back to %s",
            requested,
            normalized,
        )
    return normalized


def format_log_message(template: str, *args: object) -> str:
    """Render a percent-style template; no arguments leaves it untouched."""
    return template % args if args else template


def _emit(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Log at DEBUG."""
    _emit(logger, LogLevel.DEBUG, template, args, None)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at INFO.

    Parameters
    ----------
    logger : _SupportsLog
        Destination logger.
    template : str
        Percent-style message template.
    *args : object
        Template arguments.
    exc_info : object | None, optional
        Exception to attach to the record.

    """
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at WARNING."""
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at ERROR."""
    _emit(logger, LogLevel.ERROR, template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as exc_info."""
    _emit(logger, LogLevel.ERROR, message, (), exc)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LOG_LEVEL_ENV_VAR",
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
