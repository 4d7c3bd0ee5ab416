"""femtologging helpers shared by the crawlctl commands.

Messages are formatted eagerly with percent-style interpolation and handed
to femtologging as plain strings, so every module logs the same way.

Example:
>>> from crawlctl.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Queued %d requests", 10)

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

_DEFAULT_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Log levels accepted by ``--log-level`` and ``CRAWLCTL_LOG_LEVEL``."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the upper-cased level and whether the input had to be replaced.

    Parameters
    ----------
    level : str | None
        Raw level taken from the command line or the environment.

    Returns
    -------
    tuple[str, bool]
        The level to configure and ``True`` when ``level`` was unusable and
        the default was substituted.

    """
    if not level or not level.strip():
        return (_DEFAULT_LEVEL, True)

    candidate = level.strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_DEFAULT_LEVEL, True)


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging root configuration for a command run.

    Returns the same pair as :func:`normalize_log_level` so callers can warn
    about a rejected level once logging works.
    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` using ``%`` formatting."""
    if not args:
        return template
    return template % args


class _SupportsLog(typ.Protocol):
    """Anything with femtologging's ``log`` signature, test doubles included."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


class _LevelHelper(typ.Protocol):
    def __call__(
        self,
        logger: _SupportsLog,
        template: str,
        *args: object,
        exc_info: object | None = None,
    ) -> None: ...


def _at(level: LogLevel) -> _LevelHelper:
    def helper(
        logger: _SupportsLog,
        template: str,
        *args: object,
        exc_info: object | None = None,
    ) -> None:
        logger.log(
            str(level),
            format_log_message(template, *args),
            exc_info=exc_info,
            stack_info=False,
        )

    helper.__name__ = f"log_{level.lower()}"
    helper.__doc__ = f"Format ``template`` with ``args`` and log it at {level}."
    return helper


log_debug = _at(LogLevel.DEBUG)
log_info = _at(LogLevel.INFO)
log_warning = _at(LogLevel.WARNING)
log_error = _at(LogLevel.ERROR)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log a ready-made ``message`` at ERROR with ``exc`` as its traceback."""
    logger.log("ERROR", message, exc_info=exc, stack_info=False)


__all__ = [
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
