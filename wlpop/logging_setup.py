"""Logging setup and utilities.

The daemon logs to the terminal it was started from (when there is one) and to
a per-tool file under ``$XDG_STATE_HOME``, rotated once it grows past
``MAX_LOG_SIZE``.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TextIO

__all__ = [
    "LogObjects",
    "get_logger",
    "init_logger",
    "is_debug",
    "set_debug",
]

MAX_LOG_SIZE = 10 * 1024 * 1024

_WARNING_STYLE = "\x1b[33;2m"
_ERROR_STYLE = "\x1b[31;2m"
_CRITICAL_STYLE = "\x1b[31;1m"
_RESET = "\x1b[0m"


class LogObjects:
    """Reusable objects for loggers."""

    handlers: list[logging.Handler] = []
    debug: bool = bool(os.environ.get("WLPOP_DEBUG") or os.environ.get("DEBUG"))


def is_debug() -> bool:
    """Return the current debug state."""
    return LogObjects.debug


def set_debug(value: bool) -> None:
    """Set the debug state (affects loggers created afterwards)."""
    LogObjects.debug = value


def should_colorize(stream: TextIO | None = None) -> bool:
    """Tell if ANSI colors should be used on `stream` (stderr by default).

    ``NO_COLOR`` wins over ``FORCE_COLOR``, which wins over TTY detection.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    stream = sys.stderr if stream is None else stream
    return hasattr(stream, "isatty") and stream.isatty()


class ScreenLogFormatter(logging.Formatter):
    """A formatter adding colors based on the log level."""

    def __init__(self, colored: bool) -> None:
        super().__init__()
        fmt = r"%(name)20s - %(message)s // %(filename)s:%(lineno)d" if is_debug() else r"%(message)s"
        styles = {
            logging.WARNING: _WARNING_STYLE,
            logging.ERROR: _ERROR_STYLE,
            logging.CRITICAL: _CRITICAL_STYLE,
        }
        self._default = logging.Formatter(fmt)
        self._formatters = {level: logging.Formatter(f"{style}{fmt}{_RESET}") for level, style in styles.items()} if colored else {}

    def format(self, record: logging.LogRecord) -> str:
        return self._formatters.get(record.levelno, self._default).format(record)


def state_log_path(app_name: str) -> Path:
    """Return the log file used by the `app_name` daemon."""
    state_home = Path(os.environ.get("XDG_STATE_HOME") or Path.home() / ".local" / "state")
    return state_home / app_name / f"{app_name}.log"


def init_logger(filename: str | None = None, force_debug: bool = False, app_name: str | None = None) -> None:
    """Initialize the logging system.

    Args:
        filename: Optional filename to log to (used with ``--debug FILE``)
        force_debug: If True, force debug level
        app_name: When set, also log to the rotated state file of this tool
    """
    if force_debug:
        set_debug(True)

    LogObjects.handlers.clear()
    file_format = logging.Formatter(fmt=r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(file_format)
        LogObjects.handlers.append(file_handler)

    if app_name:
        path = state_log_path(app_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            rotating = logging.handlers.RotatingFileHandler(path, maxBytes=MAX_LOG_SIZE, backupCount=1, encoding="utf-8")
        except OSError as e:
            print(f"Cannot write log file {path}: {e}", file=sys.stderr)
        else:
            rotating.setFormatter(file_format)
            rotating.setLevel(logging.INFO)
            LogObjects.handlers.append(rotating)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenLogFormatter(should_colorize()))
    stream_handler.setLevel(logging.DEBUG if is_debug() else logging.WARNING)
    LogObjects.handlers.append(stream_handler)


def get_logger(name: str = "wlpop", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)

    Returns:
        The logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        logger.setLevel(logging.DEBUG if is_debug() else logging.INFO)
    else:
        logger.setLevel(level)
    logger.propagate = False
    for handler in logger.handlers[:]:
        if handler not in LogObjects.handlers:
            logger.removeHandler(handler)
    for handler in LogObjects.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.debug('Logger "%s" initialized', name)
    return logger
