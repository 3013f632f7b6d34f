"""Logging for editbridge.

Everything logs under the ``editbridge`` logger. Output goes to the file
named by ``logging.file`` (or $EB_LOG), otherwise to stderr, but only when
stderr is an interactive console: while a session runs the editor owns the
terminal and stray log lines would corrupt its screen.

Verbosity (``logging.verbose`` / ``-v``) runs from 0 (errors) to 4 (trace)
and wins over a named ``logging.level``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from editbridge.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("editbridge")

_initialized = False

_NAMED_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "verbose": VERBOSE,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)


class _LowercaseLevelFormatter(logging.Formatter):
    """``12:01:33 info: message``"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for ``config``; INFO when nothing is set."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        verbosity = max(0, config.verbose)
        return _VERBOSITY_LEVELS[min(verbosity, len(_VERBOSITY_LEVELS) - 1)]
    if config.level:
        return _NAMED_LEVELS.get(config.level.lower(), logging.INFO)
    return logging.INFO


def _open_handler(log_path: str | None) -> logging.Handler | None:
    if log_path:
        try:
            return logging.FileHandler(os.path.expanduser(log_path), encoding="utf-8")
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[editbridge] cannot open log file {log_path}: {e}", file=sys.stderr)
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the editbridge handler. Only the first call has an effect."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    handler = _open_handler(config.file if config and config.file else os.environ.get("EB_LOG"))
    if handler is None:
        return
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter())
    logger.addHandler(handler)


def apply_level(config: LoggingConfig | None) -> int:
    """Re-level the logger and its handlers, e.g. after a config reload."""
    level = resolve_level(config)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    return level


def reset_logging() -> None:
    """Drop installed handlers so setup_logging() can run again."""
    global _initialized
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    _initialized = False


def get_logger(name: str | None = None) -> logging.Logger:
    """The package logger, or its child ``editbridge.<name>``."""
    return logger.getChild(name) if name else logger
