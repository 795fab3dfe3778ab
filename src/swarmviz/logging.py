"""Logging for the swarm-viz server.

Everything logs under the ``swarmviz`` logger; components use child loggers
(``swarmviz.discovery``, ``swarmviz.stores``, ``swarmviz.gateway``, ...).
Store outages and source switches log at info/warning, per-client delta
counts at TRACE. Output goes to the file named by ``logging.file`` or
``SWARMVIZ_LOG``, otherwise stderr.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swarmviz.config.schema import LoggingConfig

# Below DEBUG: per-tick detail. Between DEBUG and INFO: discovery chatter.
TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("swarmviz")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# `-v` count (plus the info baseline) to level; 4 includes per-tick TRACE
_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective log level from a LoggingConfig.

    ``verbose`` (int) takes precedence over ``level`` (str). Unknown names
    fall back to INFO.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_MAP.get(config.verbose, TRACE)
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach the swarm-viz handler once per process; later calls do nothing."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    log_level = resolve_level(config)
    logger.setLevel(log_level)

    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = config.file if config and config.file else os.environ.get("SWARMVIZ_LOG")

    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            print(f"[swarm-viz] Failed to open log file: {e}", file=sys.stderr)
            _add_stderr_handler(formatter, log_level)
    else:
        _add_stderr_handler(formatter, log_level)


def _add_stderr_handler(formatter: logging.Formatter, level: int = logging.DEBUG) -> None:
    """Log to stderr (the default, and the fallback for an unusable log file)."""
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``swarmviz`` logger, or its ``name`` child."""
    if name:
        return logger.getChild(name)
    return logger
