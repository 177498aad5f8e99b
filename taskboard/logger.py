"""Centralized logging configuration.

Modules obtain their logger with ``get_logger(__name__)``.
"""

import logging
import os
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


def _level_or_default(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _init_logging() -> None:
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(_level_or_default(os.getenv("LOG_LEVEL", "INFO")))
    root.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    _init_logging()
    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Override the root level, e.g. from ``Settings.log_level``."""
    _init_logging()
    logging.getLogger().setLevel(_level_or_default(level))
