"""Logger configuration and convenience helpers."""

from __future__ import annotations

import logging
import os
import sys

_DEFAULT_LOGGER_NAME = "chesstrack"
_DEFAULT_FORMATTER = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
_DEFAULT_HANDLER = logging.StreamHandler(sys.stdout)
_DEFAULT_HANDLER.setFormatter(_DEFAULT_FORMATTER)


def _resolve_default_level() -> int:
    name = os.getenv("CHESSTRACK_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.INFO


_DEFAULT_LOG_LEVEL = _resolve_default_level()


def _configure_logger(logger: logging.Logger, level: int) -> None:
    """Attach the shared stdout handler and stop propagation.

    The level is only applied when the logger has none of its own.
    """
    if logger.level == logging.NOTSET:
        logger.setLevel(level)
    if not logger.handlers:
        logger.addHandler(_DEFAULT_HANDLER)
    logger.propagate = False


def get_logger(name: str | None = None, level: int = _DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Return a configured logger for the given name."""
    logger = logging.getLogger(name or _DEFAULT_LOGGER_NAME)
    _configure_logger(logger, level)
    return logger

