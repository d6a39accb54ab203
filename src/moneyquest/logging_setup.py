"""Centralized logging configuration for the ``moneyquest`` package.

- ``configure_logging(...)`` attaches a single ``StreamHandler`` to the
  package root logger. The CLI calls it once at startup.
- ``get_logger(name)`` returns a logger and makes sure the package root logger
  carries a ``NullHandler`` so library use stays silent when unconfigured.

Library modules never attach their own handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "moneyquest"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Args:
        level: Logging level as int or level name. When None the
            MONEYQUEST_LOG_LEVEL environment variable is used, else WARNING.
        fmt: Optional format string.
        stream: Output stream for the handler (stderr by default).
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    if level is None:
        level = os.getenv("MONEYQUEST_LOG_LEVEL")
    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(resolved)
    # Keep CLI output on our handler only
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, installing a NullHandler on the package root if needed."""
    root = logging.getLogger(_PKG_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
