"""Logging setup for the generator.

Modules obtain loggers with ``get_logger(__name__)``; the CLI calls
``configure_logging`` once to pick the level and attach a stderr handler.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

LOGGER_NAME = "openapi_to_dart"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a child logger under the ``openapi_to_dart`` hierarchy.

    Args:
        name (Optional[str]): Module ``__name__``, or None for the root logger.

    Returns:
        logging.Logger: Logger instance.
    """
    if name is None or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    short = name.rsplit(".", 1)[-1]
    return logging.getLogger(f"{LOGGER_NAME}.{short}")


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure the generator logger hierarchy.

    ``verbose`` selects DEBUG, ``quiet`` selects WARNING, otherwise INFO.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(level)

    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_MessageFormatter())
    root_logger.addHandler(handler)
    root_logger.propagate = False


class _MessageFormatter(logging.Formatter):
    """Emit warnings with a level prefix and everything else verbatim."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.capitalize()}: {message}"
        return message
