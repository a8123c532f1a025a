"""
Logging utilities.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches a handler to the ``groundrag`` root logger and adjusts its level.
"""

import logging
import sys
from typing import TextIO

ROOT_LOGGER = "groundrag"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling this more than once only updates the level; handlers are not
    duplicated.

    Args:
        level: Log level name or number
        stream: Output stream (defaults to stderr)
        fmt: Log record format

    Returns:
        The package root logger
    """
    logger = logging.getLogger(ROOT_LOGGER)

    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)

    set_log_level(level)
    return logger


def set_log_level(level: int | str) -> None:
    """
    Set the log level for every groundrag logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logging.getLogger(ROOT_LOGGER).setLevel(level)
