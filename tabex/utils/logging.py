"""Logging setup for library consumers.

The package logs through loguru but stays silent until
:func:`configure_logging` is called.
"""

import sys
from typing import Any

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def configure_logging(level: str = "INFO", sink: Any = None) -> int:
    """Enable ``tabex`` log records and route them to ``sink`` (stderr by default).

    Returns:
        The loguru handler id, usable with ``logger.remove``.
    """
    logger.enable("tabex")
    return logger.add(sink if sink is not None else sys.stderr, level=level, format=LOG_FORMAT)


def disable_logging() -> None:
    """Silence ``tabex`` log records again."""
    logger.disable("tabex")


__all__ = ["LOG_FORMAT", "configure_logging", "disable_logging"]
