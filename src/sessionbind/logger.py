"""
Logging setup for sessionbind.

All modules log through loguru via ``get_logger(__name__)``. The supervisor is
silent by default. Importing the package disables its records, so library
users see nothing unless they call ``logger.enable("sessionbind")``.
``setup_logging`` re-enables them, removes every sink and only adds one back
when a level or a log file is requested.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{line} - {message}"
)


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None):
    """
    Configure loguru sinks.

    Args:
        level: Level for the stderr sink. ``None`` disables stderr output.
        log_file: Optional file sink, always written at DEBUG level.
    """
    logger.remove()
    logger.configure(extra={"name": "sessionbind"})
    logger.enable("sessionbind")

    if level:
        logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)

    if log_file:
        logger.add(
            str(log_file),
            level="DEBUG",
            format=LOG_FORMAT,
            rotation="1 MB",
            retention=2,
        )


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return logger.bind(name=name)
