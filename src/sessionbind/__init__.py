"""
sessionbind: tie a process's lifetime to a login session.
"""

from loguru import logger

__version__ = "0.1.0"

# Silent when used as a library; setup_logging() turns records back on.
logger.disable("sessionbind")
