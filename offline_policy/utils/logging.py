"""Logger setup shared by every module of the offline policy service.

Structured context is passed with ``extra={...}``; the level defaults to
the ``LOG_LEVEL`` environment variable so that modules imported before
settings are loaded (settings itself included) log at the configured level.
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger writing to stdout.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Level override; falls back to LOG_LEVEL, then INFO

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = getattr(logging, (level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    return logger
