from __future__ import annotations
"""
Examwatch Logger

Centralized logging configuration.
"""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(
    name: str,
    level: int = logging.INFO,
    format_str: Optional[str] = None,
) -> logging.Logger:
    """
    Get a configured logger.

    Args:
        name: Logger name (usually __name__)
        level: Logging level
        format_str: Custom format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(format_str or DEFAULT_FORMAT))

        logger.addHandler(handler)
        logger.setLevel(level)

    return logger


def setup_logging(level: str = "INFO") -> None:
    """
    Apply a log level to every examwatch logger and quiet noisy libraries.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.getLogger().setLevel(log_level)
    for name in list(logging.root.manager.loggerDict):
        if name == "examwatch" or name.startswith("examwatch."):
            logging.getLogger(name).setLevel(log_level)

    logging.getLogger("ultralytics").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
