#!/usr/bin/env python3
"""
Logging configuration for the LFortran compiler accessor.
"""

import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Set up logging configuration using loguru.

    Logs go to stderr; stdout is reserved for results.

    Args:
        log_level: The logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file receiving the same records
    """
    logger.remove()

    logger.add(sys.stderr, format=LOG_FORMAT, level=log_level.upper(), colorize=True)

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="1 week",
            level=log_level.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )

    logger.debug(f"Logging initialized at level {log_level.upper()}")
