"""Structured JSON logging configuration."""

import logging
import sys
from typing import TextIO

from pythonjsonlogger.json import JsonFormatter


def setup_logger(
    name: str = "pgstat_collector",
    level: str = "INFO",
    stream: TextIO = None
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Logs go to stderr by default so stdout stays free for record output.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Destination stream (default: sys.stderr)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stderr)
    formatter = JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        timestamp=True
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger
