"""
Centralized Logging Configuration
==================================
Provides consistent logging across the analytics core.

Design Decisions:
- Uses Python's built-in logging
- Logs to console and, optionally, to a file
- Includes timestamps and module names for traceability

Usage:
    from agri_analytics.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Forecast started")
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

from .constants import LOGGING_CONFIG


def get_logger(
    name: str,
    log_file: Optional[Union[str, Path]] = None,
    level: Optional[int] = None
) -> logging.Logger:
    """
    Create and configure a logger instance.

    Parameters
    ----------
    name : str
        Logger name (typically __name__ of the calling module)
    log_file : str or Path, optional
        Path to log file. If None, logs only to console.
    level : int, optional
        Logging level (default from LOGGING_CONFIG)

    Returns
    -------
    logging.Logger
        Configured logger instance

    Example
    -------
    >>> logger = get_logger(__name__)
    >>> logger.info("Prediction cached")
    2026-10-19 10:30:00 | INFO     | agri_analytics.services.demand_forecaster | Prediction cached
    """
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        if log_file:
            add_file_handler(logger, log_file)
        return logger

    if level is None:
        level = logging.getLevelName(LOGGING_CONFIG["level"])
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt=LOGGING_CONFIG["format"],
        datefmt=LOGGING_CONFIG["date_format"]
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        add_file_handler(logger, log_file)

    # Library loggers stay out of the host application's root logger
    logger.propagate = False

    return logger


def add_file_handler(logger: logging.Logger, log_file: Union[str, Path]) -> None:
    """Attach a file handler to ``logger`` unless one already writes to ``log_file``."""
    log_path = Path(log_file).resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return

    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logger.level)
    file_handler.setFormatter(logging.Formatter(
        fmt=LOGGING_CONFIG["format"],
        datefmt=LOGGING_CONFIG["date_format"]
    ))
    logger.addHandler(file_handler)


class LogContext:
    """
    Context manager for structured logging of operations.

    Usage:
        with LogContext(logger, "Optimizing stock levels"):
            # ... operation code ...
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.log(self.level, f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = (datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.log(self.level, f"Completed: {self.operation} ({elapsed:.2f}s)")
        else:
            self.logger.error(f"Failed: {self.operation} ({elapsed:.2f}s) - {exc_val}")

        # Don't suppress exceptions
        return False
