"""
Labor TS Logging Configuration

Centralized logging setup for all labor_ts modules.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for labor_ts.

    Args:
        level: Logging level, number or name such as "DEBUG" (default: INFO)
        log_file: Optional file path for log output
        format_string: Optional custom format string

    Returns:
        The configured "labor_ts" logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {level}")
    if format_string is None:
        format_string = DEFAULT_FORMAT

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    logger = logging.getLogger("labor_ts")
    logger.setLevel(level)

    # Remove existing handlers so repeated setup does not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(level)} level")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a labor_ts module.

    Args:
        name: Module name (will be prefixed with 'labor_ts.')

    Returns:
        Logger instance
    """
    if not name.startswith("labor_ts"):
        name = f"labor_ts.{name}"
    return logging.getLogger(name)
