"""
Centralized logging configuration for the reminder bot.
Every long-lived component logs to stdout and, optionally, to a rotating file.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)


def setup_logging(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Setup logging for a module.

    Args:
        name: Logger name (typically __name__)
        log_level: Logging level name; falls back to the LOG_LEVEL env var
        log_file: Optional log file name (relative to log_dir)
        log_dir: Directory for log files
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        format_string: Custom format string (optional)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Already configured by an earlier import
    if logger.handlers:
        return logger

    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter(
        format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir_path = Path(log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_dir_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
