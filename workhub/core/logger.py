"""Logging setup for WorkHub.

One named logger ("workhub") is configured at application start; every
module logs through ``logging.getLogger(__name__)`` and propagates to it.
"""

import logging
import logging.handlers
import os
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logger(
    name: str = "workhub",
    log_dir: str = "./logs",
    level: str = "INFO",
    log_format: Optional[str] = None,
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the application logger.

    Args:
        name: Logger name, normally the top-level package
        log_dir: Directory for the rotating log file
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override for the record format
        file_logging: Write to ``<log_dir>/<name>.log`` with rotation
        console_logging: Write to stderr
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if not hasattr(logging, level_upper):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    # Already configured (e.g. app module imported twice under reload)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the application logger."""
    if name != "workhub" and not name.startswith("workhub."):
        name = f"workhub.{name}"
    return logging.getLogger(name)
