"""Logging setup for s3repo-rebuild.

Component loggers hang off the ``s3repo`` logger, so handlers attached to
it once by the CLI receive the output of the store, the index builder and
the rebuild workflow alike.
"""

import logging
import logging.handlers
import os
from typing import Optional

ROOT_LOGGER_NAME = "s3repo"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_dir: str = "/var/log/s3repo",
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = True,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Attach rebuild log handlers to a logger.

    Calling it again for a logger that already has handlers only changes
    the level.

    Args:
        name: Logger to configure, ``s3repo`` for the whole tool
        log_dir: Directory receiving ``<name>.log``
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: Record format, ``time [LEVEL] [logger] message`` if omitted
        date_format: Timestamp format, ISO 8601 to the second if omitted
        file_logging: Write to a size-rotated file in log_dir
        console_logging: Write to stderr
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files kept

    Returns:
        The configured logger

    Raises:
        ValueError: If level is not a logging level name
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if not hasattr(logging, level_upper):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    if logger.handlers:
        return logger

    if log_format is None:
        log_format = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
    if date_format is None:
        date_format = "%Y-%m-%dT%H:%M:%S"

    formatter = logging.Formatter(log_format, datefmt=date_format)

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
    """Logger for a rebuild component, e.g. ``get_logger("s3_store")``."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
