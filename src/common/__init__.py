"""Common utilities for s3repo-rebuild."""

from .logger import setup_logger, get_logger
from .config import load_config, load_typed_config

__all__ = ["get_logger", "load_config", "load_typed_config", "setup_logger"]
