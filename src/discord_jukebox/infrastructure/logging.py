"""
Logging entry points used by every jukebox component.
"""

import logging
from typing import Optional

from .logging_manager import setup_logging as _setup_logging, get_logger as _get_logger


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for a component using the YAML configuration.

    Args:
        component_name: Logger name declared in logging.yaml
            (``jukebox_bot``, ``lavalink``, ``api``...)
        log_level: Override for the environment level
            (development=DEBUG, staging=INFO, production=WARNING)

    Returns:
        logging.Logger: Configured logger instance
    """
    return _setup_logging(component_name, log_level)


def get_logger(component_name: str) -> logging.Logger:
    """Logger for a component, without touching the configuration."""
    return _get_logger(component_name)
