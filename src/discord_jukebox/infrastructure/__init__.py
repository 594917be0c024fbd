"""
Infrastructure components for the Discord Jukebox system.

This package contains infrastructure concerns including:
- Logging configuration and utilities with production controls
- Custom exception definitions
"""

from .logging import setup_logging, get_logger
from .logging_manager import LoggingManager, Environment
from .exceptions import (
    JukeboxError,
    ConfigurationError,
    NodeError,
    NodeConnectionError,
    NodeUnavailableError,
    TrackLoadError,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "LoggingManager",
    "Environment",
    # Exceptions
    "JukeboxError",
    "ConfigurationError",
    "NodeError",
    "NodeConnectionError",
    "NodeUnavailableError",
    "TrackLoadError",
]
