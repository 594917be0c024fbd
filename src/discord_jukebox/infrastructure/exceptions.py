"""
Custom exceptions for the Discord Jukebox system.

This module defines all custom exceptions used throughout the system,
providing clear error categorization and handling.
"""


class JukeboxError(Exception):
    """Base exception for all Jukebox related errors."""

    pass


class ConfigurationError(JukeboxError):
    """Raised when there are configuration-related errors."""

    pass


class NodeError(JukeboxError):
    """Raised when there are audio node communication errors."""

    pass


class NodeConnectionError(NodeError):
    """Raised when the audio node cannot be reached."""

    pass


class NodeUnavailableError(NodeError):
    """Raised when an operation needs a connected node and there is none."""

    pass


class TrackLoadError(NodeError):
    """Raised when the audio node fails to resolve a query into tracks."""

    pass
