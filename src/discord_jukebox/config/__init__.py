"""
Configuration management for the Discord Jukebox system.

This package provides configuration management including:
- Configuration classes and data structures
- Environment variable handling with numeric fallbacks
"""

from .settings import ConfigManager, JukeboxConfig, clamp_volume

__all__ = [
    "ConfigManager",
    "JukeboxConfig",
    "clamp_volume",
]
