"""
Configuration management for the Discord Jukebox bot.

This module loads the bot token, audio node coordinates and connection
supervision tuning from the environment, validating numeric values and
falling back to defaults when they are missing or malformed.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from discord_jukebox.core.types import (
    DEFAULT_LAVALINK_HOST,
    DEFAULT_LAVALINK_PASSWORD,
    DEFAULT_LAVALINK_PORT,
    MAIN_NODE_ID,
)
from discord_jukebox.infrastructure.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class JukeboxConfig:
    """Configuration for the jukebox bot and its audio node connection."""

    # Required configuration
    token: str

    # Audio node
    lavalink_host: str = DEFAULT_LAVALINK_HOST
    lavalink_port: int = DEFAULT_LAVALINK_PORT
    lavalink_password: str = DEFAULT_LAVALINK_PASSWORD
    lavalink_secure: bool = False
    node_identifier: str = MAIN_NODE_ID

    # Connection supervision
    max_reconnect_attempts: int = 10
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    health_check_interval_ms: int = 30000
    reset_attempts_after_minutes: int = 5

    # Playback
    default_volume: int = 80
    empty_channel_destroy_ms: int = 60000

    # Access control: role ids allowed to use the bot (empty = everyone)
    allowed_roles: Tuple[str, ...] = ()

    # Misc
    log_level: str = "INFO"
    api_enabled: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 8000


def parse_role_ids(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated role id list, dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def clamp_volume(value: Optional[str], default: int = 80) -> int:
    """Parse a volume string, clamping it into 0-100."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return max(0, min(100, parsed))


class ConfigManager:
    """Environment-backed configuration manager."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self):
        """Load environment variables from file."""
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.warning(f"Environment file {self.env_file_path} not found")

    def _get_required_env(self, key: str) -> str:
        """
        Get required environment variable.

        Raises:
            ConfigurationError: If environment variable is not set
        """
        value = os.getenv(key)
        if not value:
            raise ConfigurationError(f"Required environment variable {key} is not set")
        return value

    def _get_optional_env(self, key: str, default: str = None) -> str:
        """Get optional environment variable."""
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int, minimum: int = 0) -> int:
        """
        Get an integer environment variable.

        Missing, malformed or below-minimum values fall back to the default.
        """
        raw = os.getenv(key)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = int(raw.strip())
        except ValueError:
            logger.warning(f"{key}={raw!r} is not an integer, using {default}")
            return default
        if value < minimum:
            logger.warning(f"{key}={value} is below {minimum}, using {default}")
            return default
        return value

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get a boolean environment variable."""
        raw = os.getenv(key)
        if raw is None:
            return default
        return raw.strip().lower() in ("1", "true", "yes", "on")

    def get_config(self) -> JukeboxConfig:
        """
        Get the bot configuration.

        Returns:
            JukeboxConfig: Bot configuration

        Raises:
            ConfigurationError: If required configuration is missing
        """
        try:
            config = JukeboxConfig(
                token=self._get_required_env("TOKEN"),
                lavalink_host=self._get_optional_env(
                    "LAVALINK_HOST", DEFAULT_LAVALINK_HOST
                ),
                lavalink_port=self._get_int_env(
                    "LAVALINK_PORT", DEFAULT_LAVALINK_PORT, minimum=1
                ),
                lavalink_password=self._get_optional_env(
                    "LAVALINK_PASSWORD", DEFAULT_LAVALINK_PASSWORD
                ),
                lavalink_secure=self._get_bool_env("LAVALINK_SECURE", False),
                max_reconnect_attempts=self._get_int_env(
                    "LAVALINK_MAX_RECONNECT_ATTEMPTS", 10, minimum=1
                ),
                base_delay_ms=self._get_int_env("LAVALINK_BASE_DELAY_MS", 1000),
                max_delay_ms=self._get_int_env("LAVALINK_MAX_DELAY_MS", 30000),
                health_check_interval_ms=self._get_int_env(
                    "LAVALINK_HEALTH_CHECK_INTERVAL_MS", 30000, minimum=1000
                ),
                reset_attempts_after_minutes=self._get_int_env(
                    "LAVALINK_RESET_ATTEMPTS_AFTER_MINUTES", 5, minimum=1
                ),
                default_volume=clamp_volume(os.getenv("DEFAULT_VOLUME"), 80),
                empty_channel_destroy_ms=self._get_int_env(
                    "EMPTY_CHANNEL_DESTROY_MS", 60000
                ),
                allowed_roles=parse_role_ids(os.getenv("ALLOWED_ROLES")),
                log_level=self._get_optional_env("LOG_LEVEL", "INFO"),
                api_enabled=self._get_bool_env("API_ENABLED", False),
                api_host=self._get_optional_env("API_HOST", "0.0.0.0"),
                api_port=self._get_int_env("API_PORT", 8000, minimum=1),
            )

            if config.max_delay_ms < config.base_delay_ms:
                logger.warning(
                    "LAVALINK_MAX_DELAY_MS is lower than LAVALINK_BASE_DELAY_MS, "
                    "raising it to the base delay"
                )
                config.max_delay_ms = config.base_delay_ms

            logger.info("Configuration loaded successfully")
            return config

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}", exc_info=True)
            raise
