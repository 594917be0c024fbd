"""
Logging configuration for the jukebox components.

The bot, the status API and the Lavalink layer each log through a named
logger declared in ``logging.yaml``. The file is applied once per process,
after the component levels have been adjusted to the deployment
environment (``ENVIRONMENT``):

- development: DEBUG
- staging: INFO
- production: WARNING
"""

import logging
import logging.config
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "logging.yaml"
LOG_DIRECTORY = "logs"

# Library loggers pinned at WARNING whatever the environment
LIBRARY_LOGGERS = (
    "discord.client",
    "discord.gateway",
    "discord.http",
    "discord.voice_state",
    "mafic",
    "aiohttp.access",
    "aiohttp.client",
    "uvicorn.access",
)


class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Environment":
        """Map ``ENVIRONMENT`` values (``prod``, ``stage``...) to a member."""
        name = (name or "").strip().lower()
        if name in ("prod", "production"):
            return cls.PRODUCTION
        if name in ("stage", "staging"):
            return cls.STAGING
        return cls.DEVELOPMENT

    @property
    def log_level(self) -> str:
        return {
            Environment.DEVELOPMENT: "DEBUG",
            Environment.STAGING: "INFO",
            Environment.PRODUCTION: "WARNING",
        }[self]


class LoggingManager:
    """Applies the YAML logging setup once and hands out component loggers."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environment: Optional[Environment] = None,
    ):
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.environment = environment or Environment.from_name(os.getenv("ENVIRONMENT"))
        self._configured = False

    def build_config(self) -> Optional[Dict[str, Any]]:
        """
        Read ``logging.yaml`` and level it for the environment.

        Component loggers and the root logger take the environment level,
        and debug-level file handlers are raised to match it outside
        development. Returns None when the file is missing or unreadable.
        """
        if not self.config_path.exists():
            return None
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logging.getLogger(__name__).warning(
                f"Ignoring logging config {self.config_path}: {e}"
            )
            return None
        if not isinstance(config, dict):
            return None

        if self.environment is Environment.DEVELOPMENT:
            return config

        level = self.environment.log_level
        config.setdefault("root", {})["level"] = level
        for name, logger_config in config.get("loggers", {}).items():
            if name not in LIBRARY_LOGGERS:
                logger_config["level"] = level
        for name, handler_config in config.get("handlers", {}).items():
            if name.startswith("file_") and handler_config.get("level") == "DEBUG":
                handler_config["level"] = level
        return config

    def configure(self) -> None:
        if self._configured:
            return

        config = self.build_config()
        if config is not None:
            os.makedirs(LOG_DIRECTORY, exist_ok=True)
            logging.config.dictConfig(config)
        else:
            logging.basicConfig(
                level=self.environment.log_level,
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        for name in LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        self._configured = True

    def setup_logging(self, component_name: str, log_level: Optional[str] = None) -> logging.Logger:
        """Configure logging if needed and return the component's logger."""
        self.configure()
        logger = logging.getLogger(component_name)
        logger.setLevel((log_level or self.environment.log_level).upper())
        return logger


_logging_manager = LoggingManager()


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    return _logging_manager.setup_logging(component_name, log_level)


def get_logger(component_name: str) -> logging.Logger:
    return logging.getLogger(component_name)
