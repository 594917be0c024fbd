"""
Unit tests for environment-aware logging setup.
"""

import logging

import pytest
import yaml

from discord_jukebox.infrastructure.logging_manager import (
    DEFAULT_CONFIG_PATH,
    Environment,
    LoggingManager,
)

CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.NullHandler", "level": "DEBUG"},
        "file_jukebox": {"class": "logging.NullHandler", "level": "DEBUG"},
        "file_errors": {"class": "logging.NullHandler", "level": "ERROR"},
    },
    "loggers": {
        "jukebox_bot": {"level": "DEBUG", "handlers": ["console"], "propagate": False},
        "mafic": {"level": "WARNING"},
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "logging.yaml"
    path.write_text(yaml.safe_dump(CONFIG), encoding="utf-8")
    return path


class TestEnvironment:
    """ENVIRONMENT values and their levels."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("prod", Environment.PRODUCTION),
            ("Production", Environment.PRODUCTION),
            ("stage", Environment.STAGING),
            ("staging", Environment.STAGING),
            ("development", Environment.DEVELOPMENT),
            ("", Environment.DEVELOPMENT),
            (None, Environment.DEVELOPMENT),
            ("qa", Environment.DEVELOPMENT),
        ],
    )
    def test_from_name(self, raw, expected):
        assert Environment.from_name(raw) is expected

    @pytest.mark.unit
    def test_levels(self):
        assert Environment.DEVELOPMENT.log_level == "DEBUG"
        assert Environment.STAGING.log_level == "INFO"
        assert Environment.PRODUCTION.log_level == "WARNING"

    @pytest.mark.unit
    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "prod")

        assert LoggingManager().environment is Environment.PRODUCTION


class TestBuildConfig:
    """Levelling the YAML configuration."""

    @pytest.mark.unit
    def test_development_keeps_file_levels(self, config_path):
        manager = LoggingManager(config_path, Environment.DEVELOPMENT)

        assert manager.build_config() == CONFIG

    @pytest.mark.unit
    def test_production_raises_component_levels(self, config_path):
        config = LoggingManager(config_path, Environment.PRODUCTION).build_config()

        assert config["root"]["level"] == "WARNING"
        assert config["loggers"]["jukebox_bot"]["level"] == "WARNING"
        assert config["handlers"]["file_jukebox"]["level"] == "WARNING"
        assert config["handlers"]["file_errors"]["level"] == "ERROR"
        assert config["handlers"]["console"]["level"] == "DEBUG"

    @pytest.mark.unit
    def test_staging_leaves_library_loggers_alone(self, config_path):
        config = LoggingManager(config_path, Environment.STAGING).build_config()

        assert config["loggers"]["jukebox_bot"]["level"] == "INFO"
        assert config["loggers"]["mafic"]["level"] == "WARNING"

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        assert LoggingManager(tmp_path / "absent.yaml").build_config() is None

    @pytest.mark.unit
    def test_malformed_file(self, tmp_path):
        path = tmp_path / "logging.yaml"
        path.write_text("loggers: [unclosed", encoding="utf-8")

        assert LoggingManager(path).build_config() is None

    @pytest.mark.unit
    def test_shipped_config_declares_components(self):
        config = LoggingManager(DEFAULT_CONFIG_PATH, Environment.DEVELOPMENT).build_config()

        for name in ("jukebox_bot", "connection_supervisor", "search_sessions", "lavalink", "api"):
            assert config["loggers"][name]["propagate"] is False


class TestSetupLogging:
    """Component loggers."""

    @pytest.mark.unit
    def test_component_logger_levels(self, config_path, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        manager = LoggingManager(config_path, Environment.STAGING)

        logger = manager.setup_logging("jukebox_test_component")
        override = manager.setup_logging("jukebox_test_override", log_level="error")

        assert logger.level == logging.INFO
        assert override.level == logging.ERROR
        assert logging.getLogger("mafic").level == logging.WARNING
        assert (tmp_path / "logs").is_dir()
