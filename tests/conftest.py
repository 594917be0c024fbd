"""
Pytest configuration and shared fixtures for the Discord Jukebox test suite.

This module provides common fixtures and configuration for all tests.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from discord_jukebox.config.settings import JukeboxConfig
from discord_jukebox.core.connection_supervisor import (
    ConnectionSupervisor,
    SupervisorSettings,
)
from discord_jukebox.core.search_sessions import SearchSessionManager
from discord_jukebox.lavalink.models import NodeConfig

from tests.fakes import FakeNodeManager, make_track


@pytest.fixture
def node_config():
    return NodeConfig(host="localhost", port=2333, password="youshallnotpass")


@pytest.fixture
def fast_settings():
    """Supervisor timings shrunk to milliseconds, without jitter."""
    return SupervisorSettings(
        max_reconnect_attempts=3,
        base_delay=0.01,
        max_delay=0.05,
        jitter=0.0,
        health_check_interval=0.02,
        reset_cooldown=0.1,
        periodic_reset_interval=10.0,
        ping_timeout=1800.0,
        connect_timeout=0.05,
        monitor_poll_interval=0.01,
        monitor_fallback_after=0.05,
        stall_warning_after=10.0,
        error_retry_delay=0.01,
    )


@pytest.fixture
def fake_manager():
    return FakeNodeManager()


@pytest.fixture
def supervisor(fake_manager, node_config, fast_settings):
    """A supervisor attached to the fake manager; destroyed after the test."""
    sup = ConnectionSupervisor(fake_manager, node_config, fast_settings)
    sup.attach()
    yield sup
    sup.destroy()


@pytest.fixture
def session_manager():
    manager = SearchSessionManager()
    yield manager
    manager.destroy()


@pytest.fixture
def tracks():
    """Twelve distinct tracks (three pages of five)."""
    return [make_track(i) for i in range(12)]


@pytest.fixture
def mock_config():
    """Create a configuration for testing."""
    return JukeboxConfig(
        token="mock_token",
        lavalink_host="localhost",
        lavalink_port=2333,
        lavalink_password="youshallnotpass",
        empty_channel_destroy_ms=10,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_guild():
    """Create a mock Discord guild for testing."""
    guild = MagicMock(spec=discord.Guild)
    guild.id = 123456789
    guild.name = "Test Guild"
    guild.voice_client = None
    return guild


@pytest.fixture
def mock_member():
    """Create a mock Discord member for testing."""
    member = MagicMock(spec=discord.Member)
    member.id = 111222333
    member.display_name = "Test User"
    member.bot = False
    return member


@pytest.fixture
def mock_interaction(mock_guild, mock_member):
    """Create a mock component interaction for testing."""
    interaction = MagicMock(spec=discord.Interaction)
    interaction.guild = mock_guild
    interaction.user = mock_member
    interaction.channel_id = 555
    interaction.type = discord.InteractionType.component
    interaction.data = {}
    interaction.response = MagicMock()
    interaction.response.is_done.return_value = False
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
