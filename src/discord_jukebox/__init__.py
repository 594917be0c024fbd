"""
Discord Jukebox - music bot that streams through a Lavalink audio node.

Key Features:
- Slash-command playback backed by a remote Lavalink node (through mafic)
- Paginated, selectable search results driven by buttons
- Self-healing node connection with backoff, health checks and cooldown
- Optional HTTP status API

Architecture:
- Core: connection supervision and search session state
- Lavalink: mafic node adapter, node manager and queue-aware player
- Bots: Discord bot, event handlers and commands
- API: status endpoints
- Config: Configuration management
- Infrastructure: Logging, exceptions
"""

__version__ = "2.0.0"
__author__ = "Discord Jukebox Team"

# Core components
from .core.connection_supervisor import (
    ConnectionState,
    ConnectionSupervisor,
    SupervisorPhase,
    SupervisorSettings,
    TimerPurpose,
)
from .core.search_sessions import SearchSession, SearchSessionManager

# Audio node client
from .lavalink import JukeboxPlayer, LavalinkNodeManager, MaficNode, NodeConfig, Track

# Configuration
from .config import ConfigManager, JukeboxConfig

# Infrastructure
from .infrastructure.logging import setup_logging, get_logger
from .infrastructure.exceptions import (
    JukeboxError,
    ConfigurationError,
    NodeError,
    NodeConnectionError,
    NodeUnavailableError,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core components
    "ConnectionState",
    "ConnectionSupervisor",
    "SupervisorPhase",
    "SupervisorSettings",
    "TimerPurpose",
    "SearchSession",
    "SearchSessionManager",
    # Audio node client
    "MaficNode",
    "LavalinkNodeManager",
    "JukeboxPlayer",
    "NodeConfig",
    "Track",
    # Configuration
    "ConfigManager",
    "JukeboxConfig",
    # Infrastructure
    "setup_logging",
    "get_logger",
    "JukeboxError",
    "ConfigurationError",
    "NodeError",
    "NodeConnectionError",
    "NodeUnavailableError",
]
