"""
Common types and constants for the Discord Jukebox system.

This module centralizes identifiers, event names and fixed timings to avoid
hardcoding throughout the codebase.
"""

from typing import Final

# Audio node identity
MAIN_NODE_ID: Final[str] = "main-node"

# Audio node defaults (overridable from .env)
DEFAULT_LAVALINK_HOST: Final[str] = "localhost"
DEFAULT_LAVALINK_PORT: Final[int] = 2333
DEFAULT_LAVALINK_PASSWORD: Final[str] = "youshallnotpass"
DEFAULT_SEARCH_PREFIX: Final[str] = "ytsearch"

# Node lifecycle events
NODE_EVENT_CONNECT: Final[str] = "connect"
NODE_EVENT_ERROR: Final[str] = "error"
NODE_EVENT_DISCONNECT: Final[str] = "disconnect"

# Disconnect reason used when a node is torn down on purpose
DISCONNECT_REASON_DESTROY: Final[str] = "destroy"
# Disconnect reason when the node library reports the node unusable
DISCONNECT_REASON_UNAVAILABLE: Final[str] = "node unavailable (network)"

# Search sessions (fixed, not environment-driven)
TRACKS_PER_PAGE: Final[int] = 5
SESSION_MAX_AGE: Final[float] = 30 * 60.0
SESSION_CLEANUP_INTERVAL: Final[float] = 5 * 60.0

# Playback
HISTORY_LIMIT: Final[int] = 50
QUEUE_PAGE_SIZE: Final[int] = 10

# Component custom id prefixes
SEARCH_CUSTOM_ID_PREFIX: Final[str] = "search_"
PLAYER_CUSTOM_ID_PREFIX: Final[str] = "player_"
QUEUE_CUSTOM_ID_PREFIX: Final[str] = "queue_"
