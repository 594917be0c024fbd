"""
Utilities for the Discord bot: embeds, permissions, search result components
and the player control panel.
"""

from .embed_builder import EmbedBuilder, format_duration
from .permission_utils import PermissionUtils
from .player_panel import PlayerPanelManager, build_player_view, build_queue_view
from .search_view import build_custom_id, build_search_view

__all__ = [
    "EmbedBuilder",
    "format_duration",
    "PermissionUtils",
    "PlayerPanelManager",
    "build_player_view",
    "build_queue_view",
    "build_custom_id",
    "build_search_view",
]
