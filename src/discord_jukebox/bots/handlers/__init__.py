"""
Event handlers for the jukebox bot.

- event_handlers: ready, voice state, node and track events, interaction routing
- search_navigation: search result button handling
- player_controls: control panel and queue page button handling
"""

from .event_handlers import EventHandlers
from .player_controls import PlayerControlHandler
from .search_navigation import NavigationRequest, SearchNavigationHandler, parse_custom_id

__all__ = [
    "EventHandlers",
    "NavigationRequest",
    "PlayerControlHandler",
    "SearchNavigationHandler",
    "parse_custom_id",
]
