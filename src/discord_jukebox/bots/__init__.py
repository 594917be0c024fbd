"""
Discord bot for the jukebox.

This package contains the bot glue over the core components:
- core: bot wiring and entry point
- handlers: Discord and audio node event handlers, search button handling
- commands: slash command handlers
- utils: embeds and search result components
"""

from .core import JukeboxBot

__all__ = ["JukeboxBot"]
