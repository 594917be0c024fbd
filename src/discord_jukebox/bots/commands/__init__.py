"""
Command handlers for the jukebox bot.

- base: Base class for command handlers (role and availability gates, player lookup)
- playback_commands: /play, /search, /skip, /stop, /pause, /volume, /nowplaying and /status
- queue_commands: /queue, /clear, /shuffle, /loop and /back
"""

from .base import BaseCommandHandler
from .playback_commands import PlaybackCommands
from .queue_commands import QueueCommands

__all__ = ["BaseCommandHandler", "PlaybackCommands", "QueueCommands"]
