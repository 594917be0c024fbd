"""
Audio node client for the Discord Jukebox system.

The Lavalink protocol itself is handled by mafic; this package adapts it:
- models: node coordinates, tracks and load results
- interfaces: the node / node manager contract the supervisor depends on
- node: adapter around one mafic node
- node_manager: node pool ownership and event relay
- player: mafic player with the guild queue, history and loop mode
"""

from .interfaces import AudioNode, EventEmitter, NodeManager
from .models import LoadResult, NodeConfig, Track
from .node import MaficNode
from .node_manager import LavalinkNodeManager
from .player import JukeboxPlayer, LoopMode, QueuePage, TrackQueue, get_guild_player

__all__ = [
    "AudioNode",
    "EventEmitter",
    "NodeManager",
    "LoadResult",
    "NodeConfig",
    "Track",
    "MaficNode",
    "LavalinkNodeManager",
    "JukeboxPlayer",
    "LoopMode",
    "QueuePage",
    "TrackQueue",
    "get_guild_player",
]
