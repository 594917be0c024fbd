"""
Registry of audio nodes and relay for their events.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

import discord
import mafic

from discord_jukebox.core.types import DEFAULT_SEARCH_PREFIX, DISCONNECT_REASON_UNAVAILABLE
from discord_jukebox.infrastructure.exceptions import NodeUnavailableError

from .interfaces import NodeManager
from .models import LoadResult, NodeConfig
from .node import MaficNode


class LavalinkNodeManager(NodeManager):
    """
    Creates nodes on a ``mafic.NodePool``, keeps them by identity and
    re-emits their events.

    Listeners registered here receive ``(node, *args)`` for every node event,
    which is how the connection supervisor observes the node it owns.
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__()
        self.logger = logger
        self.nodes: Dict[str, MaficNode] = {}
        self.pool: Optional[mafic.NodePool] = None
        self._connect_tasks: Set[asyncio.Task] = set()

    @property
    def is_ready(self) -> bool:
        return self.pool is not None

    def init(self, client: discord.Client, pool: Optional[mafic.NodePool] = None) -> None:
        """Bind the manager to the logged-in bot client."""
        self.pool = pool if pool is not None else mafic.NodePool(client)

    def get_node(self, identifier: str) -> Optional[MaficNode]:
        return self.nodes.get(identifier)

    def create_node(self, config: NodeConfig) -> MaficNode:
        """Create a node and start connecting it in the background."""
        if not self.is_ready:
            raise NodeUnavailableError("Node manager is not initialized")

        previous = self.nodes.get(config.identifier)
        if previous is not None and previous.connected:
            self.logger.warning(
                f"Replacing connected node {config.identifier}; destroy it first"
            )

        node = MaficNode(config, self.pool, self.logger, relay=self)
        self.nodes[config.identifier] = node

        task = node.start()
        self._connect_tasks.add(task)
        task.add_done_callback(self._connect_tasks.discard)
        return node

    def _find(self, mafic_node: Any) -> Optional[MaficNode]:
        for node in self.nodes.values():
            if node.wraps(mafic_node):
                return node
        return None

    def handle_node_ready(self, mafic_node: Any) -> None:
        """Relay mafic's ``node_ready`` dispatch to the owning adapter."""
        node = self._find(mafic_node)
        if node is not None:
            node.mark_ready()

    def handle_node_unavailable(self, mafic_node: Any) -> None:
        """Relay mafic's ``node_unavailable`` dispatch to the owning adapter."""
        node = self._find(mafic_node)
        if node is not None:
            node.mark_unavailable(DISCONNECT_REASON_UNAVAILABLE)

    def get_available_node(self) -> MaficNode:
        for node in self.nodes.values():
            if node.connected:
                return node
        raise NodeUnavailableError("No available Node")

    async def search(self, query: str, prefix: str = DEFAULT_SEARCH_PREFIX) -> LoadResult:
        """Search by free text, or load directly when given a URL."""
        return await self.get_available_node().fetch_tracks(query, prefix)

    async def close(self) -> None:
        """Destroy every node; used at shutdown."""
        for task in list(self._connect_tasks):
            task.cancel()
        for node in list(self.nodes.values()):
            try:
                await node.destroy()
            except Exception as e:
                self.logger.error(f"Error destroying node {node.identifier}: {e}")
        self.nodes.clear()
