"""
Audio node adapter over mafic.

mafic owns the Lavalink websocket and REST protocol. ``MaficNode`` wraps one
``mafic.Node`` behind the ``AudioNode`` contract so the connection
supervisor sees a single connect / error / disconnect stream and stays the
only component that decides when a node is replaced.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
import mafic

from discord_jukebox.core.types import (
    DEFAULT_SEARCH_PREFIX,
    DISCONNECT_REASON_DESTROY,
    NODE_EVENT_CONNECT,
    NODE_EVENT_DISCONNECT,
    NODE_EVENT_ERROR,
)
from discord_jukebox.infrastructure.exceptions import (
    NodeConnectionError,
    NodeError,
    NodeUnavailableError,
    TrackLoadError,
)

from .interfaces import AudioNode, EventEmitter
from .models import LoadResult, NodeConfig


class MaficNode(AudioNode):
    """One node of a ``mafic.NodePool``, keyed by its label."""

    def __init__(
        self,
        config: NodeConfig,
        pool: mafic.NodePool,
        logger: logging.Logger,
        relay: Optional[EventEmitter] = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Node coordinates; ``identifier`` becomes the mafic label
            pool: The pool that creates and owns the underlying node
            logger: Logger instance
            relay: Emitter (usually the node manager) that also receives every event
        """
        super().__init__()
        if not config.host:
            raise ValueError("host cannot be empty")

        self.config: NodeConfig = config
        self.identifier: str = config.identifier
        self.pool = pool
        self.logger: logging.Logger = logger
        self.relay: Optional[EventEmitter] = relay

        self.node: Optional[mafic.Node] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._announced: bool = False
        self._destroyed: bool = False

    def __repr__(self) -> str:
        return f"<MaficNode {self.identifier} connected={self.connected}>"

    @property
    def connected(self) -> bool:
        return not self._destroyed and self.node is not None and self.node.available

    def _emit(self, event: str, *args: Any) -> None:
        self.emit(event, self, *args)
        if self.relay is not None:
            self.relay.emit(event, self, *args)

    def start(self) -> asyncio.Task:
        """Connect in the background; ``destroy()`` cancels a pending attempt."""
        self._connect_task = asyncio.create_task(
            self.connect(), name=f"node-connect-{self.identifier}"
        )
        return self._connect_task

    async def connect(self) -> None:
        """
        Create the mafic node and wait for its session.

        Emits ``error`` on failure; ``connect`` once the node is available,
        either right away or on the library's ``node_ready`` dispatch.
        """
        if self._destroyed:
            raise NodeError(f"[{self.identifier}] node was destroyed")

        address = self.config.address
        self.logger.info(f"[{self.identifier}] Connecting to {address}")
        try:
            self.node = await self.pool.create_node(
                host=self.config.host,
                port=self.config.port,
                label=self.identifier,
                password=self.config.password,
                secure=self.config.secure,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"[{self.identifier}] Unable to connect to {address}: {e}")
            error = NodeConnectionError(f"Unable to connect to {address}: {e}")
            error.__cause__ = e
            self._emit(NODE_EVENT_ERROR, error)
            return

        if self.node.available:
            self.mark_ready()

    def mark_ready(self) -> None:
        """The wrapped node finished its handshake."""
        if self._destroyed or self._announced:
            return
        self._announced = True
        self.logger.info(f"[{self.identifier}] Node ready")
        self._emit(NODE_EVENT_CONNECT)

    def mark_unavailable(self, reason: str) -> None:
        """The wrapped node lost its session."""
        if self._destroyed or not self._announced:
            return
        self._announced = False
        self.logger.error(f"[{self.identifier}] Connection lost: {reason}")
        self._emit(NODE_EVENT_DISCONNECT, reason)

    def wraps(self, node: Any) -> bool:
        """Whether a mafic node dispatched by the client belongs to this adapter."""
        return node is self.node or getattr(node, "label", None) == self.identifier

    async def destroy(self) -> None:
        """Close the node for good; emits disconnect('destroy') if it was up."""
        was_connected = self.connected
        self._destroyed = True

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        self._connect_task = None

        if self.node is not None:
            try:
                await self.node.close()
            except Exception as e:
                self.logger.error(
                    f"[{self.identifier}] Error closing node: {e}", exc_info=True
                )
            finally:
                self.node = None

        self.logger.info(f"[{self.identifier}] Destroyed")
        if was_connected:
            self._emit(NODE_EVENT_DISCONNECT, DISCONNECT_REASON_DESTROY)

    async def fetch_tracks(
        self, query: str, prefix: str = DEFAULT_SEARCH_PREFIX
    ) -> LoadResult:
        """Resolve a URL, or search with the given prefix ("ytsearch", ...)."""
        if not self.connected:
            raise NodeUnavailableError(f"[{self.identifier}] node is not connected")
        try:
            result = await self.node.fetch_tracks(
                query, search_type=mafic.SearchType(prefix)
            )
        except mafic.TrackLoadException as e:
            raise TrackLoadError(str(e)) from e
        except aiohttp.ClientConnectionError as e:
            raise NodeConnectionError(
                f"[{self.identifier}] Unable to connect for track lookup: {e}"
            ) from e
        return LoadResult.from_mafic(result)
