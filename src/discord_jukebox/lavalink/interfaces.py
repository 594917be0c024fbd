"""
Contracts the connection supervisor and bot handlers rely on.

The supervisor never touches a concrete node client; it works against
these abstract types so the event wiring and node lifecycle are explicit
and testable with fakes.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set

from .models import NodeConfig

# Listener signature: callback(*args). Coroutine functions are scheduled as tasks.
Listener = Callable[..., Any]


class EventEmitter:
    """Minimal listener registry shared by nodes and node managers."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def add_listener(self, event: str, callback: Listener) -> None:
        """Register a callback for an event."""
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """
        Invoke every listener for an event.

        A listener raising never prevents the remaining listeners from running.
        """
        for callback in list(self._listeners.get(event, [])):
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._pending.discard)
            except Exception as e:
                logging.getLogger("lavalink").error(
                    f"Listener for '{event}' failed: {e}", exc_info=True
                )


class AudioNode(EventEmitter, ABC):
    """A single connection to an external audio-processing node."""

    identifier: str

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the node session is currently usable."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the node session, emitting ``connect`` or ``error``."""

    @abstractmethod
    async def destroy(self) -> None:
        """Close the node session for good."""


class NodeManager(EventEmitter, ABC):
    """Owns the audio nodes and relays their events."""

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the manager can create nodes (bot user known, etc.)."""

    @abstractmethod
    def get_node(self, identifier: str) -> Optional[AudioNode]:
        """Look up a node by identity."""

    @abstractmethod
    def create_node(self, config: NodeConfig) -> AudioNode:
        """Create and start connecting a node, replacing any same-identity node."""
