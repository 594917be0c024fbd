"""
Supervision of the single audio node connection.

The supervisor keeps the bot attached to its audio node without any user
involvement. Three independent watchdogs cover for each other because the
node client's event delivery cannot be trusted to be complete:

- event reactions (connect / error / disconnect relayed by the node manager)
- a health check on a fixed interval
- an hourly periodic reset for connections that went quiet

Reconnection is single-flight (``ConnectionState.is_reconnecting``), backs off
exponentially with jitter, and after ``max_reconnect_attempts`` failures
pauses for a cooldown before starting over.

All timers are asyncio tasks registered per ``TimerPurpose``; starting a timer
always cancels the previous one for the same purpose.
"""

import asyncio
import errno
import random
import socket
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, Optional, Set

from discord_jukebox.core.types import (
    DISCONNECT_REASON_DESTROY,
    NODE_EVENT_CONNECT,
    NODE_EVENT_DISCONNECT,
    NODE_EVENT_ERROR,
)
from discord_jukebox.infrastructure import setup_logging
from discord_jukebox.infrastructure.exceptions import NodeConnectionError
from discord_jukebox.lavalink.interfaces import AudioNode, NodeManager
from discord_jukebox.lavalink.models import NodeConfig

logger = setup_logging(component_name="connection_supervisor")


class SupervisorPhase(str, Enum):
    """Where the supervisor is in the node connection lifecycle."""

    UNINITIALIZED = "uninitialized"
    MONITORING = "monitoring"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    COOLDOWN = "cooldown"


class TimerPurpose(str, Enum):
    """Each purpose has at most one live timer."""

    RECONNECT = "reconnect"
    HEALTH_CHECK = "health_check"
    PERIODIC_RESET = "periodic_reset"
    MONITORING = "monitoring"
    STALL_WARNING = "stall_warning"


@dataclass
class SupervisorSettings:
    """Timing knobs for the connection supervisor, in seconds."""

    max_reconnect_attempts: int = 10
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 1.0
    health_check_interval: float = 30.0
    reset_cooldown: float = 5 * 60.0
    periodic_reset_interval: float = 60 * 60.0
    ping_timeout: float = 30 * 60.0
    connect_timeout: float = 15.0
    monitor_poll_interval: float = 5.0
    monitor_fallback_after: float = 120.0
    stall_warning_after: float = 300.0
    error_retry_delay: float = 5.0

    @classmethod
    def from_config(cls, config: Any) -> "SupervisorSettings":
        """Derive supervisor timings from a JukeboxConfig."""
        return cls(
            max_reconnect_attempts=config.max_reconnect_attempts,
            base_delay=config.base_delay_ms / 1000,
            max_delay=config.max_delay_ms / 1000,
            health_check_interval=config.health_check_interval_ms / 1000,
            reset_cooldown=config.reset_attempts_after_minutes * 60.0,
        )


@dataclass
class ConnectionState:
    """Process-wide connection bookkeeping, owned by the supervisor."""

    max_reconnect_attempts: int
    base_delay: float
    max_delay: float
    reconnect_attempts: int = 0
    is_reconnecting: bool = False
    is_initialized: bool = False
    has_had_successful_connection: bool = False
    last_ping: float = field(default_factory=time.time)
    phase: SupervisorPhase = SupervisorPhase.UNINITIALIZED


class ConnectionSupervisor:
    """Keeps the audio node connected and reports whether it is usable."""

    # Delay before retrying after a disconnect, keyed by what the reason says
    NETWORK_DISCONNECT_DELAY = 5.0
    TIMEOUT_DISCONNECT_DELAY = 3.0
    DEFAULT_DISCONNECT_DELAY = 2.0

    def __init__(
        self,
        node_manager: NodeManager,
        node_config: NodeConfig,
        settings: Optional[SupervisorSettings] = None,
    ):
        self.node_manager = node_manager
        self.node_config = node_config
        self.settings = settings or SupervisorSettings()
        self.state = ConnectionState(
            max_reconnect_attempts=self.settings.max_reconnect_attempts,
            base_delay=self.settings.base_delay,
            max_delay=self.settings.max_delay,
        )

        self._timers: Dict[TimerPurpose, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()
        self._attempt_running = False
        self._last_health_ok = True
        self._destroyed = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def node(self) -> Optional[AudioNode]:
        return self.node_manager.get_node(self.node_config.identifier)

    def is_available(self) -> bool:
        """True iff the node is connected right now."""
        node = self.node
        return bool(node and node.connected)

    def is_manager_ready(self) -> bool:
        return self.node_manager is not None and self.node_manager.is_ready

    def has_timer(self, purpose: TimerPurpose) -> bool:
        task = self._timers.get(purpose)
        return task is not None and not task.done()

    def get_reconnect_delay(self, attempt: int) -> float:
        """Exponential backoff capped at max_delay, plus random jitter."""
        delay = min(self.state.base_delay * (2**attempt), self.state.max_delay)
        return delay + random.uniform(0, self.settings.jitter)

    def get_disconnect_delay(self, reason: str) -> float:
        lowered = (reason or "").lower()
        if "no ping" in lowered or "network" in lowered:
            return self.NETWORK_DISCONNECT_DELAY
        if "timeout" in lowered:
            return self.TIMEOUT_DISCONNECT_DELAY
        return self.DEFAULT_DISCONNECT_DELAY

    def get_status(self) -> Dict[str, Any]:
        """Read-only snapshot for diagnostics."""
        return {
            "is_connected": self.is_available(),
            "phase": self.state.phase.value,
            "node_identifier": self.node_config.identifier,
            "reconnect_attempts": self.state.reconnect_attempts,
            "max_reconnect_attempts": self.state.max_reconnect_attempts,
            "is_reconnecting": self.state.is_reconnecting,
            "is_initialized": self.state.is_initialized,
            "has_had_successful_connection": self.state.has_had_successful_connection,
            "last_ping": self.state.last_ping,
            "active_timers": sorted(
                purpose.value for purpose in self._timers if self.has_timer(purpose)
            ),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Leave UNINITIALIZED and start watching for the node."""
        if self.state.is_initialized or self._destroyed:
            return

        logger.info("Connection supervisor initializing...")
        self.state.is_initialized = True
        self._set_phase(SupervisorPhase.MONITORING)

        if self.is_manager_ready() and self.node is None:
            try:
                self.node_manager.create_node(self.node_config)
            except Exception as e:
                logger.error(f"Failed to create initial node: {e}", exc_info=True)

        self._start_monitoring()

    def destroy(self) -> None:
        """Cancel every outstanding timer. Safe to call more than once."""
        self._destroyed = True
        self.state.is_initialized = False
        for purpose in list(self._timers):
            self._cancel_timer(purpose)
        for task in list(self._background):
            task.cancel()
        self._background.clear()

    # ------------------------------------------------------------------
    # Timer plumbing
    # ------------------------------------------------------------------

    def _set_phase(self, phase: SupervisorPhase) -> None:
        if self.state.phase is not phase:
            logger.debug(f"Supervisor phase {self.state.phase.value} -> {phase.value}")
            self.state.phase = phase

    def _cancel_timer(self, purpose: TimerPurpose) -> None:
        task = self._timers.pop(purpose, None)
        if task and not task.done():
            task.cancel()

    def _release_timer(self, purpose: TimerPurpose) -> None:
        """Drop the registry entry if it belongs to the running task."""
        if self._timers.get(purpose) is asyncio.current_task():
            del self._timers[purpose]

    def _start_task(
        self, purpose: TimerPurpose, coro: Coroutine[Any, Any, None]
    ) -> None:
        self._cancel_timer(purpose)
        self._timers[purpose] = asyncio.create_task(
            coro, name=f"supervisor-{purpose.value}"
        )

    def _start_timer(
        self, purpose: TimerPurpose, delay: float, callback: Callable[[], None]
    ) -> None:
        """One-shot timer."""
        self._start_task(purpose, self._fire_after(purpose, delay, callback))

    def _start_interval(
        self, purpose: TimerPurpose, interval: float, callback: Callable[[], None]
    ) -> None:
        self._start_task(purpose, self._fire_every(purpose, interval, callback))

    async def _fire_after(
        self, purpose: TimerPurpose, delay: float, callback: Callable[[], None]
    ) -> None:
        await asyncio.sleep(delay)
        # Released first so the callback may schedule a same-purpose successor
        self._release_timer(purpose)
        try:
            callback()
        except Exception as e:
            logger.error(f"{purpose.value} timer callback failed: {e}", exc_info=True)

    async def _fire_every(
        self, purpose: TimerPurpose, interval: float, callback: Callable[[], None]
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception as e:
                logger.error(
                    f"{purpose.value} interval callback failed: {e}", exc_info=True
                )

    def _spawn_reconnection(self) -> None:
        """Run attempt_reconnection in the background."""
        if self._destroyed:
            return
        task = asyncio.create_task(
            self.attempt_reconnection(), name="supervisor-reconnection"
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Monitoring, health check, periodic reset
    # ------------------------------------------------------------------

    def _start_monitoring(self) -> None:
        if self._check_and_start_health_checks():
            return

        self._start_task(TimerPurpose.MONITORING, self._monitor_until_available())
        self._start_timer(
            TimerPurpose.STALL_WARNING,
            self.settings.stall_warning_after,
            self._warn_if_stalled,
        )

    def _check_and_start_health_checks(self) -> bool:
        if not self.is_available():
            return False
        logger.info("Audio node already connected, starting health checks...")
        self._set_phase(SupervisorPhase.CONNECTED)
        self._start_health_timers()
        return True

    async def _monitor_until_available(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.monitor_fallback_after

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.settings.monitor_poll_interval, remaining))
            if self.is_available():
                self._release_timer(TimerPurpose.MONITORING)
                logger.info("Audio node connection detected, starting health checks...")
                self._set_phase(SupervisorPhase.CONNECTED)
                self._start_health_timers()
                return

        self._release_timer(TimerPurpose.MONITORING)
        logger.warning(
            f"No audio node connection after {self.settings.monitor_fallback_after:.0f}s, "
            "starting health checks anyway..."
        )
        self._start_health_timers()

    def _warn_if_stalled(self) -> None:
        if self.is_available():
            return
        minutes = self.settings.stall_warning_after / 60
        logger.critical(
            f"CRITICAL: audio node has not connected after {minutes:.0f} minutes! "
            f"Check that Lavalink is running at {self.node_config.host}:"
            f"{self.node_config.port}, inspect its logs and verify network "
            "connectivity between the bot and the node."
        )

    def _start_health_timers(self) -> None:
        self.start_health_check()
        self.start_periodic_reset()

    def start_health_check(self) -> None:
        self._last_health_ok = True
        self._start_interval(
            TimerPurpose.HEALTH_CHECK,
            self.settings.health_check_interval,
            self._health_check,
        )

    def start_periodic_reset(self) -> None:
        self._start_interval(
            TimerPurpose.PERIODIC_RESET,
            self.settings.periodic_reset_interval,
            self._periodic_reset,
        )

    def _health_check(self) -> None:
        if not self.is_available():
            logger.error("Health check: node not connected, attempting reconnection...")
            self._last_health_ok = False
            self._spawn_reconnection()
            return

        self.state.last_ping = time.time()
        if not self._last_health_ok:
            logger.info("Health check: node is healthy")
            self._last_health_ok = True
        if self.state.reconnect_attempts > 0:
            logger.info("Connection restored, resetting reconnection attempts")
            self.state.reconnect_attempts = 0
        if not self.state.is_reconnecting:
            self._set_phase(SupervisorPhase.CONNECTED)

    def _periodic_reset(self) -> None:
        since_ping = time.time() - self.state.last_ping
        if self.is_available() and since_ping <= self.settings.ping_timeout:
            return

        logger.info(
            "Periodic reset: no recent connection activity, attempting reconnection..."
        )
        self.state.reconnect_attempts = 0
        if self.state.phase is SupervisorPhase.COOLDOWN:
            self._cancel_timer(TimerPurpose.RECONNECT)
            self._set_phase(SupervisorPhase.RECONNECTING)
        self._spawn_reconnection()

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    async def attempt_reconnection(self) -> None:
        """
        Replace a dead node with a fresh one of the same identity.

        Single-flight: returns immediately while another attempt owns
        ``is_reconnecting`` (including while it waits out its backoff), and
        while the supervisor is cooling down after too many failures.
        """
        if self.state.is_reconnecting:
            logger.debug("Reconnection already in progress, skipping...")
            return
        if self.state.phase is SupervisorPhase.COOLDOWN:
            logger.debug("Reconnection cooling down, skipping...")
            return
        if not self.is_manager_ready():
            logger.info("Node manager not ready yet, skipping reconnection...")
            return

        # Set before the first await so concurrent callers see it
        self.state.is_reconnecting = True
        self._attempt_running = True
        try:
            node = self.node
            if node and node.connected:
                logger.info("Node is already connected, skipping reconnection")
                self.state.is_reconnecting = False
                self._set_phase(SupervisorPhase.CONNECTED)
                return

            self._set_phase(SupervisorPhase.RECONNECTING)
            logger.info("Starting audio node reconnection process...")

            if node:
                logger.info("Destroying existing disconnected node...")
                try:
                    await node.destroy()
                except Exception as e:
                    logger.warning(f"Error destroying existing node: {e}")

            logger.info(
                f"Attempting to reconnect audio node (attempt "
                f"{self.state.reconnect_attempts + 1}/{self.state.max_reconnect_attempts})..."
            )
            await self._connect_new_node()

        except asyncio.CancelledError:
            self.state.is_reconnecting = False
            raise
        except Exception as e:
            self._handle_failed_attempt(e)
        else:
            logger.info("Audio node reconnection successful!")
            self.state.reconnect_attempts = 0
            self.state.is_reconnecting = False
            self._set_phase(SupervisorPhase.CONNECTED)
        finally:
            self._attempt_running = False

    async def _connect_new_node(self) -> None:
        """Create the node and wait for its first connect or error event."""
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def on_connect(node: AudioNode) -> None:
            if not outcome.done():
                outcome.set_result(None)

        def on_error(node: AudioNode, error: Any) -> None:
            if not outcome.done():
                if not isinstance(error, BaseException):
                    error = NodeConnectionError(str(error))
                outcome.set_exception(error)

        try:
            node = self.node_manager.create_node(self.node_config)
        except Exception as e:
            raise NodeConnectionError(f"Failed to create node: {e}") from e
        if node is None:
            raise NodeConnectionError("Node creation failed - no node object returned")

        node.add_listener(NODE_EVENT_CONNECT, on_connect)
        node.add_listener(NODE_EVENT_ERROR, on_error)
        try:
            if node.connected:
                return
            await asyncio.wait_for(outcome, timeout=self.settings.connect_timeout)
        except asyncio.TimeoutError:
            raise NodeConnectionError("Connection timeout") from None
        finally:
            node.remove_listener(NODE_EVENT_CONNECT, on_connect)
            node.remove_listener(NODE_EVENT_ERROR, on_error)

    def _handle_failed_attempt(self, error: Exception) -> None:
        logger.error(f"Reconnection attempt failed: {error}")
        self.state.reconnect_attempts += 1

        if self.state.reconnect_attempts >= self.state.max_reconnect_attempts:
            minutes = self.settings.reset_cooldown / 60
            logger.error(
                f"Max reconnection attempts reached. Will retry after {minutes:g} minutes..."
            )
            self.state.is_reconnecting = False
            self._set_phase(SupervisorPhase.COOLDOWN)
            self._start_timer(
                TimerPurpose.RECONNECT,
                self.settings.reset_cooldown,
                self._on_cooldown_elapsed,
            )
            return

        delay = self.get_reconnect_delay(self.state.reconnect_attempts)
        logger.info(f"Scheduling next reconnection attempt in {delay:.0f} seconds...")
        # is_reconnecting stays set until the retry fires
        self._start_timer(TimerPurpose.RECONNECT, delay, self._on_retry_due)

    def _on_retry_due(self) -> None:
        if self._attempt_running:
            return
        self.state.is_reconnecting = False
        self._spawn_reconnection()

    def _on_cooldown_elapsed(self) -> None:
        logger.info("Resetting reconnection attempts and trying again...")
        self.state.reconnect_attempts = 0
        self.state.is_reconnecting = False
        self._set_phase(SupervisorPhase.RECONNECTING)
        self._spawn_reconnection()

    def _schedule_reconnect(self, delay: float) -> None:
        """Event-driven retry; a running cooldown keeps precedence."""
        if self._destroyed:
            return
        if self.state.phase is SupervisorPhase.COOLDOWN:
            logger.debug("Cooldown active, not scheduling an early reconnection")
            return
        self._set_phase(SupervisorPhase.RECONNECTING)
        self._start_timer(TimerPurpose.RECONNECT, delay, self._on_retry_due)

    # ------------------------------------------------------------------
    # Node events
    # ------------------------------------------------------------------

    def _is_own_node(self, node: Optional[AudioNode]) -> bool:
        return node is None or node.identifier == self.node_config.identifier

    def on_connect(self, node: AudioNode) -> None:
        if self._destroyed or not self._is_own_node(node):
            return

        logger.info("Audio node connected successfully.")
        self.state.last_ping = time.time()
        self.state.reconnect_attempts = 0
        self.state.is_reconnecting = False
        self.state.is_initialized = True
        self.state.has_had_successful_connection = True
        self._set_phase(SupervisorPhase.CONNECTED)

        self._cancel_timer(TimerPurpose.RECONNECT)
        self._cancel_timer(TimerPurpose.MONITORING)

        if not self.has_timer(TimerPurpose.HEALTH_CHECK):
            logger.info("Starting health checks after successful connection...")
            self.start_health_check()
        if not self.has_timer(TimerPurpose.PERIODIC_RESET):
            self.start_periodic_reset()

    def on_error(self, node: AudioNode, error: Any) -> None:
        # Startup noise: nothing to react to until we have been connected once
        if not self.state.is_initialized or not self._is_own_node(node):
            return
        if not self.state.has_had_successful_connection:
            logger.debug(f"Ignoring node error before first connection: {error}")
            return

        logger.error(f"Audio node encountered an error: {error}")
        if self.is_connection_error(error):
            logger.info("Connection error detected, will attempt reconnection...")
            self._schedule_reconnect(self.settings.error_retry_delay)

    def on_disconnect(self, node: AudioNode, reason: str) -> None:
        if not self.state.is_initialized or not self._is_own_node(node):
            return
        if not self.state.has_had_successful_connection:
            logger.info("No successful connection yet, not triggering reconnection...")
            return

        logger.warning(f"Audio node disconnected. Reason: {reason or 'Unknown'}")

        # Restarted by the next on_connect
        self._cancel_timer(TimerPurpose.HEALTH_CHECK)
        self._cancel_timer(TimerPurpose.PERIODIC_RESET)

        if reason == DISCONNECT_REASON_DESTROY:
            return

        delay = self.get_disconnect_delay(reason)
        logger.info(
            f"Unexpected disconnection, attempting reconnection in {delay:.0f}s..."
        )
        self._schedule_reconnect(delay)

    @staticmethod
    def is_connection_error(error: Any) -> bool:
        """Refused, host-not-found, or an 'Unable to connect' failure."""
        if isinstance(error, (ConnectionRefusedError, socket.gaierror)):
            return True
        if isinstance(error, OSError) and error.errno == errno.ECONNREFUSED:
            return True
        return "Unable to connect" in str(error)

    def attach(self, node_manager: Optional[NodeManager] = None) -> None:
        """Subscribe the event handlers to the node manager's relay."""
        manager = node_manager or self.node_manager
        manager.add_listener(NODE_EVENT_CONNECT, self.on_connect)
        manager.add_listener(NODE_EVENT_ERROR, self.on_error)
        manager.add_listener(NODE_EVENT_DISCONNECT, self.on_disconnect)
