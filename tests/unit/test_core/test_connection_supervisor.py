"""
Unit tests for the connection supervisor.

Timings come from the ``fast_settings`` fixture (milliseconds, no jitter) and
the fake node manager resolves connections on the next loop iteration.
"""

import asyncio
import errno
import socket
from dataclasses import replace

import pytest

from discord_jukebox.core.connection_supervisor import (
    ConnectionSupervisor,
    SupervisorPhase,
    SupervisorSettings,
    TimerPurpose,
)
from discord_jukebox.infrastructure.exceptions import NodeConnectionError

from tests.fakes import FakeNodeManager


async def wait_until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestDelays:
    """Backoff and disconnect delay selection."""

    @pytest.mark.unit
    def test_reconnect_delay_is_exponential_and_capped(self, supervisor):
        assert supervisor.get_reconnect_delay(0) == pytest.approx(0.01)
        assert supervisor.get_reconnect_delay(1) == pytest.approx(0.02)
        assert supervisor.get_reconnect_delay(2) == pytest.approx(0.04)
        assert supervisor.get_reconnect_delay(10) == pytest.approx(0.05)

    @pytest.mark.unit
    def test_reconnect_delay_jitter_bounds(self, fake_manager, node_config):
        sup = ConnectionSupervisor(
            fake_manager, node_config, SupervisorSettings(base_delay=1.0, jitter=1.0)
        )
        for _ in range(20):
            assert 2.0 <= sup.get_reconnect_delay(1) <= 3.0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reason, expected",
        [
            ("No ping received", 5.0),
            ("Socket closed without a close frame (network failure)", 5.0),
            ("Read timeout", 3.0),
            ("1000 normal closure", 2.0),
            ("", 2.0),
        ],
    )
    def test_disconnect_delay_by_reason(self, supervisor, reason, expected):
        assert supervisor.get_disconnect_delay(reason) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error, expected",
        [
            (ConnectionRefusedError(), True),
            (socket.gaierror(), True),
            (OSError(errno.ECONNREFUSED, "refused"), True),
            (NodeConnectionError("Unable to connect to http://x"), True),
            ("Unable to connect", True),
            (ValueError("bad payload"), False),
            (OSError(errno.EPIPE, "broken pipe"), False),
        ],
    )
    def test_is_connection_error(self, error, expected):
        assert ConnectionSupervisor.is_connection_error(error) is expected


class TestReconnection:
    """attempt_reconnection and its retry chain."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_attempts_create_one_node(self, supervisor, fake_manager):
        await asyncio.gather(*(supervisor.attempt_reconnection() for _ in range(5)))

        assert len(fake_manager.created) == 1
        assert supervisor.is_available()
        assert supervisor.state.phase is SupervisorPhase.CONNECTED
        assert supervisor.state.is_reconnecting is False
        assert supervisor.state.reconnect_attempts == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connected_node_is_left_alone(self, supervisor, fake_manager):
        node = fake_manager.add_connected_node()

        await supervisor.attempt_reconnection()

        assert fake_manager.created == []
        assert node.destroyed is False
        assert supervisor.state.is_reconnecting is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_manager_not_ready_skips(self, node_config, fast_settings):
        manager = FakeNodeManager(ready=False)
        sup = ConnectionSupervisor(manager, node_config, fast_settings)

        await sup.attempt_reconnection()

        assert manager.created == []
        assert sup.state.is_reconnecting is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dead_node_is_destroyed_before_replacement(self, supervisor, fake_manager):
        old = fake_manager.add_connected_node()
        old.is_connected = False

        await supervisor.attempt_reconnection()

        assert old.destroyed is True
        assert fake_manager.get_node("main-node") is fake_manager.created[0]
        assert supervisor.is_available()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_timeout_counts_as_failure(self, supervisor, fake_manager):
        fake_manager.outcome = "hang"

        await supervisor.attempt_reconnection()

        assert supervisor.state.reconnect_attempts == 1
        assert supervisor.state.is_reconnecting is True
        assert supervisor.has_timer(TimerPurpose.RECONNECT)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ceiling_enters_cooldown_then_resets(self, supervisor, fake_manager):
        fake_manager.outcome = "error"

        await supervisor.attempt_reconnection()
        assert supervisor.state.reconnect_attempts == 1

        await wait_until(lambda: supervisor.state.phase is SupervisorPhase.COOLDOWN)
        assert supervisor.state.reconnect_attempts == 3
        assert supervisor.state.is_reconnecting is False
        assert len(fake_manager.created) == 3

        # Refused while cooling down
        await supervisor.attempt_reconnection()
        assert len(fake_manager.created) == 3

        fake_manager.outcome = "connect"
        await wait_until(lambda: supervisor.state.phase is SupervisorPhase.CONNECTED)
        assert supervisor.is_available()
        assert supervisor.state.reconnect_attempts == 0
        assert len(fake_manager.created) == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_periodic_reset_breaks_cooldown(self, node_config, fast_settings):
        manager = FakeNodeManager(outcome="error")
        sup = ConnectionSupervisor(
            manager, node_config, replace(fast_settings, reset_cooldown=60.0)
        )
        sup.attach()
        try:
            await sup.attempt_reconnection()
            await wait_until(lambda: sup.state.phase is SupervisorPhase.COOLDOWN)

            manager.outcome = "connect"
            sup._periodic_reset()

            assert sup.state.reconnect_attempts == 0
            await wait_until(sup.is_available)
            await wait_until(lambda: sup.state.phase is SupervisorPhase.CONNECTED)
            assert not sup.has_timer(TimerPurpose.RECONNECT)
        finally:
            sup.destroy()


class TestNodeEvents:
    """Reactions to connect / error / disconnect events."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_startup_errors_are_ignored(self, supervisor, fake_manager):
        fake_manager.outcome = "hang"
        supervisor.initialize()
        node = fake_manager.created[0]

        node.fire_error(NodeConnectionError("Unable to connect to http://localhost:2333"))
        node.fire_disconnect("1006 network failure")

        assert not supervisor.has_timer(TimerPurpose.RECONNECT)
        assert supervisor.state.has_had_successful_connection is False
        assert supervisor.state.phase is SupervisorPhase.MONITORING

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_event_starts_health_checks(self, supervisor, fake_manager):
        supervisor.initialize()

        await wait_until(supervisor.is_available)

        assert supervisor.state.has_had_successful_connection is True
        assert supervisor.state.phase is SupervisorPhase.CONNECTED
        assert supervisor.has_timer(TimerPurpose.HEALTH_CHECK)
        assert supervisor.has_timer(TimerPurpose.PERIODIC_RESET)
        assert not supervisor.has_timer(TimerPurpose.MONITORING)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_destroy_disconnect_does_not_retry(self, supervisor, fake_manager):
        supervisor.initialize()
        await wait_until(supervisor.is_available)

        fake_manager.created[0].fire_disconnect("destroy")

        assert not supervisor.has_timer(TimerPurpose.RECONNECT)
        assert not supervisor.has_timer(TimerPurpose.HEALTH_CHECK)
        assert not supervisor.has_timer(TimerPurpose.PERIODIC_RESET)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_disconnect_reconnects(self, supervisor, fake_manager):
        supervisor.NETWORK_DISCONNECT_DELAY = 0.01
        supervisor.initialize()
        await wait_until(supervisor.is_available)

        fake_manager.created[0].fire_disconnect("Socket closed (network failure)")

        assert supervisor.has_timer(TimerPurpose.RECONNECT)
        assert supervisor.state.phase is SupervisorPhase.RECONNECTING

        await wait_until(lambda: len(fake_manager.created) == 2 and supervisor.is_available())
        assert fake_manager.created[0].destroyed is True
        assert supervisor.has_timer(TimerPurpose.HEALTH_CHECK)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connection_error_after_success_schedules_retry(
        self, supervisor, fake_manager
    ):
        supervisor.initialize()
        await wait_until(supervisor.is_available)
        node = fake_manager.created[0]

        node.fire_error(ValueError("bad payload"))
        assert not supervisor.has_timer(TimerPurpose.RECONNECT)

        node.fire_error(ConnectionRefusedError())
        assert supervisor.has_timer(TimerPurpose.RECONNECT)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_events_from_other_nodes_are_ignored(self, supervisor, fake_manager):
        supervisor.initialize()
        await wait_until(supervisor.is_available)

        stranger = fake_manager.add_connected_node("other-node")
        stranger.fire_disconnect("1006 network failure")

        assert not supervisor.has_timer(TimerPurpose.RECONNECT)
        assert supervisor.has_timer(TimerPurpose.HEALTH_CHECK)


class TestMonitoring:
    """Startup monitoring and the health check."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_already_connected_starts_health_checks(self, supervisor, fake_manager):
        fake_manager.add_connected_node()

        supervisor.initialize()

        assert fake_manager.created == []
        assert supervisor.state.phase is SupervisorPhase.CONNECTED
        assert supervisor.has_timer(TimerPurpose.HEALTH_CHECK)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_monitoring_falls_back_to_health_checks(self, supervisor, fake_manager):
        fake_manager.outcome = "hang"

        supervisor.initialize()
        assert supervisor.has_timer(TimerPurpose.MONITORING)
        assert supervisor.has_timer(TimerPurpose.STALL_WARNING)

        await wait_until(lambda: supervisor.has_timer(TimerPurpose.HEALTH_CHECK))
        assert not supervisor.has_timer(TimerPurpose.MONITORING)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_health_check_replaces_silently_dead_node(self, supervisor, fake_manager):
        supervisor.initialize()
        await wait_until(supervisor.is_available)

        # Dropped without any disconnect event
        fake_manager.created[0].is_connected = False

        await wait_until(lambda: len(fake_manager.created) == 2 and supervisor.is_available())
        assert supervisor.state.reconnect_attempts == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, supervisor, fake_manager):
        supervisor.initialize()
        supervisor.initialize()

        await wait_until(supervisor.is_available)
        assert len(fake_manager.created) == 1


class TestLifecycle:
    """Status snapshot and teardown."""

    @pytest.mark.unit
    def test_initial_status(self, supervisor):
        status = supervisor.get_status()

        assert status["is_connected"] is False
        assert status["phase"] == "uninitialized"
        assert status["reconnect_attempts"] == 0
        assert status["max_reconnect_attempts"] == 3
        assert status["active_timers"] == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_destroy_cancels_timers(self, supervisor):
        supervisor.initialize()
        await wait_until(supervisor.is_available)
        assert supervisor.get_status()["active_timers"]

        supervisor.destroy()
        supervisor.destroy()

        assert supervisor.get_status()["active_timers"] == []
        assert supervisor.state.is_initialized is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_initialize_after_destroy(self, supervisor, fake_manager):
        supervisor.destroy()
        supervisor.initialize()

        assert fake_manager.created == []
        assert supervisor.state.phase is SupervisorPhase.UNINITIALIZED

    @pytest.mark.unit
    def test_settings_from_config(self, mock_config):
        settings = SupervisorSettings.from_config(mock_config)

        assert settings.max_reconnect_attempts == 10
        assert settings.base_delay == 1.0
        assert settings.max_delay == 30.0
        assert settings.health_check_interval == 30.0
        assert settings.reset_cooldown == 300.0
