"""
Unit tests for the listener registry used by nodes and node managers.
"""

import asyncio

import pytest

from discord_jukebox.lavalink.interfaces import EventEmitter


class TestEventEmitter:
    """Listener registration and dispatch."""

    @pytest.mark.unit
    def test_sync_listeners_run_in_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.add_listener("connect", lambda node: calls.append(("a", node)))
        emitter.add_listener("connect", lambda node: calls.append(("b", node)))

        emitter.emit("connect", "node-1")

        assert calls == [("a", "node-1"), ("b", "node-1")]

    @pytest.mark.unit
    def test_failing_listener_does_not_stop_others(self):
        emitter = EventEmitter()
        calls = []

        def broken(*args):
            raise RuntimeError("boom")

        emitter.add_listener("error", broken)
        emitter.add_listener("error", lambda *args: calls.append(args))

        emitter.emit("error", "node", "oops")

        assert calls == [("node", "oops")]

    @pytest.mark.unit
    def test_remove_listener(self):
        emitter = EventEmitter()
        calls = []
        listener = calls.append

        emitter.add_listener("disconnect", listener)
        emitter.remove_listener("disconnect", listener)
        emitter.remove_listener("disconnect", listener)
        emitter.emit("disconnect", "reason")

        assert calls == []
        assert emitter.listener_count("disconnect") == 0

    @pytest.mark.unit
    def test_emit_without_listeners(self):
        EventEmitter().emit("nothing", 1, 2)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_coroutine_listeners_are_scheduled(self):
        emitter = EventEmitter()
        done = asyncio.Event()
        received = []

        async def listener(value):
            received.append(value)
            done.set()

        emitter.add_listener("track_end", listener)
        emitter.emit("track_end", 42)

        await asyncio.wait_for(done.wait(), timeout=1)
        assert received == [42]
