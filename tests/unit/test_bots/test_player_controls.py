"""
Unit tests for the player control panel: layout, routing of its buttons
and the per-guild panel message.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from discord_jukebox.bots.commands.playback_commands import PlaybackCommands
from discord_jukebox.bots.commands.queue_commands import QueueCommands
from discord_jukebox.bots.handlers.player_controls import PlayerControlHandler
from discord_jukebox.bots.utils.player_panel import (
    PlayerPanelManager,
    build_player_view,
    build_queue_view,
    parse_queue_page,
)
from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.lavalink.player import JukeboxPlayer, LoopMode, TrackQueue

from tests.fakes import make_track

VOICE_CHANNEL_ID = 4242


@pytest.fixture
def panels():
    panels = MagicMock()
    panels.show = AsyncMock()
    panels.update = AsyncMock(return_value=True)
    panels.delete = AsyncMock()
    return panels


@pytest.fixture
def player(mock_guild):
    player = MagicMock(spec=JukeboxPlayer)
    player.queue = TrackQueue()
    player.guild = mock_guild
    player.channel = MagicMock(id=VOICE_CHANNEL_ID)
    player.paused = False
    player.volume_level = 100
    player.now_playing = make_track(0)
    mock_guild.voice_client = player
    return player


@pytest.fixture
def listener(mock_interaction):
    """The clicking member: no admin rights, in the bot's voice channel."""
    member = mock_interaction.user
    member.guild_permissions.administrator = False
    member.roles = []
    member.voice.channel.id = VOICE_CHANNEL_ID
    return member


@pytest.fixture
def controls(session_manager, fake_manager, mock_config, panels):
    supervisor = MagicMock(spec=ConnectionSupervisor)
    supervisor.is_available.return_value = True
    shared = dict(
        supervisor=supervisor,
        sessions=session_manager,
        node_manager=fake_manager,
        logger=MagicMock(),
        config=mock_config,
        panels=panels,
    )
    playback = PlaybackCommands(**shared)
    queue = QueueCommands(**shared)
    for name in ("pause_command", "skip_command", "stop_command"):
        setattr(playback, name, AsyncMock())
    for name in ("back_command", "shuffle_command", "loop_command", "queue_command", "clear_command"):
        setattr(queue, name, AsyncMock())
    return PlayerControlHandler(playback=playback, queue=queue, **shared)


def press(interaction, custom_id):
    interaction.data = {"custom_id": custom_id}
    return interaction


class TestPlayerView:
    """Panel and queue button layout."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_two_rows_of_four(self):
        view = build_player_view(paused=False, loop_mode=LoopMode.OFF)

        rows = {}
        for item in view.children:
            rows.setdefault(item.row, []).append(item.custom_id)
        assert rows == {
            0: ["player_back", "player_playpause", "player_skip", "player_stop"],
            1: ["player_shuffle", "player_loop", "player_queue", "player_clear"],
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_buttons_follow_state(self):
        view = build_player_view(paused=True, loop_mode=LoopMode.TRACK)

        buttons = {item.custom_id: item for item in view.children}
        assert str(buttons["player_playpause"].emoji) == "▶️"
        assert str(buttons["player_loop"].emoji) == "🔂"
        assert buttons["player_loop"].style is discord.ButtonStyle.success

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_queue_view_only_when_paginated(self):
        queue = TrackQueue()
        for i in range(25):
            queue.add(make_track(i))

        assert build_queue_view(TrackQueue().page(1)) is None
        view = build_queue_view(queue.page(3))
        prev, next_ = view.children
        assert prev.custom_id == "queue_prev_2" and prev.disabled is False
        assert next_.custom_id == "queue_next_4" and next_.disabled is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "custom_id, page",
        [
            ("queue_prev_2", 2),
            ("queue_next_10", 10),
            ("queue_next_x", None),
            ("queue_jump_3", None),
            ("queue_next", None),
            ("queue_next_2_3", None),
        ],
    )
    def test_parse_queue_page(self, custom_id, page):
        assert parse_queue_page(custom_id) == page


class TestPlayerControlHandler:
    """Routing ``player_*`` and ``queue_*`` clicks."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "custom_id, owner, method",
        [
            ("player_back", "queue_commands", "back_command"),
            ("player_playpause", "playback", "pause_command"),
            ("player_skip", "playback", "skip_command"),
            ("player_shuffle", "queue_commands", "shuffle_command"),
            ("player_loop", "queue_commands", "loop_command"),
            ("player_queue", "queue_commands", "queue_command"),
            ("player_clear", "queue_commands", "clear_command"),
        ],
    )
    async def test_button_runs_command_and_refreshes_panel(
        self, controls, player, listener, panels, mock_interaction, custom_id, owner, method
    ):
        await controls.handle(press(mock_interaction, custom_id))

        getattr(getattr(controls, owner), method).assert_awaited_once_with(mock_interaction)
        panels.update.assert_awaited_once_with(player)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stop_does_not_refresh_panel(
        self, controls, player, listener, panels, mock_interaction
    ):
        await controls.handle(press(mock_interaction, "player_stop"))

        controls.playback.stop_command.assert_awaited_once_with(mock_interaction)
        panels.update.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_button_is_ignored(self, controls, player, listener, mock_interaction):
        await controls.handle(press(mock_interaction, "player_eject"))

        mock_interaction.response.send_message.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_member_in_another_channel_is_refused(
        self, controls, player, listener, mock_interaction
    ):
        listener.voice.channel.id = 1

        await controls.handle(press(mock_interaction, "player_skip"))

        controls.playback.skip_command.assert_not_called()
        args, kwargs = mock_interaction.response.send_message.call_args
        assert "same voice channel" in args[0]
        assert kwargs["ephemeral"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_member_without_role_is_refused(
        self, controls, player, listener, mock_interaction
    ):
        controls.config.allowed_roles = ("777",)

        await controls.handle(press(mock_interaction, "player_skip"))

        controls.playback.skip_command.assert_not_called()
        args, _ = mock_interaction.response.send_message.call_args
        assert "permission" in args[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_player(self, controls, listener, mock_interaction):
        await controls.handle(press(mock_interaction, "player_skip"))

        controls.playback.skip_command.assert_not_called()
        _, kwargs = mock_interaction.response.send_message.call_args
        assert "Nothing is playing" in kwargs["embed"].description

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_error_is_reported(self, controls, player, listener, panels, mock_interaction):
        controls.playback.skip_command.side_effect = RuntimeError("boom")

        await controls.handle(press(mock_interaction, "player_skip"))

        _, kwargs = mock_interaction.response.send_message.call_args
        assert kwargs["embed"].title == "Something Went Wrong"
        panels.update.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_queue_page_turn_edits_message(
        self, controls, player, listener, mock_interaction
    ):
        for i in range(1, 15):
            player.queue.add(make_track(i))

        await controls.handle(press(mock_interaction, "queue_next_2"))

        _, kwargs = mock_interaction.response.edit_message.call_args
        assert kwargs["embed"].footer.text == "Page 2/2 • 14 tracks • Showing 11-14"
        assert [item.custom_id for item in kwargs["view"].children] == [
            "queue_prev_1",
            "queue_next_3",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_queue_page_turn_on_emptied_queue(
        self, controls, player, listener, mock_interaction
    ):
        await controls.handle(press(mock_interaction, "queue_prev_1"))

        mock_interaction.response.edit_message.assert_awaited_once_with(
            content="📭 The queue is empty.", embed=None, view=None
        )


@pytest.fixture
def bot():
    return MagicMock()


@pytest.fixture
def text_channel(bot):
    channel = MagicMock()
    channel.id = 777
    message = MagicMock()
    message.id = 888
    message.channel = channel
    channel.send = AsyncMock(return_value=message)
    partial = MagicMock()
    partial.edit = AsyncMock()
    partial.delete = AsyncMock()
    channel.get_partial_message.return_value = partial
    bot.get_channel.return_value = channel
    return channel


def http_error():
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


class TestPlayerPanelManager:
    """One panel message per guild."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_show_sends_then_edits(self, bot, text_channel, player, mock_guild):
        manager = PlayerPanelManager(bot, MagicMock())

        await manager.show(text_channel, player)
        await manager.show(text_channel, player)

        text_channel.send.assert_awaited_once()
        assert manager.messages == {mock_guild.id: (777, 888)}
        text_channel.get_partial_message.assert_called_with(888)
        text_channel.get_partial_message.return_value.edit.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_show_needs_a_current_track(self, bot, text_channel, player):
        player.now_playing = None
        manager = PlayerPanelManager(bot, MagicMock())

        await manager.show(text_channel, player)

        text_channel.send.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_without_panel(self, bot, player):
        manager = PlayerPanelManager(bot, MagicMock())

        assert await manager.update(player) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_deleted_panel_is_forgotten_and_resent(
        self, bot, text_channel, player, mock_guild
    ):
        manager = PlayerPanelManager(bot, MagicMock())
        await manager.show(text_channel, player)
        text_channel.get_partial_message.return_value.edit.side_effect = http_error()

        assert await manager.update(player) is False
        assert mock_guild.id not in manager.messages

        await manager.show(text_channel, player)
        assert text_channel.send.await_count == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete(self, bot, text_channel, player, mock_guild):
        manager = PlayerPanelManager(bot, MagicMock())
        await manager.show(text_channel, player)

        await manager.delete(mock_guild.id)
        await manager.delete(mock_guild.id)

        text_channel.get_partial_message.return_value.delete.assert_awaited_once()
        assert manager.messages == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_message(self, bot, text_channel, player):
        manager = PlayerPanelManager(bot, MagicMock())
        await manager.show(text_channel, player)
        text_channel.get_partial_message.return_value.delete.side_effect = http_error()

        await manager.delete(player.guild.id)

        assert manager.messages == {}
