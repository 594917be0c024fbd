"""
Button handling for the player control panel and the queue pages.

A ``player_*`` click runs the same code as the matching slash command, after
the role gate and a check that the clicking member shares the bot's voice
channel. The panel is refreshed afterwards unless playback was stopped.
"""

from typing import Awaitable, Callable, Dict

import discord

from discord_jukebox.bots.commands.base import BaseCommandHandler
from discord_jukebox.bots.commands.playback_commands import PlaybackCommands
from discord_jukebox.bots.commands.queue_commands import QueueCommands
from discord_jukebox.bots.utils.player_panel import (
    PLAYER_BACK,
    PLAYER_CLEAR,
    PLAYER_LOOP,
    PLAYER_PLAYPAUSE,
    PLAYER_QUEUE,
    PLAYER_SHUFFLE,
    PLAYER_SKIP,
    PLAYER_STOP,
    parse_queue_page,
)
from discord_jukebox.core.types import QUEUE_CUSTOM_ID_PREFIX
from discord_jukebox.lavalink.player import JukeboxPlayer, get_guild_player

ButtonAction = Callable[[discord.Interaction], Awaitable[None]]


class PlayerControlHandler(BaseCommandHandler):
    """Routes control panel and queue page clicks."""

    def __init__(self, playback: PlaybackCommands, queue: QueueCommands, **kwargs):
        super().__init__(**kwargs)
        self.playback = playback
        self.queue_commands = queue
        self.actions: Dict[str, ButtonAction] = {
            PLAYER_BACK: queue.back_command,
            PLAYER_PLAYPAUSE: playback.pause_command,
            PLAYER_SKIP: playback.skip_command,
            PLAYER_STOP: playback.stop_command,
            PLAYER_SHUFFLE: queue.shuffle_command,
            PLAYER_LOOP: queue.loop_command,
            PLAYER_QUEUE: queue.queue_command,
            PLAYER_CLEAR: queue.clear_command,
        }

    async def handle(self, interaction: discord.Interaction) -> None:
        """Entry point for a ``player_*`` or ``queue_*`` component interaction."""
        custom_id = (interaction.data or {}).get("custom_id", "")
        if custom_id not in self.actions and not custom_id.startswith(QUEUE_CUSTOM_ID_PREFIX):
            return

        if not await self.require_permission(interaction):
            return
        player = await self.require_player(interaction)
        if player is None or not await self.require_same_voice(interaction, player):
            return

        try:
            if custom_id.startswith(QUEUE_CUSTOM_ID_PREFIX):
                await self._turn_queue_page(interaction, player, custom_id)
                return
            await self.actions[custom_id](interaction)
        except Exception as e:
            await self._handle_command_error(interaction, e, custom_id)
            return

        if custom_id != PLAYER_STOP and self.panels is not None:
            player = get_guild_player(interaction.guild)
            if player is not None:
                await self.panels.update(player)

    async def _turn_queue_page(
        self, interaction: discord.Interaction, player: JukeboxPlayer, custom_id: str
    ) -> None:
        page = parse_queue_page(custom_id)
        if page is None:
            self.logger.debug(f"Ignoring queue button {custom_id}")
            return
        if not len(player.queue):
            await interaction.response.edit_message(
                content="📭 The queue is empty.", embed=None, view=None
            )
            return
        response = self.queue_commands.queue_response(player, page)
        await interaction.response.edit_message(
            embed=response["embed"], view=response.get("view")
        )
