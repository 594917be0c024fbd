"""
Queue command handlers: /queue, /clear, /shuffle, /loop and /back.
"""

import discord

from discord_jukebox.bots.commands.base import BaseCommandHandler
from discord_jukebox.bots.utils.embed_builder import LOOP_LABELS, EmbedBuilder
from discord_jukebox.bots.utils.player_panel import build_queue_view
from discord_jukebox.lavalink.player import JukeboxPlayer, LoopMode

LOOP_MESSAGES = {
    LoopMode.OFF: "➡️ Loop disabled.",
    LoopMode.TRACK: "🔂 Looping the current track.",
    LoopMode.QUEUE: "🔁 Looping the whole queue.",
}


class QueueCommands(BaseCommandHandler):
    """Handles the commands that inspect or reorder the queue."""

    def queue_response(self, player: JukeboxPlayer, page: int = 1) -> dict:
        """Embed and pagination buttons for one page of the queue."""
        queue_page = player.queue.page(page)
        response = {"embed": EmbedBuilder.queue_page(queue_page, player.now_playing)}
        view = build_queue_view(queue_page)
        if view is not None:
            response["view"] = view
        return response

    async def queue_command(self, interaction: discord.Interaction) -> None:
        if not await self.require_available(interaction):
            return
        player = await self.require_queue(interaction)
        if player is None:
            return
        await self._send(interaction, ephemeral=True, **self.queue_response(player))

    async def clear_command(self, interaction: discord.Interaction) -> None:
        """Drop every upcoming track; the current one keeps playing."""
        if not await self.require_available(interaction):
            return
        player = await self.require_queue(interaction)
        if player is None:
            return

        removed = player.queue.clear()
        self.logger.info(f"Cleared {removed} tracks in guild {interaction.guild.id}")
        await self._send(interaction, "🗑️ Queue cleared.", ephemeral=True)

    async def shuffle_command(self, interaction: discord.Interaction) -> None:
        if not await self.require_available(interaction):
            return
        player = await self.require_queue(interaction)
        if player is None:
            return

        player.queue.shuffle()
        await self._send(interaction, "🔀 Queue shuffled.", ephemeral=True)

    async def loop_command(self, interaction: discord.Interaction) -> None:
        """Cycle the loop mode: off, track, queue."""
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        mode = player.cycle_loop_mode()
        self.logger.debug(f"Loop mode in guild {interaction.guild.id}: {LOOP_LABELS[mode]}")
        await self._send(interaction, LOOP_MESSAGES[mode], ephemeral=True)

    async def back_command(self, interaction: discord.Interaction) -> None:
        """Play the previous track from the history."""
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        try:
            track = await player.play_previous()
            if track is None:
                await self._send(interaction, "⏮️ There is no previous song.", ephemeral=True)
                return
            await self._send(
                interaction, f"⏮️ Playing previous song: **{track.title}**", ephemeral=True
            )
        except Exception as e:
            await self._handle_command_error(interaction, e, "back")
