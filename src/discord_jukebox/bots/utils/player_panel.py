"""
The player control panel: one message per guild with the now-playing embed
and the ``player_*`` buttons, plus the ``queue_*`` pagination row.

Like the search buttons, these have no callbacks; clicks are routed through
the bot's ``on_interaction`` handler to the player control handler.
"""

import logging
from typing import Dict, Optional, Tuple

import discord

from discord_jukebox.bots.utils.embed_builder import EmbedBuilder
from discord_jukebox.core.types import PLAYER_CUSTOM_ID_PREFIX, QUEUE_CUSTOM_ID_PREFIX
from discord_jukebox.lavalink.player import JukeboxPlayer, LoopMode, QueuePage

PLAYER_BACK = f"{PLAYER_CUSTOM_ID_PREFIX}back"
PLAYER_PLAYPAUSE = f"{PLAYER_CUSTOM_ID_PREFIX}playpause"
PLAYER_SKIP = f"{PLAYER_CUSTOM_ID_PREFIX}skip"
PLAYER_STOP = f"{PLAYER_CUSTOM_ID_PREFIX}stop"
PLAYER_SHUFFLE = f"{PLAYER_CUSTOM_ID_PREFIX}shuffle"
PLAYER_LOOP = f"{PLAYER_CUSTOM_ID_PREFIX}loop"
PLAYER_QUEUE = f"{PLAYER_CUSTOM_ID_PREFIX}queue"
PLAYER_CLEAR = f"{PLAYER_CUSTOM_ID_PREFIX}clear"

LOOP_EMOJI = {LoopMode.OFF: "➡️", LoopMode.TRACK: "🔂", LoopMode.QUEUE: "🔁"}


def build_player_view(paused: bool, loop_mode: LoopMode) -> discord.ui.View:
    """Transport controls on the first row, queue controls on the second."""
    view = discord.ui.View(timeout=None)
    buttons = [
        (PLAYER_BACK, "⏮️", discord.ButtonStyle.secondary, 0),
        (PLAYER_PLAYPAUSE, "▶️" if paused else "⏸️", discord.ButtonStyle.primary, 0),
        (PLAYER_SKIP, "⏭️", discord.ButtonStyle.secondary, 0),
        (PLAYER_STOP, "⏹️", discord.ButtonStyle.danger, 0),
        (PLAYER_SHUFFLE, "🔀", discord.ButtonStyle.secondary, 1),
        (
            PLAYER_LOOP,
            LOOP_EMOJI[loop_mode],
            discord.ButtonStyle.success
            if loop_mode is not LoopMode.OFF
            else discord.ButtonStyle.secondary,
            1,
        ),
        (PLAYER_QUEUE, "📜", discord.ButtonStyle.secondary, 1),
        (PLAYER_CLEAR, "🗑️", discord.ButtonStyle.secondary, 1),
    ]
    for custom_id, emoji, style, row in buttons:
        view.add_item(discord.ui.Button(custom_id=custom_id, emoji=emoji, style=style, row=row))
    return view


def build_queue_view(page: QueuePage) -> Optional[discord.ui.View]:
    """Pagination buttons, or None when the queue fits on one page."""
    if page.total_pages <= 1:
        return None
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            custom_id=f"{QUEUE_CUSTOM_ID_PREFIX}prev_{page.current_page - 1}",
            emoji="⬅️",
            style=discord.ButtonStyle.secondary,
            disabled=not page.has_previous,
        )
    )
    view.add_item(
        discord.ui.Button(
            custom_id=f"{QUEUE_CUSTOM_ID_PREFIX}next_{page.current_page + 1}",
            emoji="➡️",
            style=discord.ButtonStyle.secondary,
            disabled=not page.has_next,
        )
    )
    return view


def parse_queue_page(custom_id: str) -> Optional[int]:
    """Target page of a ``queue_prev_<n>`` / ``queue_next_<n>`` id."""
    parts = custom_id.split("_")
    if len(parts) != 3 or parts[1] not in ("prev", "next") or not parts[2].isdigit():
        return None
    return int(parts[2])


def render_panel(player: JukeboxPlayer) -> Tuple[discord.Embed, discord.ui.View]:
    embed = EmbedBuilder.player_panel(
        player.now_playing,
        queue_size=len(player.queue),
        volume=player.volume_level,
        loop_mode=player.queue.loop_mode,
        paused=player.paused,
    )
    return embed, build_player_view(player.paused, player.queue.loop_mode)


class PlayerPanelManager:
    """Keeps track of the control panel message of each guild."""

    def __init__(self, bot: discord.Client, logger: logging.Logger):
        self.bot = bot
        self.logger = logger
        self.messages: Dict[int, Tuple[int, int]] = {}

    async def show(self, channel: discord.abc.Messageable, player: JukeboxPlayer) -> None:
        """Refresh the guild's panel, or post one in ``channel`` if there is none."""
        if player.now_playing is None:
            return
        if player.guild.id in self.messages and await self.update(player):
            return
        embed, view = render_panel(player)
        try:
            message = await channel.send(embed=embed, view=view)
        except discord.HTTPException as e:
            self.logger.warning(f"Could not send player panel: {e}")
            return
        self.messages[player.guild.id] = (message.channel.id, message.id)

    async def update(self, player: JukeboxPlayer) -> bool:
        """Edit the existing panel; False when there is none to edit."""
        guild_id = player.guild.id
        location = self.messages.get(guild_id)
        if location is None or player.now_playing is None:
            return False

        channel = self.bot.get_channel(location[0])
        if channel is None:
            self.messages.pop(guild_id, None)
            return False

        embed, view = render_panel(player)
        try:
            await channel.get_partial_message(location[1]).edit(embed=embed, view=view)
        except discord.HTTPException as e:
            self.logger.warning(f"Player panel for guild {guild_id} is gone: {e}")
            self.messages.pop(guild_id, None)
            return False
        return True

    async def delete(self, guild_id: int) -> None:
        location = self.messages.pop(guild_id, None)
        if location is None:
            return
        channel = self.bot.get_channel(location[0])
        if channel is None:
            return
        try:
            await channel.get_partial_message(location[1]).delete()
        except discord.HTTPException:
            # Already deleted by hand
            pass
