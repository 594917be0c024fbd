"""
Event handlers for the jukebox bot.

This module contains all Discord and audio node event handlers separated from
the main bot file for better organization and maintainability.
"""

import asyncio
import logging
from typing import Dict, Optional

import discord
import mafic
from discord.ext import commands

from discord_jukebox.bots.handlers.player_controls import PlayerControlHandler
from discord_jukebox.bots.handlers.search_navigation import SearchNavigationHandler
from discord_jukebox.bots.utils.player_panel import PlayerPanelManager
from discord_jukebox.config.settings import JukeboxConfig
from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.core.search_sessions import SearchSessionManager
from discord_jukebox.core.types import (
    PLAYER_CUSTOM_ID_PREFIX,
    QUEUE_CUSTOM_ID_PREFIX,
    SEARCH_CUSTOM_ID_PREFIX,
)
from discord_jukebox.lavalink.node_manager import LavalinkNodeManager
from discord_jukebox.lavalink.player import JukeboxPlayer, get_guild_player

# Track end reasons after which the next queued track should start.
# Exception and stuck events are always followed by a loadFailed end.
ADVANCE_REASONS = (mafic.EndReason.FINISHED, mafic.EndReason.LOAD_FAILED)


class EventHandlers:
    """Handles all Discord bot and audio node events."""

    def __init__(
        self,
        bot: commands.Bot,
        supervisor: ConnectionSupervisor,
        sessions: SearchSessionManager,
        node_manager: LavalinkNodeManager,
        config: JukeboxConfig,
        logger: Optional[logging.Logger] = None,
        panels: Optional[PlayerPanelManager] = None,
        controls: Optional[PlayerControlHandler] = None,
    ):
        """Initialize event handlers."""
        self.bot = bot
        self.supervisor = supervisor
        self.sessions = sessions
        self.node_manager = node_manager
        self.config = config
        self.logger = logger or logging.getLogger("jukebox_bot")
        self.panels = panels
        self.controls = controls
        self.search_navigation = SearchNavigationHandler(
            sessions=sessions, supervisor=supervisor, logger=self.logger, panels=panels
        )

        self._started = False
        self._empty_channel_timers: Dict[int, asyncio.Task] = {}

    async def on_ready(self) -> None:
        """Bot ready event. Runs the one-time startup on the first ready only."""
        self.logger.info(f"Jukebox bot online: {self.bot.user}")
        if self._started:
            return
        self._started = True

        try:
            self.node_manager.init(self.bot)
            self.supervisor.attach(self.node_manager)
            self.sessions.start()
            self.supervisor.initialize()
        except Exception as e:
            self.logger.error(f"Failed to start audio components: {e}", exc_info=True)

        try:
            synced = await self.bot.tree.sync()
            self.logger.info(f"Synced {len(synced)} application commands")
        except Exception as e:
            self.logger.error(f"Command sync failed: {e}", exc_info=True)

    async def on_node_ready(self, node: mafic.Node) -> None:
        """mafic finished a node handshake (first connect or its own resume)."""
        self.node_manager.handle_node_ready(node)

    async def on_node_unavailable(self, node: mafic.Node) -> None:
        self.node_manager.handle_node_unavailable(node)

    async def on_track_start(self, event: mafic.TrackStartEvent) -> None:
        player = event.player
        if isinstance(player, JukeboxPlayer) and self.panels is not None:
            await self.panels.update(player)

    async def on_track_end(self, event: mafic.TrackEndEvent) -> None:
        """Advance to the next queued track when the current one is over."""
        if event.reason not in ADVANCE_REASONS:
            return

        player = event.player
        if not isinstance(player, JukeboxPlayer):
            return
        guild_id = player.guild.id

        try:
            # A track that failed to load is not repeated by track loop
            skipping = event.reason == mafic.EndReason.LOAD_FAILED
            if not await player.play_next(skipping=skipping):
                self.logger.debug(f"Queue finished in guild {guild_id}")
                if self.panels is not None:
                    await self.panels.delete(guild_id)
        except Exception as e:
            self.logger.error(
                f"Failed to advance queue in guild {guild_id}: {e}", exc_info=True
            )

    async def on_track_exception(self, event: mafic.TrackExceptionEvent) -> None:
        """Log only; the track end event that follows advances the queue."""
        self.logger.warning(
            f"Track exception in guild {event.player.guild.id}: {event.exception}"
        )

    async def on_track_stuck(self, event: mafic.TrackStuckEvent) -> None:
        """Log only; the track end event that follows advances the queue."""
        self.logger.warning(
            f"Track stuck in guild {event.player.guild.id} "
            f"(threshold: {event.threshold_ms}ms)"
        )

    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Clean up when the bot is removed, or its channel stays empty."""
        guild = member.guild

        if self.bot.user and member.id == self.bot.user.id:
            if before.channel is not None and after.channel is None:
                self.logger.info(f"Bot left voice in guild {guild.id}, cleaning up")
                self._cancel_empty_channel_timer(guild.id)
                await self._teardown_guild(guild)
            return

        player = get_guild_player(guild)
        if player is None or player.channel is None:
            return

        bot_channel = player.channel
        if before.channel != bot_channel and after.channel != bot_channel:
            return

        listeners = [m for m in bot_channel.members if not m.bot]
        if listeners:
            self._cancel_empty_channel_timer(guild.id)
        elif guild.id not in self._empty_channel_timers:
            self.logger.debug(
                f"Voice channel empty in guild {guild.id}, leaving in "
                f"{self.config.empty_channel_destroy_ms}ms"
            )
            self._empty_channel_timers[guild.id] = asyncio.create_task(
                self._leave_when_still_empty(guild)
            )

    async def _leave_when_still_empty(self, guild: discord.Guild) -> None:
        await asyncio.sleep(self.config.empty_channel_destroy_ms / 1000)
        self._empty_channel_timers.pop(guild.id, None)

        player = get_guild_player(guild)
        if player is not None and player.text_channel_id:
            channel = self.bot.get_channel(player.text_channel_id)
            if channel is not None:
                try:
                    await channel.send("👋 Left the voice channel because it was empty.")
                except discord.HTTPException as e:
                    self.logger.warning(f"Could not send leave message: {e}")

        await self._teardown_guild(guild)

    def _cancel_empty_channel_timer(self, guild_id: int) -> None:
        timer = self._empty_channel_timers.pop(guild_id, None)
        if timer is not None:
            timer.cancel()

    async def _teardown_guild(self, guild: discord.Guild) -> None:
        player = get_guild_player(guild)
        if player is not None:
            try:
                await player.shutdown()
            except Exception as e:
                self.logger.error(
                    f"Error destroying player in guild {guild.id}: {e}", exc_info=True
                )
        if self.panels is not None:
            await self.panels.delete(guild.id)
        self.sessions.cleanup_guild_sessions(guild.id)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Route component clicks; slash commands go through the command tree."""
        if interaction.type is not discord.InteractionType.component:
            return
        custom_id = (interaction.data or {}).get("custom_id", "")
        if custom_id.startswith(SEARCH_CUSTOM_ID_PREFIX):
            await self.search_navigation.handle(interaction)
        elif self.controls is not None and custom_id.startswith(
            (PLAYER_CUSTOM_ID_PREFIX, QUEUE_CUSTOM_ID_PREFIX)
        ):
            await self.controls.handle(interaction)

    def close(self) -> None:
        """Cancel pending empty-channel timers."""
        for guild_id in list(self._empty_channel_timers):
            self._cancel_empty_channel_timer(guild_id)
