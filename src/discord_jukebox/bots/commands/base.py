"""
Base command handler class for Discord bot commands.

This module provides a base class that all command handlers can inherit from,
providing the role and availability gates, player lookup and error reporting.
"""

import logging
from typing import Optional, Tuple

import discord

from discord_jukebox.bots.utils.embed_builder import EmbedBuilder
from discord_jukebox.bots.utils.permission_utils import PermissionUtils
from discord_jukebox.bots.utils.player_panel import PlayerPanelManager
from discord_jukebox.config.settings import JukeboxConfig
from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.core.search_sessions import SearchSessionManager
from discord_jukebox.infrastructure.exceptions import (
    NodeConnectionError,
    NodeUnavailableError,
)
from discord_jukebox.lavalink.interfaces import NodeManager
from discord_jukebox.lavalink.player import JukeboxPlayer, get_guild_player

UNAVAILABLE_MARKERS = ("No available Node", "Unable to connect")


def is_unavailable_error(error: Exception) -> bool:
    """True when an error means the audio node cannot be reached."""
    if isinstance(error, (NodeUnavailableError, NodeConnectionError)):
        return True
    return any(marker in str(error) for marker in UNAVAILABLE_MARKERS)


class BaseCommandHandler:
    """Base class for command handlers with common functionality."""

    def __init__(
        self,
        supervisor: ConnectionSupervisor,
        sessions: SearchSessionManager,
        node_manager: NodeManager,
        logger: Optional[logging.Logger] = None,
        config: Optional[JukeboxConfig] = None,
        panels: Optional[PlayerPanelManager] = None,
    ):
        """Initialize the base command handler."""
        self.supervisor = supervisor
        self.sessions = sessions
        self.node_manager = node_manager
        self.logger = logger or logging.getLogger("jukebox_bot")
        self.config = config
        self.panels = panels

    @property
    def default_volume(self) -> int:
        return self.config.default_volume if self.config else 80

    @property
    def allowed_roles(self) -> Tuple[str, ...]:
        return self.config.allowed_roles if self.config else ()

    async def _send(
        self,
        interaction: discord.Interaction,
        content: Optional[str] = None,
        *,
        embed: Optional[discord.Embed] = None,
        ephemeral: bool = False,
        **kwargs,
    ) -> None:
        """Reply, or follow up if the interaction was already answered or deferred."""
        if embed is not None:
            kwargs["embed"] = embed
        if interaction.response.is_done():
            await interaction.followup.send(content, ephemeral=ephemeral, **kwargs)
        else:
            await interaction.response.send_message(content, ephemeral=ephemeral, **kwargs)

    async def require_available(self, interaction: discord.Interaction) -> bool:
        """
        Gate a command on the audio node being reachable.

        Sends the "service unavailable" message and returns False otherwise.
        """
        if self.supervisor.is_available():
            return True
        await self._send(
            interaction, embed=EmbedBuilder.service_unavailable(), ephemeral=True
        )
        return False

    async def require_player(
        self, interaction: discord.Interaction
    ) -> Optional[JukeboxPlayer]:
        """Return the guild player, telling the user when nothing is playing."""
        player = get_guild_player(interaction.guild)
        if player is None:
            await self._send(
                interaction, embed=EmbedBuilder.nothing_playing(), ephemeral=True
            )
        return player

    async def require_permission(self, interaction: discord.Interaction) -> bool:
        """Role gate for slash commands and player controls."""
        if PermissionUtils.has_permission(interaction.user, self.allowed_roles):
            return True
        self.logger.info(
            f"Denied {interaction.user} in guild {interaction.guild_id}: missing allowed role"
        )
        await self._send(
            interaction, "🚫 You don't have permission to use this bot.", ephemeral=True
        )
        return False

    async def require_queue(
        self, interaction: discord.Interaction
    ) -> Optional[JukeboxPlayer]:
        """Like require_player, but also refuses an empty queue."""
        player = await self.require_player(interaction)
        if player is not None and not len(player.queue):
            await self._send(interaction, "📭 The queue is empty.", ephemeral=True)
            return None
        return player

    async def require_same_voice(
        self, interaction: discord.Interaction, player: JukeboxPlayer
    ) -> bool:
        voice = getattr(interaction.user, "voice", None)
        if voice is None or voice.channel is None or voice.channel.id != player.channel.id:
            await self._send(
                interaction,
                "🔊 You need to be in the same voice channel as the bot.",
                ephemeral=True,
            )
            return False
        return True

    async def _get_member_voice_channel(
        self, interaction: discord.Interaction
    ) -> Optional[discord.abc.Connectable]:
        voice = getattr(interaction.user, "voice", None)
        channel = voice.channel if voice else None
        if channel is None:
            await self._send(
                interaction, "🔇 You need to be in a voice channel.", ephemeral=True
            )
        return channel

    async def _ensure_player(
        self, interaction: discord.Interaction, channel: discord.abc.Connectable
    ) -> Optional[JukeboxPlayer]:
        """Join the member's channel, or reuse the player if already there."""
        player = get_guild_player(interaction.guild)
        if player is None:
            player = await channel.connect(cls=JukeboxPlayer, self_deaf=True)
            player.text_channel_id = interaction.channel_id
            await player.change_volume(self.default_volume)
            return player

        if player.channel.id != channel.id:
            await self._send(
                interaction,
                "🔊 You need to be in the same voice channel as the bot.",
                ephemeral=True,
            )
            return None
        return player

    async def refresh_panel(
        self, interaction: discord.Interaction, player: JukeboxPlayer
    ) -> None:
        """Post or refresh the control panel in the channel the command came from."""
        if self.panels is not None and interaction.channel is not None:
            await self.panels.show(interaction.channel, player)

    async def _handle_command_error(
        self, interaction: discord.Interaction, error: Exception, command_name: str
    ) -> None:
        """Handle command errors with appropriate logging and user feedback."""
        if is_unavailable_error(error):
            self.logger.warning(f"{command_name}: audio node unavailable ({error})")
            embed = EmbedBuilder.service_unavailable()
        else:
            self.logger.error(f"Error in {command_name} command: {error}", exc_info=True)
            embed = EmbedBuilder.error(
                "Something Went Wrong",
                "An unexpected error occurred. Please try again.",
            )
        try:
            await self._send(interaction, embed=embed, ephemeral=True)
        except discord.NotFound:
            self.logger.warning(
                f"Could not send error message for {command_name} - interaction expired"
            )
        except discord.HTTPException as send_error:
            self.logger.warning(
                f"Could not send error message for {command_name}: {send_error}"
            )
