"""
Playback command handlers: /play, /search, /skip, /stop, /pause, /volume,
/nowplaying and /status.
"""

import discord

from discord_jukebox.bots.commands.base import BaseCommandHandler
from discord_jukebox.bots.utils.embed_builder import EmbedBuilder
from discord_jukebox.bots.utils.search_view import build_search_view

MAX_QUERY_LENGTH = 200


class PlaybackCommands(BaseCommandHandler):
    """Handles all playback commands."""

    async def play_command(self, interaction: discord.Interaction, query: str) -> None:
        """Play a URL or the first search hit, queueing it if something is playing."""
        channel = await self._get_member_voice_channel(interaction)
        if channel is None or not await self.require_available(interaction):
            return

        await interaction.response.defer()
        try:
            player = await self._ensure_player(interaction, channel)
            if player is None:
                return

            result = await self.node_manager.search(query.strip())
            if result.is_empty:
                await self._send(interaction, "🔍 No results found.")
                return

            added = result.tracks if result.load_type == "playlist" else result.tracks[:1]
            for track in added:
                player.queue.add(track)

            if player.now_playing is None:
                await player.play_next()
                await self._send(interaction, embed=EmbedBuilder.now_playing(player.now_playing))
                await self.refresh_panel(interaction, player)
            elif len(added) > 1:
                await self._send(
                    interaction,
                    embed=EmbedBuilder.success(
                        "➕ Playlist Queued",
                        f"Added **{len(added)}** tracks from **{result.playlist_name}**.",
                    ),
                )
            else:
                await self._send(
                    interaction, embed=EmbedBuilder.track_added(added[0], len(player.queue))
                )
        except Exception as e:
            await self._handle_command_error(interaction, e, "play")

    async def search_command(self, interaction: discord.Interaction, query: str) -> None:
        """Show paginated results the user can pick from."""
        query = (query or "").strip()
        if not query:
            await self._send(interaction, "🔍 Please enter something to search for.", ephemeral=True)
            return
        if len(query) > MAX_QUERY_LENGTH:
            await self._send(
                interaction,
                f"🔍 Search queries are limited to {MAX_QUERY_LENGTH} characters.",
                ephemeral=True,
            )
            return

        channel = await self._get_member_voice_channel(interaction)
        if channel is None or not await self.require_available(interaction):
            return

        await interaction.response.defer()
        try:
            player = await self._ensure_player(interaction, channel)
            if player is None:
                return

            result = await self.node_manager.search(query)
            if result.is_empty:
                await self._send(interaction, "🔍 No results found.")
                return

            session_id = self.sessions.create_session(
                interaction.user.id, interaction.guild.id, result.tracks, query
            )
            page_data = self.sessions.get_current_page_data(session_id)
            if page_data is None:
                await self._send(interaction, "❌ Could not open the search results.")
                return

            await self._send(
                interaction,
                embed=EmbedBuilder.search_results(page_data, query),
                view=build_search_view(page_data, session_id),
            )
        except Exception as e:
            await self._handle_command_error(interaction, e, "search")

    async def skip_command(self, interaction: discord.Interaction) -> None:
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        try:
            if await player.skip():
                await self._send(interaction, embed=EmbedBuilder.now_playing(player.now_playing))
                await self.refresh_panel(interaction, player)
            else:
                if self.panels is not None:
                    await self.panels.delete(interaction.guild.id)
                await self._send(interaction, "⏹️ Queue finished, playback stopped.")
        except Exception as e:
            await self._handle_command_error(interaction, e, "skip")

    async def stop_command(self, interaction: discord.Interaction) -> None:
        """Stop playback, leave voice and drop the guild's search sessions."""
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        try:
            await player.shutdown()
            if self.panels is not None:
                await self.panels.delete(interaction.guild.id)
            removed = self.sessions.cleanup_guild_sessions(interaction.guild.id)
            self.logger.info(
                f"Stopped player in guild {interaction.guild.id} "
                f"({removed} search sessions removed)"
            )
            await self._send(interaction, "⏹️ Stopped and left the voice channel.")
        except Exception as e:
            await self._handle_command_error(interaction, e, "stop")

    async def pause_command(self, interaction: discord.Interaction) -> None:
        """Pause, or resume when already paused."""
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        try:
            paused = await player.toggle_pause()
            await self._send(
                interaction, "⏸️ Paused." if paused else "▶️ Resumed.", ephemeral=True
            )
        except Exception as e:
            await self._handle_command_error(interaction, e, "pause")

    async def volume_command(self, interaction: discord.Interaction, level: int) -> None:
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        try:
            applied = await player.change_volume(level)
            await self._send(interaction, f"🔊 Volume set to **{applied}%**.", ephemeral=True)
        except Exception as e:
            await self._handle_command_error(interaction, e, "volume")

    async def nowplaying_command(self, interaction: discord.Interaction) -> None:
        if not await self.require_available(interaction):
            return
        player = await self.require_player(interaction)
        if player is None:
            return

        track = player.now_playing
        if track is None:
            await self._send(interaction, embed=EmbedBuilder.nothing_playing(), ephemeral=True)
            return
        embed = EmbedBuilder.player_panel(
            track,
            queue_size=len(player.queue),
            volume=player.volume_level,
            loop_mode=player.queue.loop_mode,
            paused=player.paused,
        )
        await self._send(interaction, embed=embed, ephemeral=True)

    async def status_command(self, interaction: discord.Interaction) -> None:
        """Connection status; answers even while the node is unavailable."""
        guild_sessions = user_sessions = None
        if interaction.guild is not None:
            guild_sessions = len(self.sessions.get_guild_sessions(interaction.guild.id))
            user_sessions = len(
                [
                    session
                    for session in self.sessions.get_user_sessions(interaction.user.id)
                    if session.guild_id == str(interaction.guild.id)
                ]
            )
        embed = EmbedBuilder.status(
            self.supervisor.get_status(),
            self.sessions.get_session_count(),
            guild_session_count=guild_sessions,
            user_session_count=user_sessions,
        )
        await self._send(interaction, embed=embed, ephemeral=True)
