"""
Utility class for building Discord embeds consistently.

This module provides a centralized way to create Discord embeds with
consistent styling and formatting across the bot.
"""

from typing import Any, Dict, Optional

import discord

from discord_jukebox.core.search_sessions import PageData
from discord_jukebox.lavalink.models import Track
from discord_jukebox.lavalink.player import LoopMode, QueuePage

LOOP_LABELS = {
    LoopMode.OFF: "➡️ Loop off",
    LoopMode.TRACK: "🔂 Looping track",
    LoopMode.QUEUE: "🔁 Looping queue",
}


def format_duration(ms: int) -> str:
    """Format milliseconds as M:SS, or H:MM:SS from one hour up."""
    total_seconds = max(0, int(ms)) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class EmbedBuilder:
    """Utility class for building Discord embeds with consistent styling."""

    @staticmethod
    def success(title: str, description: str, **kwargs) -> discord.Embed:
        """Create a success embed (green)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.green(), **kwargs
        )

    @staticmethod
    def error(title: str, description: str, **kwargs) -> discord.Embed:
        """Create an error embed (red)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.red(), **kwargs
        )

    @staticmethod
    def warning(title: str, description: str, **kwargs) -> discord.Embed:
        """Create a warning embed (orange)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.orange(), **kwargs
        )

    @staticmethod
    def info(title: str, description: str, **kwargs) -> discord.Embed:
        """Create an info embed (blue)."""
        return discord.Embed(
            title=title, description=description, color=discord.Color.blue(), **kwargs
        )

    @staticmethod
    def service_unavailable() -> discord.Embed:
        """Shown whenever the audio node is not reachable."""
        return discord.Embed(
            title="⚠️ Music Service Unavailable",
            description="The music server is reconnecting. Please try again in a moment.",
            color=discord.Color.orange(),
        )

    @staticmethod
    def command_error(error_message: str) -> discord.Embed:
        """Create a command error embed."""
        return discord.Embed(
            description=f"❌ Error: {error_message}",
            color=discord.Color.red(),
        )

    @staticmethod
    def track_added(track: Track, position: int) -> discord.Embed:
        embed = discord.Embed(
            title="➕ Added to Queue",
            description=f"**{track.title}** by {track.author}",
            color=discord.Color.green(),
        )
        embed.add_field(name="Duration", value=format_duration(track.length))
        embed.add_field(name="Position", value=str(position))
        return embed

    @staticmethod
    def now_playing(track: Track) -> discord.Embed:
        embed = discord.Embed(
            title="🎵 Now Playing",
            description=f"**{track.title}** by {track.author}",
            color=discord.Color.blue(),
            url=track.uri,
        )
        embed.add_field(name="Duration", value=format_duration(track.length))
        return embed

    @staticmethod
    def search_results(page_data: PageData, query: str) -> discord.Embed:
        """
        Render one page of search results.

        Track numbers are global (1-based across all pages) so they match the
        selection buttons.
        """
        embed = discord.Embed(
            title="🔎 Search Results",
            description=f"Results for **{query}**",
            color=discord.Color.blue(),
            timestamp=discord.utils.utcnow(),
        )
        selected = set(page_data.selected_tracks)
        for offset, track in enumerate(page_data.tracks):
            index = page_data.start_index + offset
            icon = "✅" if index in selected else "⬜"
            embed.add_field(
                name=f"{icon} {index + 1}. {track.title or 'Unknown Title'}",
                value=(
                    f"**Artist:** {track.author or 'Unknown'}\n"
                    f"**Duration:** {format_duration(track.length)}"
                ),
                inline=False,
            )
        embed.set_footer(
            text=(
                f"Page {page_data.current_page}/{page_data.total_pages} • "
                f"{page_data.total_tracks} results • "
                f"{page_data.selected_count} selected"
            )
        )
        return embed

    @staticmethod
    def player_panel(
        track: Track,
        *,
        queue_size: int,
        volume: int,
        loop_mode: LoopMode = LoopMode.OFF,
        paused: bool = False,
    ) -> discord.Embed:
        """The control panel embed for the track that is playing."""
        title = f"[{track.title}]({track.uri})" if track.uri else f"**{track.title}**"
        embed = discord.Embed(
            title="⏸️ Paused" if paused else "🎶 Music Player",
            description=f"**Now playing:**\n{title}",
            color=discord.Color.blue(),
            timestamp=discord.utils.utcnow(),
        )
        embed.add_field(name="Artist", value=track.author or "Unknown")
        embed.add_field(
            name="Duration",
            value="🔴 Live" if track.is_stream else format_duration(track.length),
        )
        embed.add_field(name="Queue", value=f"{queue_size} songs")
        footer = f"Volume: {volume}%"
        if loop_mode is not LoopMode.OFF:
            footer += f" | {LOOP_LABELS[loop_mode]}"
        embed.set_footer(text=footer)
        return embed

    @staticmethod
    def queue_page(page: QueuePage, current: Optional[Track] = None) -> discord.Embed:
        """One page of the upcoming queue, numbered by queue position."""
        lines = [
            f"{page.start_position + offset}. {track.title or 'Unknown'}"
            for offset, track in enumerate(page.tracks)
        ]
        embed = discord.Embed(
            title="📜 Queue",
            description="\n".join(lines),
            color=discord.Color.blue(),
        )
        if current is not None:
            embed.add_field(name="Now Playing", value=current.title, inline=False)
        end_position = page.start_position + len(page.tracks) - 1
        embed.set_footer(
            text=(
                f"Page {page.current_page}/{page.total_pages} • "
                f"{page.total_tracks} tracks • "
                f"Showing {page.start_position}-{end_position}"
            )
        )
        return embed

    @staticmethod
    def status(
        status: Dict[str, Any],
        session_count: int,
        guild_session_count: Optional[int] = None,
        user_session_count: Optional[int] = None,
    ) -> discord.Embed:
        """Create the connection status embed."""
        connected = status.get("is_connected", False)
        embed = discord.Embed(
            title="📊 Jukebox Status",
            color=discord.Color.green() if connected else discord.Color.orange(),
        )
        embed.add_field(
            name="Audio Node",
            value=f"{'🟢 Connected' if connected else '🔴 Unavailable'} ({status.get('phase')})",
            inline=False,
        )
        embed.add_field(
            name="Reconnect Attempts",
            value=f"{status.get('reconnect_attempts', 0)}/{status.get('max_reconnect_attempts', 0)}",
        )
        embed.add_field(
            name="Reconnecting", value="Yes" if status.get("is_reconnecting") else "No"
        )
        sessions = str(session_count)
        if guild_session_count is not None:
            sessions += f" ({guild_session_count} in this server"
            if user_session_count is not None:
                sessions += f", {user_session_count} yours"
            sessions += ")"
        embed.add_field(name="Search Sessions", value=sessions)
        return embed

    @staticmethod
    def nothing_playing(description: Optional[str] = None) -> discord.Embed:
        return discord.Embed(
            description=description or "❌ Nothing is playing right now.",
            color=discord.Color.red(),
        )
