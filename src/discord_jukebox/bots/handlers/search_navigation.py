"""
Button handling for paginated search results.

Every click goes through the same gate before any session state is touched:
the session must exist, belong to the clicking user in this guild, the audio
node must be available and the guild must still have a player. Queue changes
triggered by a toggle or by "add selected" run after the interaction is
answered and never propagate their errors.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Set

import discord

from discord_jukebox.bots.utils.embed_builder import EmbedBuilder
from discord_jukebox.bots.utils.player_panel import PlayerPanelManager
from discord_jukebox.bots.utils.search_view import build_search_view
from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.core.search_sessions import SearchSessionManager, SelectionAction
from discord_jukebox.lavalink.models import Track
from discord_jukebox.lavalink.player import JukeboxPlayer, get_guild_player

ACTION_PREV = "prev"
ACTION_NEXT = "next"
ACTION_TOGGLE = "toggle"
ACTION_CANCEL = "cancel"
ACTION_ADD_SELECTED = "add_selected"

_CUSTOM_ID_PATTERN = re.compile(
    r"^search_(?P<action>prev|next|toggle|cancel|add_selected)"
    r"_(?P<session_id>[A-Za-z0-9-]+)"
    r"(?:_(?P<track_index>\d+))?$"
)


@dataclass(frozen=True)
class NavigationRequest:
    """A parsed search button click."""

    action: str
    session_id: str
    track_index: Optional[int] = None


def parse_custom_id(custom_id: Optional[str]) -> Optional[NavigationRequest]:
    """
    Parse ``search_<action>_<session id>[_<track index>]``.

    Returns None for anything malformed: unknown actions, toggles without an
    index, or an index on a non-toggle action.
    """
    if not custom_id or not isinstance(custom_id, str):
        return None

    match = _CUSTOM_ID_PATTERN.match(custom_id)
    if not match:
        return None

    action = match.group("action")
    raw_index = match.group("track_index")
    if (action == ACTION_TOGGLE) != (raw_index is not None):
        return None

    return NavigationRequest(
        action=action,
        session_id=match.group("session_id"),
        track_index=int(raw_index) if raw_index is not None else None,
    )


class SearchNavigationHandler:
    """Handles prev / next / toggle / add selected / cancel clicks on search results."""

    def __init__(
        self,
        sessions: SearchSessionManager,
        supervisor: ConnectionSupervisor,
        logger: logging.Logger,
        panels: Optional[PlayerPanelManager] = None,
    ):
        self.sessions = sessions
        self.supervisor = supervisor
        self.logger = logger
        self.panels = panels
        self._deferred: Set[asyncio.Task] = set()

    async def handle(self, interaction: discord.Interaction) -> None:
        """Entry point for a ``search_*`` component interaction."""
        request = parse_custom_id((interaction.data or {}).get("custom_id"))
        if request is None:
            return

        try:
            await self._handle_request(interaction, request)
        except Exception as e:
            self.logger.error(f"Error handling search navigation: {e}", exc_info=True)
            await self._send_interaction_error(interaction)

    async def _handle_request(
        self, interaction: discord.Interaction, request: NavigationRequest
    ) -> None:
        session = self.sessions.get_session(request.session_id)
        if session is None:
            await self._reply(interaction, "⌛ This search has expired. Run `/search` again.")
            return

        guild = interaction.guild
        if guild is None or not session.is_owned_by(interaction.user.id, guild.id):
            await self._reply(interaction, "🚫 This search belongs to someone else.")
            return

        if not self.supervisor.is_available():
            await interaction.response.send_message(
                embed=EmbedBuilder.service_unavailable(), ephemeral=True
            )
            return

        player = get_guild_player(guild)
        if player is None:
            # Paging keeps the session so the user can still browse later
            if request.action not in (ACTION_PREV, ACTION_NEXT):
                self.sessions.delete_session(request.session_id)
            await self._reply(interaction, "⏹️ The player was stopped. Start a new search.")
            return

        if request.action == ACTION_CANCEL:
            self.sessions.delete_session(request.session_id)
            await interaction.response.edit_message(
                content="❌ Search cancelled.", embed=None, view=None
            )
            return

        follow_up: Optional[str] = None
        if request.action == ACTION_PREV:
            self.sessions.update_page(request.session_id, session.current_page - 1)
        elif request.action == ACTION_NEXT:
            self.sessions.update_page(request.session_id, session.current_page + 1)
        elif request.action == ACTION_TOGGLE:
            follow_up = self._toggle(
                player, request.session_id, request.track_index, interaction.channel
            )
        elif request.action == ACTION_ADD_SELECTED:
            follow_up = self._add_selected(player, request.session_id, interaction.channel)

        page_data = self.sessions.get_current_page_data(request.session_id)
        if page_data is None:
            await interaction.response.defer()
        else:
            await interaction.response.edit_message(
                embed=EmbedBuilder.search_results(page_data, session.query),
                view=build_search_view(page_data, request.session_id),
            )

        if follow_up:
            await interaction.followup.send(follow_up, ephemeral=True)

    def _defer(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._deferred.add(task)
        task.add_done_callback(self._deferred.discard)

    def _toggle(
        self,
        player: JukeboxPlayer,
        session_id: str,
        track_index: int,
        channel: Optional[discord.abc.Messageable] = None,
    ) -> Optional[str]:
        """Flip the selection and schedule the matching queue change."""
        session = self.sessions.get_session(session_id)
        if session is None or not session.has_index(track_index):
            return None
        track = session.tracks[track_index]

        result = self.sessions.toggle_track_selection(session_id, track_index)
        if not result.success:
            self.logger.warning(
                f"Toggle failed for session {session_id} index {track_index}: {result.error}"
            )
            return None

        if result.action is SelectionAction.SELECTED:
            self._defer(self._queue_tracks(player, session_id, [track_index], channel))
            return f"➕ Added **{track.title or 'Unknown'}** to the queue."
        self._defer(self._dequeue_track(player, session_id, track_index, track))
        return f"➖ Removed **{track.title or 'Unknown'}** from the queue."

    def _add_selected(
        self,
        player: JukeboxPlayer,
        session_id: str,
        channel: Optional[discord.abc.Messageable] = None,
    ) -> str:
        """Queue every selected track that is not in the queue yet."""
        session = self.sessions.get_session(session_id)
        pending = [
            index
            for index in sorted(session.selected_tracks)
            if not self.sessions.is_track_queued(session_id, index)
        ]
        if not pending:
            return "✅ Every selected track is already queued."
        self._defer(self._queue_tracks(player, session_id, pending, channel))
        return f"➕ Added **{len(pending)}** selected tracks to the queue."

    async def _queue_tracks(
        self,
        player: JukeboxPlayer,
        session_id: str,
        track_indices: List[int],
        channel: Optional[discord.abc.Messageable],
    ) -> None:
        """Queue tracks of a session and start playback if idle; failures are logged only."""
        try:
            session = self.sessions.get_session(session_id)
            if session is None:
                return
            for index in track_indices:
                player.queue.add(session.tracks[index])
                self.sessions.mark_track_queued(session_id, index)
            if player.now_playing is None:
                await player.play_next()
            if self.panels is not None and channel is not None:
                await self.panels.show(channel, player)
        except Exception as e:
            self.logger.error(
                f"Queue update for session {session_id} tracks {track_indices} failed: {e}",
                exc_info=True,
            )

    async def _dequeue_track(
        self, player: JukeboxPlayer, session_id: str, track_index: int, track: Track
    ) -> None:
        try:
            if player.queue.remove_matching(track):
                self.sessions.unmark_track_queued(session_id, track_index)
                if self.panels is not None:
                    await self.panels.update(player)
        except Exception as e:
            self.logger.error(
                f"Queue update for session {session_id} track {track_index} failed: {e}",
                exc_info=True,
            )

    async def wait_deferred(self) -> None:
        """Wait for outstanding queue changes to finish."""
        if self._deferred:
            await asyncio.gather(*self._deferred, return_exceptions=True)

    async def _reply(self, interaction: discord.Interaction, content: str) -> None:
        await interaction.response.send_message(content, ephemeral=True)

    async def _send_interaction_error(self, interaction: discord.Interaction) -> None:
        try:
            if not interaction.response.is_done():
                await interaction.response.defer()
            await interaction.followup.send(
                "❌ Something went wrong with this search. Please try again.",
                ephemeral=True,
            )
        except discord.HTTPException as e:
            self.logger.error(f"Failed to respond to interaction: {e}")
