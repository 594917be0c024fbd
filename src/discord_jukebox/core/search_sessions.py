"""
Search session management for the /search command.

A search session holds the tracks a user's query resolved to, the indices
they picked, which of those picks actually made it into the playback queue,
and the page they are looking at. Sessions are in-memory only and are
swept by a janitor task once they get old.

Every operation here is synchronous: a single call never yields to the
event loop, so callers always observe a session in a consistent state.
Failures are reported through return values, never raised.
"""

import asyncio
import math
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from discord_jukebox.core.types import (
    SESSION_CLEANUP_INTERVAL,
    SESSION_MAX_AGE,
    TRACKS_PER_PAGE,
)
from discord_jukebox.infrastructure import setup_logging
from discord_jukebox.lavalink.models import Track

logger = setup_logging(component_name="search_sessions")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class SelectionAction(str, Enum):
    """Which way a toggle flipped a track."""

    SELECTED = "SELECTED"
    DESELECTED = "DESELECTED"


class SessionError(str, Enum):
    """Reasons a session operation was refused."""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_TRACK_INDEX = "INVALID_TRACK_INDEX"


@dataclass
class ToggleResult:
    """Outcome of toggle_track_selection."""

    success: bool
    action: Optional[SelectionAction] = None
    error: Optional[SessionError] = None


@dataclass
class PageData:
    """Read-only projection of one page of a session."""

    tracks: List[Track]
    current_page: int
    total_pages: int
    total_tracks: int
    has_next: bool
    has_previous: bool
    start_index: int
    end_index: int
    selected_tracks: List[int]
    selected_count: int


@dataclass
class SearchSession:
    """One user's search results and in-progress selection."""

    session_id: str
    user_id: str
    guild_id: str
    query: str
    tracks: Tuple[Track, ...]
    selected_tracks: Set[int] = field(default_factory=set)
    queued_tracks: Set[int] = field(default_factory=set)
    current_page: int = 1
    tracks_per_page: int = TRACKS_PER_PAGE
    created_at: float = field(default_factory=time.time)

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.tracks) / self.tracks_per_page)

    def is_owned_by(self, user_id: str, guild_id: str) -> bool:
        """Whether the given actor may mutate this session."""
        return self.user_id == str(user_id) and self.guild_id == str(guild_id)

    def has_index(self, track_index: int) -> bool:
        return 0 <= track_index < len(self.tracks)


def generate_session_id(user_id: str) -> str:
    """Requester id + creation time + random suffix."""
    timestamp = int(time.time() * 1000)
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=9))
    return f"{user_id}-{timestamp}-{suffix}"


class SearchSessionManager:
    """
    Owns the lifetime of every search session.

    Handlers must go through these methods; they never mutate a session's
    sets directly.
    """

    SESSION_MAX_AGE = SESSION_MAX_AGE
    CLEANUP_INTERVAL = SESSION_CLEANUP_INTERVAL

    def __init__(self, cleanup_interval: Optional[float] = None):
        self.sessions: Dict[str, SearchSession] = {}
        self.cleanup_interval = (
            cleanup_interval if cleanup_interval is not None else self.CLEANUP_INTERVAL
        )
        self._cleanup_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the expiry janitor. Needs a running event loop."""
        if self._cleanup_task and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.debug(
            f"Session janitor started (every {self.cleanup_interval:.0f}s, "
            f"max age {self.SESSION_MAX_AGE:.0f}s)"
        )

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            cleaned = self.cleanup_old_sessions(self.SESSION_MAX_AGE)
            if cleaned:
                logger.info(f"Swept {cleaned} expired search sessions")

    def destroy(self) -> None:
        """Cancel the janitor and drop every session. Safe to call twice."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            self._cleanup_task = None
        self.sessions.clear()

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------

    def create_session(
        self, user_id: str, guild_id: str, tracks: Sequence[Track], query: str
    ) -> str:
        """
        Create a session for a search and return its id.

        Track validation (e.g. non-empty results) is the caller's job.
        """
        session_id = generate_session_id(str(user_id))
        while session_id in self.sessions:
            session_id = generate_session_id(str(user_id))

        self.sessions[session_id] = SearchSession(
            session_id=session_id,
            user_id=str(user_id),
            guild_id=str(guild_id),
            query=query,
            tracks=tuple(tracks),
        )
        logger.debug(
            f"Created search session {session_id} ({len(tracks)} tracks) "
            f"for user {user_id} in guild {guild_id}"
        )
        return session_id

    def get_session(self, session_id: str) -> Optional[SearchSession]:
        return self.sessions.get(session_id)

    # ------------------------------------------------------------------
    # Pagination and selection
    # ------------------------------------------------------------------

    def update_page(self, session_id: str, page: int) -> bool:
        """
        Move a session to a page, clamped into the valid range.

        Out-of-range requests land on the nearest boundary. Returns False
        only when the session does not exist.
        """
        session = self.sessions.get(session_id)
        if not session:
            return False

        session.current_page = max(1, min(page, session.total_pages))
        return True

    def toggle_track_selection(self, session_id: str, track_index: int) -> ToggleResult:
        """Flip a track's membership in the selection and report which way."""
        session = self.sessions.get(session_id)
        if not session:
            return ToggleResult(success=False, error=SessionError.SESSION_NOT_FOUND)

        if not session.has_index(track_index):
            return ToggleResult(success=False, error=SessionError.INVALID_TRACK_INDEX)

        if track_index in session.selected_tracks:
            session.selected_tracks.discard(track_index)
            return ToggleResult(success=True, action=SelectionAction.DESELECTED)

        session.selected_tracks.add(track_index)
        return ToggleResult(success=True, action=SelectionAction.SELECTED)

    def get_selected_tracks(self, session_id: str) -> List[Track]:
        session = self.sessions.get(session_id)
        if not session:
            return []
        return [session.tracks[index] for index in sorted(session.selected_tracks)]

    def clear_selections(self, session_id: str) -> bool:
        session = self.sessions.get(session_id)
        if not session:
            return False
        session.selected_tracks.clear()
        return True

    def get_current_page_data(self, session_id: str) -> Optional[PageData]:
        """Project the session's current page. Mutates nothing."""
        session = self.sessions.get(session_id)
        if not session:
            return None

        tracks = session.tracks
        total_pages = session.total_pages
        current_page = session.current_page

        start_index = (current_page - 1) * session.tracks_per_page
        end_index = min(start_index + session.tracks_per_page, len(tracks))
        selected = sorted(session.selected_tracks)

        return PageData(
            tracks=list(tracks[start_index:end_index]),
            current_page=current_page,
            total_pages=total_pages,
            total_tracks=len(tracks),
            has_next=current_page < total_pages,
            has_previous=current_page > 1,
            start_index=start_index,
            end_index=end_index,
            selected_tracks=selected,
            selected_count=len(selected),
        )

    # ------------------------------------------------------------------
    # Queue bookkeeping
    # ------------------------------------------------------------------

    def mark_track_queued(self, session_id: str, track_index: int) -> bool:
        session = self.sessions.get(session_id)
        if not session or not session.has_index(track_index):
            return False
        session.queued_tracks.add(track_index)
        return True

    def unmark_track_queued(self, session_id: str, track_index: int) -> bool:
        session = self.sessions.get(session_id)
        if not session:
            return False
        session.queued_tracks.discard(track_index)
        return True

    def is_track_queued(self, session_id: str, track_index: int) -> bool:
        session = self.sessions.get(session_id)
        if not session:
            return False
        return track_index in session.queued_tracks

    # ------------------------------------------------------------------
    # Deletion and sweeps
    # ------------------------------------------------------------------

    def delete_session(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None

    def _delete_where(self, predicate) -> int:
        doomed = [sid for sid, session in self.sessions.items() if predicate(session)]
        for session_id in doomed:
            del self.sessions[session_id]
        return len(doomed)

    def cleanup_old_sessions(self, max_age: Optional[float] = None) -> int:
        """
        Remove sessions older than max_age seconds.

        Defaults to twice SESSION_MAX_AGE when no age is given.
        """
        if max_age is None:
            max_age = self.SESSION_MAX_AGE * 2
        now = time.time()
        return self._delete_where(lambda s: now - s.created_at > max_age)

    def cleanup_guild_sessions(self, guild_id: str) -> int:
        guild_id = str(guild_id)
        cleaned = self._delete_where(lambda s: s.guild_id == guild_id)
        if cleaned:
            logger.debug(f"Removed {cleaned} search sessions for guild {guild_id}")
        return cleaned

    def cleanup_user_guild_sessions(self, user_id: str, guild_id: str) -> int:
        user_id, guild_id = str(user_id), str(guild_id)
        return self._delete_where(
            lambda s: s.user_id == user_id and s.guild_id == guild_id
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_session_count(self) -> int:
        return len(self.sessions)

    def get_user_sessions(self, user_id: str) -> List[SearchSession]:
        return [s for s in self.sessions.values() if s.user_id == str(user_id)]

    def get_guild_sessions(self, guild_id: str) -> List[SearchSession]:
        return [s for s in self.sessions.values() if s.guild_id == str(guild_id)]
