"""
Guild player backed by the audio node.

``JukeboxPlayer`` is a ``mafic.Player`` (and therefore a discord.py voice
protocol) that adds what the node does not keep: the upcoming queue, the
history used by /back, the loop mode and the requested volume. The queue
logic lives in ``TrackQueue`` so it can be reasoned about without a voice
connection.
"""

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

import discord
import mafic

from discord_jukebox.core.types import HISTORY_LIMIT, QUEUE_PAGE_SIZE

from .models import Track


class LoopMode(str, Enum):
    """Repeat behaviour, cycled off -> track -> queue -> off."""

    OFF = "off"
    TRACK = "track"
    QUEUE = "queue"

    def next(self) -> "LoopMode":
        order = list(LoopMode)
        return order[(order.index(self) + 1) % len(order)]


@dataclass
class QueuePage:
    """One page of upcoming tracks (1-based positions)."""

    tracks: List[Track]
    current_page: int
    total_pages: int
    total_tracks: int
    start_position: int

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


class TrackQueue:
    """Current track, upcoming tracks and history for one guild."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.tracks: List[Track] = []
        self.history: List[Track] = []
        self.current: Optional[Track] = None
        self.loop_mode: LoopMode = LoopMode.OFF
        self.history_limit = history_limit

    def __len__(self) -> int:
        return len(self.tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks)

    def add(self, track: Track) -> None:
        self.tracks.append(track)

    def remove_matching(self, track: Track) -> bool:
        """Remove the first queued track pointing at the same media."""
        for index, queued in enumerate(self.tracks):
            if queued.matches(track):
                del self.tracks[index]
                return True
        return False

    def clear(self) -> int:
        """Drop the upcoming tracks; the current one keeps playing."""
        removed = len(self.tracks)
        self.tracks.clear()
        return removed

    def shuffle(self) -> None:
        random.shuffle(self.tracks)

    def reset(self) -> None:
        self.tracks.clear()
        self.history.clear()
        self.current = None
        self.loop_mode = LoopMode.OFF

    def _remember(self, track: Track) -> None:
        self.history.append(track)
        if len(self.history) > self.history_limit:
            del self.history[0]

    def advance(self, skipping: bool = False) -> Optional[Track]:
        """
        Move to the next track and make it current.

        Track loop repeats the current track unless the user is skipping it.
        Queue loop sends the finished track to the back of the queue.
        """
        finished = self.current
        if finished is not None:
            if self.loop_mode is LoopMode.TRACK and not skipping:
                return finished
            self._remember(finished)
            if self.loop_mode is LoopMode.QUEUE:
                self.tracks.append(finished)

        self.current = self.tracks.pop(0) if self.tracks else None
        return self.current

    def previous(self) -> Optional[Track]:
        """Step back one track; the current one returns to the front of the queue."""
        if not self.history:
            return None
        track = self.history.pop()
        if self.current is not None:
            self.tracks.insert(0, self.current)
        self.current = track
        return track

    def page(self, page: int, per_page: int = QUEUE_PAGE_SIZE) -> QueuePage:
        """Project one page of the upcoming tracks; the page is clamped."""
        total_pages = max(1, math.ceil(len(self.tracks) / per_page))
        current_page = max(1, min(page, total_pages))
        start = (current_page - 1) * per_page
        return QueuePage(
            tracks=self.tracks[start : start + per_page],
            current_page=current_page,
            total_pages=total_pages,
            total_tracks=len(self.tracks),
            start_position=start + 1,
        )


class JukeboxPlayer(mafic.Player):
    """mafic player with a client-side queue."""

    def __init__(self, client: discord.Client, channel: discord.abc.Connectable) -> None:
        super().__init__(client, channel)
        self.queue = TrackQueue()
        self.volume_level: int = 100
        self.text_channel_id: Optional[int] = None

    @property
    def now_playing(self) -> Optional[Track]:
        return self.queue.current

    async def play_next(self, *, skipping: bool = False) -> bool:
        """Start the next track from the queue. False when there is nothing left."""
        track = self.queue.advance(skipping=skipping)
        if track is None:
            return False
        await self.play(track.encoded)
        return True

    async def skip(self) -> bool:
        """Advance to the next queued track, stopping if there is none."""
        if await self.play_next(skipping=True):
            return True
        await self.stop()
        return False

    async def play_previous(self) -> Optional[Track]:
        track = self.queue.previous()
        if track is not None:
            await self.play(track.encoded)
        return track

    async def toggle_pause(self) -> bool:
        """Pause or resume; returns the new paused state."""
        if self.paused:
            await self.resume()
            return False
        await self.pause()
        return True

    async def change_volume(self, level: int) -> int:
        level = max(0, min(100, int(level)))
        await self.set_volume(level)
        self.volume_level = level
        return level

    def cycle_loop_mode(self) -> LoopMode:
        self.queue.loop_mode = self.queue.loop_mode.next()
        return self.queue.loop_mode

    async def shutdown(self) -> None:
        """Forget the queue and leave voice; mafic drops the node-side player."""
        self.queue.reset()
        await self.disconnect(force=True)


def get_guild_player(guild: Optional[discord.Guild]) -> Optional[JukeboxPlayer]:
    """Return the guild's player, if the bot is connected through one."""
    if guild is None:
        return None
    voice_client = guild.voice_client
    return voice_client if isinstance(voice_client, JukeboxPlayer) else None
