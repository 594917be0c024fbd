"""
Data models exchanged with the audio node.

``Track`` and ``LoadResult`` are plain value objects built from what mafic
returns, so queues, sessions and embeds never hold library objects.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import mafic

from discord_jukebox.core.types import MAIN_NODE_ID


@dataclass(frozen=True)
class NodeConfig:
    """Connection coordinates for a single audio node."""

    host: str
    port: int
    password: str
    identifier: str = MAIN_NODE_ID
    secure: bool = False

    @property
    def address(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class Track:
    """A playable track as resolved by the audio node."""

    encoded: str
    identifier: str
    title: str = "Unknown Title"
    author: str = "Unknown"
    length: int = 0
    uri: Optional[str] = None
    is_stream: bool = False
    source_name: Optional[str] = None

    @classmethod
    def from_mafic(cls, track: Any) -> "Track":
        """Build a track from a ``mafic.Track``."""
        return cls(
            encoded=track.id,
            identifier=track.identifier or "",
            title=track.title or "Unknown Title",
            author=track.author or "Unknown",
            length=int(track.length or 0),
            uri=track.uri,
            is_stream=bool(track.stream),
            source_name=track.source,
        )

    def matches(self, other: "Track") -> bool:
        """Whether two tracks point at the same media."""
        return self.uri == other.uri and self.title == other.title


@dataclass
class LoadResult:
    """Result of a track lookup on the audio node."""

    load_type: str
    tracks: List[Track] = field(default_factory=list)
    playlist_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @classmethod
    def from_mafic(cls, result: Any) -> "LoadResult":
        """
        Build a load result from ``fetch_tracks`` output.

        mafic returns a ``Playlist``, a list of tracks (search hits or a
        single direct load) or None when nothing matched.
        """
        if result is None:
            return cls(load_type="empty")
        if isinstance(result, mafic.Playlist):
            return cls(
                load_type="playlist",
                tracks=[Track.from_mafic(track) for track in result.tracks],
                playlist_name=result.name,
            )
        tracks = [Track.from_mafic(track) for track in result]
        return cls(load_type="search" if tracks else "empty", tracks=tracks)
