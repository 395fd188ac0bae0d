"""
Music library domain models.

Contains data structures for extracted track metadata and the aggregate
results returned by batch operations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional


class TrackRecord(NamedTuple):
    """Normalized metadata extracted from one audio file.

    A fallback record (unreadable file) carries only path and title;
    read_error then explains why the file could not be parsed.
    """
    path: str  # Absolute file path (natural key of the tracks table)
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    track_number: Optional[int] = None
    duration: Optional[int] = None  # whole seconds, truncated
    bitrate: Optional[int] = None  # kbps
    format: Optional[str] = None  # container label, e.g. "MP3", "FLAC"
    album_art: Optional[str] = None  # first embedded picture, base64
    read_error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.read_error is not None


class MergePolicy(Enum):
    """How an incoming value is merged with a value already in the store."""

    FIRST_WRITER_WINS = "first_writer_wins"  # Existing non-empty value is never replaced
    LAST_WRITE_WINS = "last_write_wins"  # Incoming value always replaces


@dataclass
class WalkResult:
    """Output of a directory walk."""

    audio_files: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class ScanResult:
    """Aggregate result of a library scan."""

    tracks_added: int = 0
    tracks_updated: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def tracks_processed(self) -> int:
        return self.tracks_added + self.tracks_updated
