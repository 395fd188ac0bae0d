"""Library domain - audio file scanning, metadata and indexing.

This domain handles:
- Track record models and batch results
- Metadata extraction from audio files
- Directory walking
- Album dedup and track upsert into the store
- Read-side library queries
"""

# Models
from .models import MergePolicy, ScanResult, TrackRecord, WalkResult

# Metadata extraction
from .metadata import (
    create_fallback_metadata,
    extract_metadata,
    get_tag_value,
    parse_track_number,
)

# Walking, writing and scanning
from .walker import is_audio_candidate, scan_directory
from .writer import IndexWriter
from .scanner import scan_library, scan_music_library

# Queries
from .queries import (
    get_album_by_id,
    get_albums_by_artist,
    get_all_albums,
    get_all_artists,
    get_all_tracks,
    get_library,
    get_library_stats,
    get_track_by_id,
    get_track_by_path,
    get_tracks_by_album,
    get_tracks_by_artist,
)

__all__ = [
    # Models
    "MergePolicy",
    "ScanResult",
    "TrackRecord",
    "WalkResult",
    # Metadata
    "create_fallback_metadata",
    "extract_metadata",
    "get_tag_value",
    "parse_track_number",
    # Scanning
    "is_audio_candidate",
    "scan_directory",
    "IndexWriter",
    "scan_library",
    "scan_music_library",
    # Queries
    "get_album_by_id",
    "get_albums_by_artist",
    "get_all_albums",
    "get_all_artists",
    "get_all_tracks",
    "get_library",
    "get_library_stats",
    "get_track_by_id",
    "get_track_by_path",
    "get_tracks_by_album",
    "get_tracks_by_artist",
]
