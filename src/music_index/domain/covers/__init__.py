"""Covers domain - cover art file store and its reconciliation with the index.

This domain handles:
- Writing decoded covers to <covers_root>/{tracks,albums}/<id>.<ext>
- Migrating inline base64 covers to files
- Rebuilding cover paths from files on disk
- Removing orphaned files and clearing redundant inline data
"""

from .storage import (
    IMAGE_EXTENSIONS,
    decode_cover,
    detect_image_extension,
    get_albums_dir,
    get_tracks_dir,
    is_cover_file,
    parse_cover_id,
    save_album_art_from_base64,
    save_track_cover_from_base64,
    write_cover_file,
)

from .store import (
    CoverMigrationResult,
    cleanup_orphaned_covers,
    clear_embedded_blobs,
    get_album_art_path,
    get_batch_cover_paths,
    get_track_cover_path,
    migrate_covers_to_files,
    sync_cover_paths_from_files,
)

__all__ = [
    # Storage
    "IMAGE_EXTENSIONS",
    "decode_cover",
    "detect_image_extension",
    "get_albums_dir",
    "get_tracks_dir",
    "is_cover_file",
    "parse_cover_id",
    "save_album_art_from_base64",
    "save_track_cover_from_base64",
    "write_cover_file",
    # Batch operations
    "CoverMigrationResult",
    "cleanup_orphaned_covers",
    "clear_embedded_blobs",
    "get_album_art_path",
    "get_batch_cover_paths",
    "get_track_cover_path",
    "migrate_covers_to_files",
    "sync_cover_paths_from_files",
]
