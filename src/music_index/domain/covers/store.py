"""
Cover store batch operations.

Moves inline base64 covers to files, reconciles file paths back into the
index, removes orphaned files and clears redundant inline blobs. Every
operation visits all remaining items after a failure and reports errors
in its result instead of raising.
"""

import os
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from loguru import logger

from music_index.core.config import Config, get_covers_dir
from music_index.core.database import ensure_database, get_db_connection

from .storage import (
    get_albums_dir,
    get_tracks_dir,
    is_cover_file,
    parse_cover_id,
    save_album_art_from_base64,
    save_track_cover_from_base64,
)

# SQLite's default limit on host parameters is 999
BATCH_SIZE = 500


@dataclass
class CoverMigrationResult:
    """Aggregate result of migrate_covers_to_files / sync_cover_paths_from_files."""

    total: int = 0
    processed: int = 0
    tracks_migrated: int = 0
    albums_migrated: int = 0
    errors: List[str] = field(default_factory=list)


def _resolve_covers_root(covers_root: Optional[Path], config: Optional[Config]) -> Path:
    return Path(covers_root) if covers_root else get_covers_dir(config)


def _record_error(result: CoverMigrationResult, message: str) -> None:
    logger.warning(message)
    result.errors.append(message)


def migrate_covers_to_files(
    covers_root: Optional[Path] = None, config: Optional[Config] = None
) -> CoverMigrationResult:
    """Write every inline cover that has no file yet to the cover store.

    Rows that already have a path, or have no inline data, are counted as
    processed and skipped, so running this twice migrates nothing new.
    """
    root = _resolve_covers_root(covers_root, config)
    result = CoverMigrationResult()
    start = time.monotonic()

    ensure_database()
    logger.info(f"Starting cover migration into {root}")

    with get_db_connection() as conn:
        tracks = conn.execute("""
            SELECT id, track_cover IS NOT NULL AS has_blob, track_cover_path
            FROM tracks ORDER BY id
        """).fetchall()
        albums = conn.execute("""
            SELECT id, name, art_data IS NOT NULL AS has_blob, art_path
            FROM albums ORDER BY id
        """).fetchall()
        result.total = len(tracks) + len(albums)

        for track in tracks:
            result.processed += 1
            if not track["has_blob"]:
                continue
            if track["track_cover_path"] is not None:
                logger.debug(f"Track {track['id']} already has a cover path, skipping")
                continue

            track_id = track["id"]
            try:
                blob = conn.execute(
                    "SELECT track_cover FROM tracks WHERE id = ?", (track_id,)
                ).fetchone()["track_cover"]
                path = save_track_cover_from_base64(track_id, blob, root)
            except (ValueError, OSError) as e:
                _record_error(result, f"Failed to save track {track_id} cover: {e}")
                continue

            try:
                conn.execute(
                    "UPDATE tracks SET track_cover_path = ? WHERE id = ?",
                    (path, track_id),
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                _record_error(result, f"Failed to update track {track_id} path: {e}")
                continue

            result.tracks_migrated += 1

        for album in albums:
            result.processed += 1
            if not album["has_blob"]:
                continue
            if album["art_path"] is not None:
                logger.debug(f"Album {album['id']} already has an art path, skipping")
                continue

            album_id = album["id"]
            try:
                blob = conn.execute(
                    "SELECT art_data FROM albums WHERE id = ?", (album_id,)
                ).fetchone()["art_data"]
                path = save_album_art_from_base64(album_id, blob, root)
            except (ValueError, OSError) as e:
                _record_error(result, f"Failed to save album {album_id} art: {e}")
                continue

            try:
                conn.execute(
                    "UPDATE albums SET art_path = ? WHERE id = ?", (path, album_id)
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                _record_error(result, f"Failed to update album {album_id} path: {e}")
                continue

            result.albums_migrated += 1

    elapsed = time.monotonic() - start
    logger.info(
        f"Cover migration complete in {elapsed:.1f}s - processed: {result.processed}, "
        f"tracks: {result.tracks_migrated}, albums: {result.albums_migrated}, "
        f"errors: {len(result.errors)}"
    )
    return result


def _sync_directory(
    conn: sqlite3.Connection,
    directory: Path,
    table: str,
    path_column: str,
    result: CoverMigrationResult,
) -> int:
    """Point rows at the cover files found in one directory. Returns rows updated."""
    if not directory.is_dir():
        _record_error(result, f"Covers directory does not exist: {directory}")
        return 0

    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        _record_error(result, f"Failed to read {table} directory {directory}: {e}")
        return 0

    synced = 0
    for entry in entries:
        try:
            if not entry.is_file():
                continue
        except OSError as e:
            _record_error(result, f"Cannot stat {entry}: {e}")
            continue

        if not is_cover_file(entry):
            continue
        entity_id = parse_cover_id(entry)
        if entity_id is None:
            logger.debug(f"Ignoring cover file with non-numeric name: {entry}")
            continue

        try:
            cursor = conn.execute(
                f"UPDATE {table} SET {path_column} = ? WHERE id = ?",
                (str(entry.absolute()), entity_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            _record_error(result, f"Failed to update {table} row {entity_id}: {e}")
            continue

        if cursor.rowcount > 0:
            synced += 1
        else:
            logger.debug(f"No {table} row with id {entity_id} for {entry}, ignoring")

    return synced


def sync_cover_paths_from_files(
    covers_root: Optional[Path] = None, config: Optional[Config] = None
) -> CoverMigrationResult:
    """Rebuild cover paths in the index from the files present on disk.

    Files whose id has no matching row are ignored silently. The migrated
    counts in the result are the number of rows whose path was set.
    """
    root = _resolve_covers_root(covers_root, config)
    result = CoverMigrationResult()
    start = time.monotonic()

    ensure_database()
    logger.info(f"Syncing cover paths from {root}")

    with get_db_connection() as conn:
        result.tracks_migrated = _sync_directory(
            conn, get_tracks_dir(root), "tracks", "track_cover_path", result
        )
        result.albums_migrated = _sync_directory(
            conn, get_albums_dir(root), "albums", "art_path", result
        )

    result.total = result.tracks_migrated + result.albums_migrated
    result.processed = result.total

    elapsed = time.monotonic() - start
    logger.info(
        f"Cover sync complete in {elapsed:.1f}s - tracks: {result.tracks_migrated}, "
        f"albums: {result.albums_migrated}, errors: {len(result.errors)}"
    )
    return result


def _referenced_cover_paths(conn: sqlite3.Connection) -> Set[str]:
    referenced = set()
    for row in conn.execute(
        "SELECT track_cover_path AS path FROM tracks WHERE track_cover_path IS NOT NULL "
        "UNION SELECT art_path AS path FROM albums WHERE art_path IS NOT NULL"
    ):
        referenced.add(os.path.abspath(row["path"]))
    return referenced


def cleanup_orphaned_covers(
    covers_root: Optional[Path] = None, config: Optional[Config] = None
) -> int:
    """Delete files in the cover store that no track or album row points at.

    Returns:
        Number of files removed. Files that cannot be removed are logged
        and skipped.
    """
    root = _resolve_covers_root(covers_root, config)
    removed = 0

    ensure_database()

    with get_db_connection() as conn:
        referenced = _referenced_cover_paths(conn)

        for directory in (get_tracks_dir(root), get_albums_dir(root)):
            try:
                if not directory.is_dir():
                    continue
                entries = sorted(directory.iterdir())
            except OSError as e:
                logger.warning(f"Failed to read covers directory {directory}: {e}")
                continue

            for entry in entries:
                try:
                    if not entry.is_file():
                        continue
                except OSError as e:
                    logger.warning(f"Cannot stat {entry}: {e}")
                    continue
                if os.path.abspath(entry) in referenced:
                    continue
                try:
                    entry.unlink()
                except OSError as e:
                    logger.warning(f"Failed to remove orphaned cover {entry}: {e}")
                    continue
                logger.debug(f"Removed orphaned cover {entry}")
                removed += 1

    logger.info(f"Removed {removed} orphaned cover file(s) from {root}")
    return removed


def clear_embedded_blobs(verify_files: bool = True) -> int:
    """Drop inline cover data for rows whose cover has been written to a file.

    This cannot be undone. With verify_files (the default) a row is only
    cleared when its cover path points at an existing file; rows whose file
    is missing keep their inline data.

    Returns:
        Number of rows cleared
    """
    ensure_database()
    cleared = 0

    with get_db_connection() as conn:
        for table, blob_column, path_column in (
            ("tracks", "track_cover", "track_cover_path"),
            ("albums", "art_data", "art_path"),
        ):
            if verify_files:
                rows = conn.execute(
                    f"""
                    SELECT id, {path_column} AS path FROM {table}
                    WHERE {blob_column} IS NOT NULL AND {path_column} IS NOT NULL
                """
                ).fetchall()
                verified = [row["id"] for row in rows if Path(row["path"]).is_file()]
                skipped = len(rows) - len(verified)
                if skipped:
                    logger.warning(
                        f"Keeping inline data for {skipped} {table} row(s) whose cover file is missing"
                    )
                for chunk in _chunks(verified, BATCH_SIZE):
                    placeholders = ",".join("?" * len(chunk))
                    cursor = conn.execute(
                        f"UPDATE {table} SET {blob_column} = NULL WHERE id IN ({placeholders})",
                        chunk,
                    )
                    cleared += cursor.rowcount
            else:
                cursor = conn.execute(
                    f"""
                    UPDATE {table} SET {blob_column} = NULL
                    WHERE {path_column} IS NOT NULL AND {blob_column} IS NOT NULL
                """
                )
                cleared += cursor.rowcount

        conn.commit()

    logger.info(f"Cleared {cleared} inline cover blob(s)")
    return cleared


def _chunks(items: List[int], size: int) -> Iterable[List[int]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def get_batch_cover_paths(track_ids: List[int]) -> Dict[int, str]:
    """Map track ids to a cover file path.

    A track's own cover file is preferred; otherwise its album's art file is
    used. Tracks with neither are absent from the result.
    """
    if not track_ids:
        return {}

    ensure_database()
    paths: Dict[int, str] = {}
    unique_ids = list(dict.fromkeys(track_ids))

    with get_db_connection() as conn:
        for chunk in _chunks(unique_ids, BATCH_SIZE):
            placeholders = ",".join("?" * len(chunk))
            cursor = conn.execute(
                f"""
                SELECT t.id, COALESCE(t.track_cover_path, a.art_path) AS path
                FROM tracks t
                LEFT JOIN albums a ON a.id = t.album_id
                WHERE t.id IN ({placeholders})
            """,
                chunk,
            )
            for row in cursor.fetchall():
                if row["path"]:
                    paths[row["id"]] = row["path"]

    return paths


def get_track_cover_path(track_id: int) -> Optional[str]:
    """Get a single track's cover path (own cover, else album art)."""
    return get_batch_cover_paths([track_id]).get(track_id)


def get_album_art_path(album_id: int) -> Optional[str]:
    ensure_database()
    with get_db_connection() as conn:
        row = conn.execute(
            "SELECT art_path FROM albums WHERE id = ?", (album_id,)
        ).fetchone()
        return row["art_path"] if row else None
