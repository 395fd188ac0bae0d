"""
Playlist management for Music Index
"""

from typing import Any, Dict, List

from loguru import logger

from music_index.core.database import ensure_database, get_db_connection


def _validate_name(name: str) -> str:
    name = name.strip() if name else ""
    if not name:
        raise ValueError("Playlist name cannot be empty")
    return name


def create_playlist(name: str) -> int:
    """
    Create a new playlist.

    Args:
        name: Playlist name

    Returns:
        Playlist ID

    Raises:
        ValueError: If the name is empty
    """
    name = _validate_name(name)
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute("INSERT INTO playlists (name) VALUES (?)", (name,))
        conn.commit()
        logger.info(f"Created playlist {cursor.lastrowid}: {name!r}")
        return cursor.lastrowid


def get_all_playlists() -> List[Dict[str, Any]]:
    """Get all playlists ordered by name, with their track counts."""
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute("""
            SELECT p.id, p.name, p.created_at, COUNT(pt.id) AS track_count
            FROM playlists p
            LEFT JOIN playlist_tracks pt ON pt.playlist_id = p.id
            GROUP BY p.id
            ORDER BY p.name
        """)
        return [dict(row) for row in cursor.fetchall()]


def rename_playlist(playlist_id: int, new_name: str) -> bool:
    """
    Rename a playlist.

    Returns:
        True if renamed, False if playlist not found

    Raises:
        ValueError: If the new name is empty
    """
    new_name = _validate_name(new_name)
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            "UPDATE playlists SET name = ? WHERE id = ?", (new_name, playlist_id)
        )
        conn.commit()
        return cursor.rowcount > 0


def delete_playlist(playlist_id: int) -> bool:
    """
    Delete a playlist and its memberships.

    Returns:
        True if playlist was deleted, False if not found
    """
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute("DELETE FROM playlists WHERE id = ?", (playlist_id,))
        conn.commit()
        return cursor.rowcount > 0


def get_playlist_tracks(playlist_id: int) -> List[Dict[str, Any]]:
    """Get tracks in a playlist in insertion order."""
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            """
            SELECT t.id, t.path, t.title, t.artist, t.album, t.track_number,
                   t.duration, t.album_id, pt.position
            FROM tracks t
            INNER JOIN playlist_tracks pt ON t.id = pt.track_id
            WHERE pt.playlist_id = ?
            ORDER BY pt.position
        """,
            (playlist_id,),
        )
        return [dict(row) for row in cursor.fetchall()]


def add_track_to_playlist(playlist_id: int, track_id: int) -> bool:
    """
    Append a track to a playlist.

    The new position is the playlist's current maximum + 1. Adding a track
    that is already in the playlist changes nothing.

    Returns:
        True if added, False if the track was already in the playlist

    Raises:
        sqlite3.IntegrityError: If the playlist or track does not exist
    """
    ensure_database()
    with get_db_connection() as conn:
        position = conn.execute(
            """
            SELECT COALESCE(MAX(position), 0) + 1 AS next_position
            FROM playlist_tracks WHERE playlist_id = ?
        """,
            (playlist_id,),
        ).fetchone()["next_position"]

        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO playlist_tracks (playlist_id, track_id, position)
            VALUES (?, ?, ?)
        """,
            (playlist_id, track_id, position),
        )
        conn.commit()
        return cursor.rowcount > 0


def remove_track_from_playlist(playlist_id: int, track_id: int) -> bool:
    """
    Remove a track from a playlist.

    Returns:
        True if removed, False if it was not in the playlist
    """
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM playlist_tracks WHERE playlist_id = ? AND track_id = ?",
            (playlist_id, track_id),
        )
        conn.commit()
        return cursor.rowcount > 0
