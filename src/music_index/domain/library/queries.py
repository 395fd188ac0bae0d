"""
Read-side library queries: tracks, albums and the derived artist aggregate.
"""

from typing import Any, Dict, List, Optional

from music_index.core.database import ensure_database, get_db_connection

TRACK_COLUMNS = """
    id, path, title, artist, album, track_number, duration, bitrate, format,
    album_id, track_cover_path
"""

ALBUM_COLUMNS = "id, name, artist, art_data, art_path"


def get_all_tracks() -> List[Dict[str, Any]]:
    """Get all tracks ordered by artist, album, track number and title."""
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(f"""
            SELECT {TRACK_COLUMNS} FROM tracks
            ORDER BY artist, album, track_number, title
        """)
        return [dict(row) for row in cursor.fetchall()]


def get_track_by_path(path: str) -> Optional[Dict[str, Any]]:
    """Get track information by file path."""
    ensure_database()
    with get_db_connection() as conn:
        row = conn.execute(
            f"SELECT {TRACK_COLUMNS} FROM tracks WHERE path = ?", (path,)
        ).fetchone()
        return dict(row) if row else None


def get_track_by_id(track_id: int) -> Optional[Dict[str, Any]]:
    """Get track information by ID."""
    ensure_database()
    with get_db_connection() as conn:
        row = conn.execute(
            f"SELECT {TRACK_COLUMNS} FROM tracks WHERE id = ?", (track_id,)
        ).fetchone()
        return dict(row) if row else None


def get_all_albums() -> List[Dict[str, Any]]:
    """Get all albums ordered by artist and name."""
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            f"SELECT {ALBUM_COLUMNS} FROM albums ORDER BY artist, name"
        )
        return [dict(row) for row in cursor.fetchall()]


def get_album_by_id(album_id: int) -> Optional[Dict[str, Any]]:
    ensure_database()
    with get_db_connection() as conn:
        row = conn.execute(
            f"SELECT {ALBUM_COLUMNS} FROM albums WHERE id = ?", (album_id,)
        ).fetchone()
        return dict(row) if row else None


def get_all_artists() -> List[Dict[str, Any]]:
    """Artists are not stored; they are grouped from tracks on demand.

    Returns:
        List of {name, track_count, album_count} ordered by name
    """
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute("""
            SELECT artist AS name,
                   COUNT(*) AS track_count,
                   COUNT(DISTINCT album) AS album_count
            FROM tracks
            WHERE artist IS NOT NULL
            GROUP BY artist
            ORDER BY artist
        """)
        return [dict(row) for row in cursor.fetchall()]


def get_tracks_by_album(album_id: int) -> List[Dict[str, Any]]:
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            f"""
            SELECT {TRACK_COLUMNS} FROM tracks
            WHERE album_id = ?
            ORDER BY track_number, title
        """,
            (album_id,),
        )
        return [dict(row) for row in cursor.fetchall()]


def get_tracks_by_artist(artist: str) -> List[Dict[str, Any]]:
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            f"""
            SELECT {TRACK_COLUMNS} FROM tracks
            WHERE artist = ?
            ORDER BY album, track_number, title
        """,
            (artist,),
        )
        return [dict(row) for row in cursor.fetchall()]


def get_albums_by_artist(artist: str) -> List[Dict[str, Any]]:
    """Albums that contain at least one track by the given artist."""
    ensure_database()
    with get_db_connection() as conn:
        cursor = conn.execute(
            """
            SELECT DISTINCT a.id, a.name, a.artist, a.art_data, a.art_path
            FROM albums a
            INNER JOIN tracks t ON t.album_id = a.id
            WHERE t.artist = ?
            ORDER BY a.name
        """,
            (artist,),
        )
        return [dict(row) for row in cursor.fetchall()]


def get_library() -> Dict[str, List[Dict[str, Any]]]:
    """Get tracks, albums and artists in one call."""
    return {
        "tracks": get_all_tracks(),
        "albums": get_all_albums(),
        "artists": get_all_artists(),
    }


def get_library_stats() -> Dict[str, Any]:
    """Get statistics about the indexed library and cover storage."""
    ensure_database()
    with get_db_connection() as conn:
        tracks = conn.execute("""
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(duration), 0) AS total_duration,
                   COUNT(DISTINCT artist) AS artists,
                   SUM(CASE WHEN track_cover IS NOT NULL THEN 1 ELSE 0 END) AS with_blob,
                   SUM(CASE WHEN track_cover_path IS NOT NULL THEN 1 ELSE 0 END) AS with_path
            FROM tracks
        """).fetchone()
        albums = conn.execute("""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN art_data IS NOT NULL THEN 1 ELSE 0 END) AS with_blob,
                   SUM(CASE WHEN art_path IS NOT NULL THEN 1 ELSE 0 END) AS with_path
            FROM albums
        """).fetchone()

    return {
        "total_tracks": tracks["total"],
        "total_duration": tracks["total_duration"],
        "artists": tracks["artists"],
        "albums": albums["total"],
        "track_covers_inline": tracks["with_blob"] or 0,
        "track_covers_on_disk": tracks["with_path"] or 0,
        "album_art_inline": albums["with_blob"] or 0,
        "album_art_on_disk": albums["with_path"] or 0,
    }
