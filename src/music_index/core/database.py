"""
SQLite database operations for Music Index
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Set

from loguru import logger

from .config import get_data_dir

# Database schema version for migrations
SCHEMA_VERSION = 2

DEFAULT_LOCK_TIMEOUT = 30.0

# Single logical writer: every read or write in this process goes through this lock
_db_lock = threading.RLock()
_lock_timeout = DEFAULT_LOCK_TIMEOUT

_initialized_paths: Set[Path] = set()


class DatabaseUnavailableError(RuntimeError):
    """The database file could not be opened or prepared."""


class DatabaseLockError(RuntimeError):
    """The store lock could not be acquired in time."""


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return get_data_dir() / "library.db"


def set_lock_timeout(seconds: float) -> None:
    """Set how long get_db_connection() waits for the store lock."""
    global _lock_timeout
    if seconds <= 0:
        raise ValueError(f"Lock timeout must be positive, got {seconds}")
    _lock_timeout = seconds


@contextmanager
def get_db_connection() -> Iterator[sqlite3.Connection]:
    """Get a database connection while holding the store lock.

    Raises:
        DatabaseLockError: If the lock is not acquired within the timeout
        DatabaseUnavailableError: If the database cannot be opened
    """
    if not _db_lock.acquire(timeout=_lock_timeout):
        raise DatabaseLockError(
            f"Could not acquire database lock within {_lock_timeout:.1f}s"
        )

    try:
        db_path = get_database_path()
        conn = None
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(db_path, timeout=_lock_timeout)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise DatabaseUnavailableError(
                f"Cannot open database at {db_path}: {e}"
            ) from e

        try:
            yield conn
        finally:
            conn.close()
    finally:
        _db_lock.release()


def _add_column(conn: sqlite3.Connection, table: str, definition: str) -> None:
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {definition}")
    except sqlite3.OperationalError as e:
        if "duplicate column name" not in str(e).lower():
            raise


def migrate_database(conn: sqlite3.Connection, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 2:
        # v1 -> v2: cover art moves from inline blobs to files on disk.
        # The inline columns stay as the legacy source for migration.
        _add_column(conn, "tracks", "track_cover TEXT")
        _add_column(conn, "tracks", "track_cover_path TEXT")
        _add_column(conn, "albums", "art_path TEXT")

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_cover_path ON tracks (track_cover_path)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_albums_art_path ON albums (art_path)"
        )

        conn.commit()


def init_database() -> None:
    """Initialize the database with required tables."""
    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS albums (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                artist TEXT,
                art_data TEXT -- base64 image, legacy inline storage
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL UNIQUE,
                title TEXT,
                artist TEXT,
                album TEXT,
                track_number INTEGER,
                duration INTEGER, -- whole seconds
                bitrate INTEGER, -- kbps
                format TEXT,
                album_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (album_id) REFERENCES albums (id) ON DELETE SET NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS playlists (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS playlist_tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                playlist_id INTEGER NOT NULL,
                track_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (playlist_id) REFERENCES playlists (id) ON DELETE CASCADE,
                FOREIGN KEY (track_id) REFERENCES tracks (id) ON DELETE CASCADE,
                UNIQUE (playlist_id, track_id)
            )
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_tracks_artist ON tracks (artist)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_album_id ON tracks (album_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_albums_name_artist ON albums (name, artist)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_playlist_tracks_playlist_id ON playlist_tracks (playlist_id, position)"
        )

        cursor = conn.execute("SELECT MAX(version) as version FROM schema_version")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] else 0
        cursor.close()

        if current_version < SCHEMA_VERSION:
            logger.info(
                f"Migrating database schema from v{current_version} to v{SCHEMA_VERSION}"
            )
            migrate_database(conn, current_version)

        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )

        conn.commit()

    _initialized_paths.add(get_database_path())


def ensure_database() -> None:
    """Initialize the database once per database file for this process."""
    if get_database_path() not in _initialized_paths:
        init_database()


def get_schema_version() -> Optional[int]:
    """Get the schema version recorded in the database."""
    with get_db_connection() as conn:
        try:
            row = conn.execute(
                "SELECT MAX(version) as version FROM schema_version"
            ).fetchone()
        except sqlite3.OperationalError:
            return None
        return row["version"] if row else None
