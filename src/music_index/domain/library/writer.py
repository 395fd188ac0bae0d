"""
Index writer: album get-or-create and track upsert.

Two merge policies coexist on this path and are passed in explicitly:
album art is first-writer-wins, track fields are last-write-wins.
"""

import sqlite3
from typing import Optional

from loguru import logger

from .models import MergePolicy, TrackRecord

_TRACK_FIELDS = (
    "title",
    "artist",
    "album",
    "track_number",
    "duration",
    "bitrate",
    "format",
    "album_id",
)


def _track_conflict_clause(policy: MergePolicy) -> str:
    if policy is MergePolicy.LAST_WRITE_WINS:
        assignments = [f"{name} = excluded.{name}" for name in _TRACK_FIELDS]
    else:
        assignments = [
            f"{name} = COALESCE(tracks.{name}, excluded.{name})" for name in _TRACK_FIELDS
        ]
    assignments.append("updated_at = CURRENT_TIMESTAMP")
    return ",\n                ".join(assignments)


class IndexWriter:
    """Writes extracted TrackRecords into the store through one connection.

    The caller owns the connection (and therefore the store lock) and
    decides when to commit.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        album_art_policy: MergePolicy = MergePolicy.FIRST_WRITER_WINS,
        track_fields_policy: MergePolicy = MergePolicy.LAST_WRITE_WINS,
    ) -> None:
        self.conn = conn
        self.album_art_policy = album_art_policy
        self.track_fields_policy = track_fields_policy
        self._upsert_sql = f"""
            INSERT INTO tracks (path, title, artist, album, track_number, duration,
                                bitrate, format, album_id, track_cover)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                {_track_conflict_clause(track_fields_policy)}
        """

    def find_album(self, name: str, artist: Optional[str]) -> Optional[int]:
        """Find an album by exact (name, artist); a missing artist only matches a missing artist."""
        if artist is None:
            row = self.conn.execute(
                "SELECT id FROM albums WHERE name = ? AND artist IS NULL ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()
        else:
            row = self.conn.execute(
                "SELECT id FROM albums WHERE name = ? AND artist = ? ORDER BY id LIMIT 1",
                (name, artist),
            ).fetchone()
        return row["id"] if row else None

    def get_or_create_album(
        self, name: str, artist: Optional[str], art_data: Optional[str] = None
    ) -> int:
        """Resolve the album for (name, artist), creating it on first sight."""
        album_id = self.find_album(name, artist)

        if album_id is not None:
            if art_data:
                self._merge_album_art(album_id, art_data)
            return album_id

        cursor = self.conn.execute(
            "INSERT INTO albums (name, artist, art_data) VALUES (?, ?, ?)",
            (name, artist, art_data),
        )
        logger.debug(f"Created album {cursor.lastrowid}: {name!r} by {artist!r}")
        return cursor.lastrowid

    def _merge_album_art(self, album_id: int, art_data: str) -> None:
        if self.album_art_policy is MergePolicy.FIRST_WRITER_WINS:
            # An album that already has art (inline or migrated to a file) keeps it
            self.conn.execute(
                """
                UPDATE albums SET art_data = ?
                WHERE id = ? AND art_data IS NULL AND art_path IS NULL
                """,
                (art_data, album_id),
            )
        else:
            self.conn.execute(
                "UPDATE albums SET art_data = ? WHERE id = ?",
                (art_data, album_id),
            )

    def track_exists(self, path: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM tracks WHERE path = ?", (path,)
        ).fetchone()
        return row is not None

    def upsert_track(self, record: TrackRecord) -> int:
        """Insert or update one track keyed by path.

        Returns:
            The track id
        """
        album_id = None
        if record.album:
            album_id = self.get_or_create_album(
                record.album, record.artist, record.album_art
            )

        # track_cover is only set on insert; a rescan never touches cover fields
        self.conn.execute(
            self._upsert_sql,
            (
                record.path,
                record.title,
                record.artist,
                record.album,
                record.track_number,
                record.duration,
                record.bitrate,
                record.format,
                album_id,
                record.album_art,
            ),
        )

        row = self.conn.execute(
            "SELECT id FROM tracks WHERE path = ?", (record.path,)
        ).fetchone()
        return row["id"]

    def write(self, record: TrackRecord) -> bool:
        """Upsert one record and commit it.

        Returns:
            True if the track was inserted, False if an existing row was updated

        Raises:
            sqlite3.Error: After rolling back this record's changes
            UnicodeEncodeError: A value (usually an undecodable file name)
                cannot be stored as UTF-8; also rolled back
        """
        try:
            existed = self.track_exists(record.path)
            self.upsert_track(record)
            self.conn.commit()
        except (sqlite3.Error, UnicodeEncodeError):
            self.conn.rollback()
            raise
        return not existed
