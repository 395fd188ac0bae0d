"""Tests for library scanning end to end."""

import base64
import os
import sqlite3
import sys
from unittest.mock import patch

import pytest

from music_index.core import database
from music_index.core.config import Config
from music_index.core.database import get_db_connection
from music_index.domain.library.scanner import scan_library, scan_music_library
from music_index.domain.library.writer import IndexWriter

from conftest import JPEG_BYTES, PNG_BYTES


def _rows(sql, params=()):
    with get_db_connection() as conn:
        return [dict(row) for row in conn.execute(sql, params).fetchall()]


class TestScanLibrary:
    """Tests for scan_library."""

    @pytest.fixture
    def root(self, tmp_path, make_mp3):
        root = tmp_path / "root"
        make_mp3(root / "a.mp3", title="Song", artist="X", album="Y")
        (root / "b.xyz").write_bytes(b"\x00\x01 not an audio container")
        return root

    def test_mixed_directory(self, db, root):
        result = scan_library([str(root)])

        tracks = {r["path"]: r for r in _rows("SELECT * FROM tracks")}
        albums = _rows("SELECT * FROM albums")
        a_path = str((root / "a.mp3").absolute())
        b_path = str((root / "b.xyz").absolute())

        assert len(tracks) == 2
        assert result.tracks_added == 2
        assert result.tracks_updated == 0

        assert len(albums) == 1
        assert albums[0]["name"] == "Y"
        assert albums[0]["artist"] == "X"
        referencing = [p for p, t in tracks.items() if t["album_id"] == albums[0]["id"]]
        assert referencing == [a_path]

        b_track = tracks[b_path]
        assert b_track["title"] == "b"
        for column in ("artist", "album", "track_number", "duration", "bitrate", "format", "album_id"):
            assert b_track[column] is None

        assert len(result.errors) == 1
        assert "b.xyz" in result.errors[0]

    def test_rescan_is_idempotent(self, db, root):
        scan_library([str(root)])
        before = _rows("SELECT id, path, title, album_id FROM tracks ORDER BY id")
        albums_before = _rows("SELECT id, name, artist FROM albums ORDER BY id")

        result = scan_library([str(root)])

        assert result.tracks_added == 0
        assert result.tracks_updated == 2
        assert _rows("SELECT id, path, title, album_id FROM tracks ORDER BY id") == before
        assert _rows("SELECT id, name, artist FROM albums ORDER BY id") == albums_before

    def test_first_track_art_wins(self, db, tmp_path, make_mp3):
        root = tmp_path / "art"
        make_mp3(root / "1.mp3", title="One", artist="X", album="A", picture=PNG_BYTES)
        make_mp3(root / "2.mp3", title="Two", artist="X", album="A", picture=JPEG_BYTES)

        scan_library([str(root)])

        albums = _rows("SELECT art_data FROM albums")
        assert len(albums) == 1
        assert base64.b64decode(albums[0]["art_data"]) == PNG_BYTES

        covers = _rows("SELECT path, track_cover FROM tracks ORDER BY path")
        assert base64.b64decode(covers[1]["track_cover"]) == JPEG_BYTES

    def test_missing_root_is_an_error_not_an_abort(self, db, root, tmp_path):
        result = scan_library([str(tmp_path / "missing"), str(root)])

        assert result.tracks_added == 2
        assert any("missing" in e for e in result.errors)

    def test_progress_callback(self, db, root):
        calls = []
        scan_library([str(root)], progress_callback=lambda p, i, n: calls.append((i, n)))
        assert calls == [(1, 2), (2, 2)]

    def test_scan_music_library_uses_configured_paths(self, db, root):
        config = Config()
        config.library.library_paths = [str(root)]

        result = scan_music_library(config)

        assert result.tracks_processed == 2

    def test_lock_timeout_aborts_scan(self, db, root, monkeypatch):
        class BusyLock:
            def acquire(self, timeout=-1):
                return False

            def release(self):
                pass

        monkeypatch.setattr(database, "_db_lock", BusyLock())

        with pytest.raises(database.DatabaseLockError):
            scan_library([str(root)])


class TestScanFailuresPerFile:
    """One file that cannot be stored never stops the rest of the scan."""

    @pytest.mark.skipif(
        sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names"
    )
    def test_undecodable_file_name_is_reported(self, db, tmp_path, make_mp3):
        root = tmp_path / "names"
        make_mp3(root / "good.mp3", title="Good", artist="X", album="Y")
        with open(os.fsencode(root) + b"/\xff\xfe.mp3", "wb") as f:
            f.write(b"x")

        result = scan_library([str(root)])

        assert result.tracks_added == 1
        assert len(result.errors) == 1
        assert "\\xff\\xfe.mp3" in result.errors[0]
        assert [r["title"] for r in _rows("SELECT title FROM tracks")] == ["Good"]

    def test_database_error_on_one_track(self, db, tmp_path, make_mp3):
        root = tmp_path / "dberror"
        make_mp3(root / "1.mp3", title="One", artist="X", album="Kept")
        make_mp3(root / "2.mp3", title="Two", artist="X", album="Orphan")
        make_mp3(root / "3.mp3", title="Three", artist="X", album="Kept")
        original_upsert = IndexWriter.upsert_track

        def failing_upsert(self, record):
            if record.path.endswith("2.mp3"):
                # The album row is written before the track fails
                self.get_or_create_album(record.album, record.artist)
                raise sqlite3.IntegrityError("constraint failed")
            return original_upsert(self, record)

        with patch.object(IndexWriter, "upsert_track", failing_upsert):
            result = scan_library([str(root)])

        assert result.tracks_added == 2
        assert len(result.errors) == 1
        assert "2.mp3" in result.errors[0]
        assert sorted(r["title"] for r in _rows("SELECT title FROM tracks")) == ["One", "Three"]
        assert [r["name"] for r in _rows("SELECT name FROM albums")] == ["Kept"]
