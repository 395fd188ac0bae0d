"""Shared fixtures: an isolated data directory per test and audio file builders."""

from pathlib import Path
from typing import Optional

import pytest
from mutagen.id3 import APIC, ID3, TALB, TIT2, TPE1, TRCK

from music_index.core import database

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417 bytes per frame
MP3_FRAME = b"\xff\xfb\x90\x64" + b"\x00" * 413

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x01" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF" + b"\x02" * 16


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point XDG data/config homes at a per-test directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("MUSIC_INDEX_LIBRARY_PATHS", raising=False)
    monkeypatch.delenv("MUSIC_INDEX_COVERS_DIR", raising=False)
    monkeypatch.setattr(database, "_lock_timeout", database.DEFAULT_LOCK_TIMEOUT)
    yield tmp_path


@pytest.fixture
def db(isolated_dirs):
    """Initialized store in the isolated data directory."""
    database.init_database()
    return database.get_database_path()


@pytest.fixture
def covers_root(tmp_path):
    root = tmp_path / "covers"
    (root / "tracks").mkdir(parents=True)
    (root / "albums").mkdir(parents=True)
    return root


@pytest.fixture
def make_mp3():
    """Factory writing a small valid MP3 with optional ID3 tags."""

    def _make(
        path: Path,
        title: Optional[str] = None,
        artist: Optional[str] = None,
        album: Optional[str] = None,
        track: Optional[str] = None,
        picture: Optional[bytes] = None,
        frames: int = 20,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(MP3_FRAME * frames)

        tags = ID3()
        if title is not None:
            tags.add(TIT2(encoding=3, text=title))
        if artist is not None:
            tags.add(TPE1(encoding=3, text=artist))
        if album is not None:
            tags.add(TALB(encoding=3, text=album))
        if track is not None:
            tags.add(TRCK(encoding=3, text=track))
        if picture is not None:
            tags.add(
                APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=picture)
            )
        if len(tags):
            tags.save(str(path))
        return path

    return _make
