"""Tests for directory walking."""

import os
import sys
from pathlib import Path

import pytest

from music_index.core.config import LibraryConfig
from music_index.domain.library.walker import (
    display_path,
    is_audio_candidate,
    is_storable_path,
    scan_directory,
)

SUPPORTED = {".mp3", ".flac"}
IGNORED = {".jpg", ".txt"}


class TestIsAudioCandidate:
    """Tests for is_audio_candidate."""

    def test_supported_extension(self):
        assert is_audio_candidate(Path("/m/song.MP3"), SUPPORTED, IGNORED)

    def test_ignored_extension(self):
        assert not is_audio_candidate(Path("/m/cover.jpg"), SUPPORTED, IGNORED)

    def test_hidden_file(self):
        assert not is_audio_candidate(Path("/m/.song.mp3"), SUPPORTED, IGNORED)

    def test_unknown_extension_is_candidate(self):
        """Unknown files go to the extractor, which reports whether they parse."""
        assert is_audio_candidate(Path("/m/b.xyz"), SUPPORTED, IGNORED)


class TestScanDirectory:
    """Tests for scan_directory."""

    @pytest.fixture
    def library_tree(self, tmp_path):
        root = tmp_path / "music"
        (root / "Artist" / "Album").mkdir(parents=True)
        (root / ".hidden").mkdir()
        (root / "a.mp3").write_bytes(b"x")
        (root / "b.xyz").write_bytes(b"x")
        (root / "cover.jpg").write_bytes(b"x")
        (root / "Artist" / "Album" / "01.flac").write_bytes(b"x")
        (root / ".hidden" / "secret.mp3").write_bytes(b"x")
        return root

    def test_collects_candidates_recursively(self, library_tree):
        result = scan_directory(str(library_tree), LibraryConfig())

        names = sorted(Path(p).name for p in result.audio_files)
        assert names == ["01.flac", "a.mp3", "b.xyz"]
        assert result.errors == []
        assert all(os.path.isabs(p) for p in result.audio_files)

    def test_non_recursive(self, library_tree):
        config = LibraryConfig(scan_recursive=False)
        result = scan_directory(str(library_tree), config)

        names = sorted(Path(p).name for p in result.audio_files)
        assert names == ["a.mp3", "b.xyz"]

    def test_missing_root_is_reported(self, tmp_path):
        result = scan_directory(str(tmp_path / "nope"), LibraryConfig())

        assert result.audio_files == []
        assert len(result.errors) == 1
        assert "nope" in result.errors[0]

    def test_single_file_root(self, library_tree):
        result = scan_directory(str(library_tree / "a.mp3"), LibraryConfig())
        assert result.audio_files == [str((library_tree / "a.mp3").absolute())]

    def test_broken_symlink_is_reported(self, library_tree):
        (library_tree / "dangling.mp3").symlink_to(library_tree / "missing.mp3")

        result = scan_directory(str(library_tree), LibraryConfig())

        assert any("dangling.mp3" in e for e in result.errors)
        assert not any(p.endswith("dangling.mp3") for p in result.audio_files)

    @pytest.mark.skipif(
        sys.platform == "win32" or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_unreadable_directory_is_reported(self, library_tree):
        locked = library_tree / "locked"
        locked.mkdir()
        (locked / "c.mp3").write_bytes(b"x")
        locked.chmod(0)
        try:
            result = scan_directory(str(library_tree), LibraryConfig())
        finally:
            locked.chmod(0o755)

        assert any("locked" in e for e in result.errors)
        assert len(result.audio_files) == 3


class TestUndecodableNames:
    """File names that are not valid UTF-8."""

    def test_is_storable_path(self):
        assert is_storable_path("/m/Café.mp3")
        assert not is_storable_path("/m/\udcff.mp3")

    def test_display_path_escapes_bytes(self):
        assert display_path("/m/\udcff\udcfe.mp3") == "/m/\\xff\\xfe.mp3"
        assert display_path("/m/Café.mp3") == "/m/Café.mp3"

    @pytest.mark.skipif(
        sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names"
    )
    def test_undecodable_name_is_reported_not_collected(self, tmp_path):
        root = tmp_path / "music"
        root.mkdir()
        (root / "good.mp3").write_bytes(b"x")
        with open(os.fsencode(root) + b"/\xff\xfe.mp3", "wb") as f:
            f.write(b"x")

        result = scan_directory(str(root), LibraryConfig())

        assert [Path(p).name for p in result.audio_files] == ["good.mp3"]
        assert result.errors == [f"Undecodable file name: {root}/\\xff\\xfe.mp3"]
