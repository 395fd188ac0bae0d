"""
Cover file storage.

Covers live under a single root:
    <covers_root>/tracks/<track_id>.<ext>
    <covers_root>/albums/<album_id>.<ext>
File names are the numeric id of the owning row.
"""

import base64
import binascii
import os
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from music_index.core.config import get_covers_dir

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
TRACKS_SUBDIR = "tracks"
ALBUMS_SUBDIR = "albums"

_DIGITS = re.compile(r"[0-9]+")


def get_tracks_dir(covers_root: Path) -> Path:
    return Path(covers_root) / TRACKS_SUBDIR


def get_albums_dir(covers_root: Path) -> Path:
    return Path(covers_root) / ALBUMS_SUBDIR


def detect_image_extension(data: bytes) -> str:
    """Guess the file extension from magic bytes; unknown data is stored as jpg."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return "jpg"


def is_cover_file(path: Path) -> bool:
    """True for files with a recognized image extension (case-insensitive)."""
    return path.suffix[1:].lower() in IMAGE_EXTENSIONS


def parse_cover_id(path: Path) -> Optional[int]:
    """Parse the owning row id from a cover file name.

    Only plain ASCII digit stems with a value above zero are accepted;
    anything else ("01a", "-3", " 7", "0") returns None.
    """
    stem = path.stem
    if not _DIGITS.fullmatch(stem):
        return None
    entity_id = int(stem)
    return entity_id if entity_id > 0 else None


def decode_cover(data: str) -> bytes:
    """Decode a base64 cover blob.

    Raises:
        ValueError: If the blob is empty or not valid base64
    """
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 cover data: {e}") from e
    if not raw:
        raise ValueError("empty cover data")
    return raw


def write_cover_file(directory: Path, entity_id: int, raw: bytes) -> str:
    """Write cover bytes to <directory>/<entity_id>.<ext> atomically.

    Returns:
        Absolute path of the written file

    Raises:
        OSError: If the directory or file cannot be written
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    ext = detect_image_extension(raw)
    final_path = (directory / f"{entity_id}.{ext}").absolute()
    temp_path = final_path.with_name(final_path.name + ".tmp")

    try:
        with open(temp_path, "wb") as f:
            f.write(raw)
        os.replace(temp_path, final_path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise

    # A cover saved earlier under another extension would shadow this one on sync
    for other_ext in IMAGE_EXTENSIONS - {ext}:
        stale = directory / f"{entity_id}.{other_ext}"
        if stale.exists():
            logger.debug(f"Removing stale cover {stale}")
            stale.unlink()

    return str(final_path)


def save_track_cover_from_base64(
    track_id: int, data: str, covers_root: Optional[Path] = None
) -> str:
    """Decode a track's inline cover and write it to the tracks directory."""
    covers_root = covers_root or get_covers_dir()
    return write_cover_file(get_tracks_dir(covers_root), track_id, decode_cover(data))


def save_album_art_from_base64(
    album_id: int, data: str, covers_root: Optional[Path] = None
) -> str:
    """Decode an album's inline art and write it to the albums directory."""
    covers_root = covers_root or get_covers_dir()
    return write_cover_file(get_albums_dir(covers_root), album_id, decode_cover(data))
