"""
Audio metadata extraction.

Reads tags from audio containers using Mutagen and normalizes them into
TrackRecord objects. Extraction never raises: an unreadable file degrades
to a record carrying only the filename-derived title.
"""

import base64
import re
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError
from mutagen.apev2 import APEv2
from mutagen.flac import Picture

from .models import TrackRecord

TITLE_TAGS = ["TIT2", "\xa9nam", "TITLE", "title", "Title"]
ARTIST_TAGS = ["TPE1", "\xa9ART", "ARTIST", "artist", "Artist", "Author"]
ALBUM_TAGS = ["TALB", "\xa9alb", "ALBUM", "album", "Album", "WM/AlbumTitle"]
TRACK_NUMBER_TAGS = ["TRCK", "trkn", "TRACKNUMBER", "tracknumber", "Track", "WM/TrackNumber"]

_LEADING_INT = re.compile(r"\s*(\d+)")


def _text_of(value: Any) -> Optional[str]:
    """Flatten a tag value (frame, list, APE value) to its first string."""
    if value is None:
        return None
    # ID3 text frames keep their values in .text
    if hasattr(value, "text") and isinstance(value.text, list):
        value = value.text
    if isinstance(value, list):
        if not value:
            return None
        value = value[0]
    if isinstance(value, tuple):
        # MP4 trkn/disk atoms: (number, total)
        value = value[0] if value else None
        if value is None:
            return None
    text = str(value).strip()
    return text or None


def get_tag_value(tags: Any, tag_names: list[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    for tag_name in tag_names:
        try:
            value = tags.get(tag_name)
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for invalid keys
            continue
        text = _text_of(value)
        if text:
            return text
    return None


def parse_track_number(raw: Optional[str]) -> Optional[int]:
    """Parse "3", "03" or "3/12" into a positive int, otherwise None."""
    if not raw:
        return None
    match = _LEADING_INT.match(raw)
    if not match:
        return None
    number = int(match.group(1))
    return number if number > 0 else None


def get_filename_title(path: str) -> str:
    """Filename without its extension."""
    return Path(path).stem


def _select_tag_block(audio_file: Any, path: str) -> Optional[Any]:
    """Pick the primary tag block, falling back to the first other block found.

    Mutagen exposes the container's native tags as ``audio_file.tags``. Files
    without them may still carry an APEv2 block (common on MP3 and WavPack).
    """
    tags = getattr(audio_file, "tags", None)
    if tags is not None and len(tags.keys()) > 0:
        return tags

    try:
        ape = APEv2(path)
    except (MutagenError, OSError, ValueError):
        ape = None
    if ape is not None and len(ape.keys()) > 0:
        return ape

    return tags


def _first_picture(audio_file: Any, tags: Any) -> Optional[bytes]:
    """Return the raw bytes of the first embedded picture, if any."""
    # FLAC keeps pictures on the file object, not in the tag block
    pictures = getattr(audio_file, "pictures", None)
    if pictures:
        return pictures[0].data

    if tags is None:
        return None

    # ID3 (MP3, AIFF, WAV)
    if hasattr(tags, "getall"):
        frames = tags.getall("APIC")
        if frames:
            return frames[0].data

    # MP4 / M4A
    covers = _safe_get(tags, "covr")
    if covers:
        return bytes(covers[0])

    # Ogg Vorbis / Opus: base64-encoded FLAC picture blocks
    blocks = _safe_get(tags, "metadata_block_picture")
    if blocks:
        try:
            return Picture(base64.b64decode(blocks[0])).data
        except (ValueError, TypeError) as e:
            logger.debug(f"Ignoring malformed METADATA_BLOCK_PICTURE: {e}")

    # APEv2: "<filename>\0<image bytes>"
    ape_cover = _safe_get(tags, "Cover Art (Front)")
    if ape_cover is not None and hasattr(ape_cover, "value"):
        raw = bytes(ape_cover.value)
        _, sep, data = raw.partition(b"\x00")
        return data if sep else raw

    return None


def _safe_get(tags: Any, key: str) -> Any:
    try:
        return tags.get(key)
    except (KeyError, ValueError):
        return None


def create_fallback_metadata(path: str, reason: str) -> TrackRecord:
    """Record for a file that could not be parsed: title from filename only."""
    return TrackRecord(
        path=path,
        title=get_filename_title(path),
        read_error=reason,
    )


def extract_metadata(path: str) -> TrackRecord:
    """Extract metadata from an audio file using mutagen.

    Never raises. Unreadable or unrecognized files produce a fallback record
    (see create_fallback_metadata).
    """
    try:
        audio_file = MutagenFile(path)
    except Exception as e:
        logger.warning(f"Could not read audio file {path}: {e}")
        return create_fallback_metadata(path, str(e) or type(e).__name__)

    if audio_file is None:
        logger.warning(f"Unrecognized audio format: {path}")
        return create_fallback_metadata(path, "unrecognized audio format")

    try:
        info = getattr(audio_file, "info", None)
        length = getattr(info, "length", None)
        duration = int(length) if length is not None else None
        raw_bitrate = getattr(info, "bitrate", None)
        bitrate = raw_bitrate // 1000 if raw_bitrate else None
        format_label = type(audio_file).__name__

        tags = _select_tag_block(audio_file, path)

        if tags is None or len(tags.keys()) == 0:
            # Readable container without tags
            return TrackRecord(
                path=path,
                title=get_filename_title(path),
                duration=duration,
                bitrate=bitrate,
                format=format_label,
            )

        title = get_tag_value(tags, TITLE_TAGS) or get_filename_title(path)
        artist = get_tag_value(tags, ARTIST_TAGS)
        album = get_tag_value(tags, ALBUM_TAGS)
        track_number = parse_track_number(get_tag_value(tags, TRACK_NUMBER_TAGS))

        picture = _first_picture(audio_file, tags)
        album_art = base64.b64encode(picture).decode("ascii") if picture else None

        return TrackRecord(
            path=path,
            title=title,
            artist=artist,
            album=album,
            track_number=track_number,
            duration=duration,
            bitrate=bitrate,
            format=format_label,
            album_art=album_art,
        )

    except Exception as e:
        logger.warning(f"Could not read metadata from {path}: {e}")
        return create_fallback_metadata(path, str(e) or type(e).__name__)
