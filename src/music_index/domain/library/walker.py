"""
Directory traversal for library scans.

Collects candidate audio files under a root and records unreadable entries
as error strings instead of aborting the walk.
"""

import os
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from music_index.core.config import LibraryConfig

from .models import WalkResult


def display_path(path: str) -> str:
    """Printable form of a path; undecodable bytes are shown as \\xNN escapes."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


def is_storable_path(path: str) -> bool:
    """True if the path can be stored as UTF-8 text in the index."""
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def is_audio_candidate(
    path: Path,
    supported_formats: Iterable[str],
    ignored_formats: Iterable[str],
) -> bool:
    """Decide whether a file should be handed to the metadata extractor.

    Known audio extensions are candidates. Known sidecar extensions and
    hidden files are not. Anything else is a candidate too, so that the
    extractor gets to decide (and report) whether it can be parsed.
    """
    if path.name.startswith("."):
        return False
    suffix = path.suffix.lower()
    if suffix in supported_formats:
        return True
    if suffix in ignored_formats:
        return False
    return True


def scan_directory(root: str, config: Optional[LibraryConfig] = None) -> WalkResult:
    """Walk a root directory and collect candidate audio file paths.

    Args:
        root: Directory (or single file) to scan
        config: Library configuration (extensions, recursion, symlinks)

    Returns:
        WalkResult with absolute file paths and human-readable errors
    """
    config = config or LibraryConfig()
    supported = {ext.lower() for ext in config.supported_formats}
    ignored = {ext.lower() for ext in config.ignored_formats}
    result = WalkResult()

    root_path = Path(root).expanduser()
    if not root_path.exists():
        result.errors.append(f"Path does not exist: {root_path}")
        logger.warning(f"Library path does not exist: {root_path}")
        return result

    root_path = root_path.absolute()

    if root_path.is_file():
        if is_audio_candidate(root_path, supported, ignored):
            result.audio_files.append(str(root_path))
        return result

    def on_error(error: OSError) -> None:
        message = f"Cannot read {error.filename}: {error.strerror or error}"
        result.errors.append(message)
        logger.warning(message)

    for dirpath, dirnames, filenames in os.walk(
        root_path, onerror=on_error, followlinks=config.follow_symlinks
    ):
        # Hidden directories are skipped (.git, .Trash, ...)
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        if not config.scan_recursive:
            dirnames[:] = []

        for filename in sorted(filenames):
            file_path = Path(dirpath) / filename
            if not is_audio_candidate(file_path, supported, ignored):
                continue
            if not is_storable_path(str(file_path)):
                result.errors.append(f"Undecodable file name: {display_path(str(file_path))}")
                continue

            try:
                if file_path.is_symlink() and not file_path.exists():
                    result.errors.append(f"Broken symlink: {file_path}")
                    continue
                if not file_path.is_file():
                    continue
                if not os.access(file_path, os.R_OK):
                    result.errors.append(f"Permission denied: {file_path}")
                    continue
            except OSError as e:
                result.errors.append(f"Cannot stat {file_path}: {e}")
                continue

            result.audio_files.append(str(file_path))

    logger.info(
        f"Walked {root_path}: {len(result.audio_files)} candidate files, "
        f"{len(result.errors)} errors"
    )
    return result
