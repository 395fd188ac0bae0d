"""
Music library scanning.

Walks library roots, extracts metadata from each candidate file and writes
it to the store. Per-file problems are collected in the ScanResult; only
failing to open or lock the store aborts a scan.
"""

import sqlite3
import time
from typing import Callable, List, Optional

from loguru import logger

from music_index.core import database
from music_index.core.config import Config

from .metadata import extract_metadata
from .models import MergePolicy, ScanResult
from .walker import display_path, scan_directory
from .writer import IndexWriter

ProgressCallback = Callable[[str, int, int], None]


def scan_library(
    roots: List[str],
    config: Optional[Config] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ScanResult:
    """Scan library roots and index every candidate audio file.

    Args:
        roots: Directories (or files) to scan
        config: Configuration object (defaults used if omitted)
        progress_callback: Optional callback(path, index, total) per file, 1-based

    Returns:
        ScanResult with added/updated counts and per-file errors

    Raises:
        DatabaseUnavailableError: If the store cannot be opened
        DatabaseLockError: If the store lock cannot be acquired
    """
    config = config or Config()
    result = ScanResult()
    start = time.monotonic()

    database.ensure_database()
    logger.info(f"Starting library scan of {len(roots)} root(s)")

    for root in roots:
        walk = scan_directory(root, config.library)
        result.errors.extend(walk.errors)
        total = len(walk.audio_files)

        with database.get_db_connection() as conn:
            writer = IndexWriter(
                conn,
                album_art_policy=MergePolicy.FIRST_WRITER_WINS,
                track_fields_policy=MergePolicy.LAST_WRITE_WINS,
            )

            for index, file_path in enumerate(walk.audio_files, start=1):
                record = extract_metadata(file_path)
                if record.read_error:
                    result.errors.append(
                        f"Could not read metadata from {display_path(file_path)}: {record.read_error}"
                    )

                try:
                    inserted = writer.write(record)
                except (sqlite3.Error, UnicodeEncodeError) as e:
                    message = f"Failed to index {display_path(file_path)}: {e}"
                    logger.warning(message)
                    result.errors.append(message)
                else:
                    if inserted:
                        result.tracks_added += 1
                    else:
                        result.tracks_updated += 1

                if progress_callback:
                    progress_callback(file_path, index, total)

    elapsed = time.monotonic() - start
    logger.info(
        f"Scan complete in {elapsed:.1f}s - added: {result.tracks_added}, "
        f"updated: {result.tracks_updated}, errors: {len(result.errors)}"
    )
    return result


def scan_music_library(
    config: Config, progress_callback: Optional[ProgressCallback] = None
) -> ScanResult:
    """Scan all configured library paths."""
    return scan_library(
        config.library.library_paths, config, progress_callback=progress_callback
    )
