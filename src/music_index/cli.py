"""
Music Index CLI - entry point for scanning and cover maintenance.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from music_index.core import config as config_module
from music_index.core import database
from music_index.core.output import setup_logging_from_config
from music_index.domain import covers, library, playlists

console = Console()


def _print_errors(errors: List[str], limit: int = 20) -> None:
    if not errors:
        return
    console.print(f"[yellow]{len(errors)} error(s):[/yellow]")
    for error in errors[:limit]:
        console.print(f"  - {error}", markup=False, highlight=False)
    if len(errors) > limit:
        console.print(f"  ... and {len(errors) - limit} more (see log file)")


def run_scan(cfg: config_module.Config, paths: List[str]) -> int:
    roots = paths or cfg.library.library_paths
    console.print(f"Scanning {len(roots)} path(s)...")

    result = library.scan_library(roots, cfg)

    console.print(
        f"[green]Scan complete:[/green] {result.tracks_added} added, "
        f"{result.tracks_updated} updated"
    )
    _print_errors(result.errors)
    return 0


def _print_migration_result(label: str, result: covers.CoverMigrationResult) -> None:
    console.print(
        f"[green]{label}:[/green] {result.tracks_migrated} track cover(s), "
        f"{result.albums_migrated} album cover(s) "
        f"({result.processed}/{result.total} processed)"
    )
    _print_errors(result.errors)


def run_covers(cfg: config_module.Config, args: argparse.Namespace) -> int:
    covers_root = Path(args.covers_dir) if args.covers_dir else None

    if args.action == "migrate":
        result = covers.migrate_covers_to_files(covers_root, cfg)
        _print_migration_result("Migration complete", result)
        return 1 if result.errors else 0

    if args.action == "sync":
        result = covers.sync_cover_paths_from_files(covers_root, cfg)
        _print_migration_result("Sync complete", result)
        return 0

    if args.action == "cleanup":
        removed = covers.cleanup_orphaned_covers(covers_root, cfg)
        console.print(f"Removed {removed} orphaned cover file(s)")
        return 0

    if args.action == "clear":
        if not args.yes:
            console.print(
                "[red]Refusing to clear inline covers without --yes.[/red] "
                "Run 'covers migrate' first; cleared data cannot be recovered."
            )
            return 1
        verify = cfg.covers.verify_before_clear and not args.no_verify
        cleared = covers.clear_embedded_blobs(verify_files=verify)
        console.print(f"Cleared inline cover data from {cleared} row(s)")
        return 0

    return 1


def run_stats() -> int:
    stats = library.get_library_stats()

    table = Table(title="Library")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for key, value in stats.items():
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)
    return 0


def run_playlist(args: argparse.Namespace) -> int:
    if args.action == "create":
        playlist_id = playlists.create_playlist(" ".join(args.name))
        console.print(f"Created playlist {playlist_id}")
        return 0

    if args.action == "add":
        if playlists.add_track_to_playlist(args.playlist_id, args.track_id):
            console.print(f"Added track {args.track_id}")
        else:
            console.print(f"Track {args.track_id} is already in the playlist")
        return 0

    if args.action == "list":
        for playlist in playlists.get_all_playlists():
            console.print(
                f"{playlist['id']:>4}  {playlist['name']} ({playlist['track_count']} tracks)"
            )
        return 0

    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="music-index",
        description="Music Index - local audio library indexer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Scan directories into the index")
    scan_parser.add_argument(
        "paths", nargs="*", help="Directories to scan (default: configured library paths)"
    )

    covers_parser = subparsers.add_parser("covers", help="Cover file store maintenance")
    covers_parser.add_argument(
        "action",
        choices=["migrate", "sync", "cleanup", "clear"],
        help="migrate inline covers to files, sync paths from files, "
        "remove orphaned files, or clear migrated inline data",
    )
    covers_parser.add_argument("--covers-dir", help="Override the covers root")
    covers_parser.add_argument(
        "--yes", action="store_true", help="Confirm the destructive 'clear' action"
    )
    covers_parser.add_argument(
        "--no-verify",
        action="store_true",
        help="With 'clear': do not check that cover files exist first",
    )

    subparsers.add_parser("stats", help="Show library statistics")

    playlist_parser = subparsers.add_parser("playlist", help="Playlist management")
    playlist_sub = playlist_parser.add_subparsers(dest="action")
    create_parser = playlist_sub.add_parser("create", help="Create a playlist")
    create_parser.add_argument("name", nargs="+", help="Playlist name")
    add_parser = playlist_sub.add_parser("add", help="Add a track to a playlist")
    add_parser.add_argument("playlist_id", type=int)
    add_parser.add_argument("track_id", type=int)
    playlist_sub.add_parser("list", help="List playlists")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the music-index command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    cfg = config_module.load_config()
    setup_logging_from_config(cfg.logging)
    config_module.ensure_directories(cfg)
    database.set_lock_timeout(cfg.database.lock_timeout)

    try:
        database.init_database()

        if args.subcommand == "scan":
            sys.exit(run_scan(cfg, args.paths))
        elif args.subcommand == "covers":
            sys.exit(run_covers(cfg, args))
        elif args.subcommand == "stats":
            sys.exit(run_stats())
        elif args.subcommand == "playlist":
            sys.exit(run_playlist(args))

    except (database.DatabaseUnavailableError, database.DatabaseLockError) as e:
        logger.error(str(e))
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(2)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    sys.exit(1)


if __name__ == "__main__":
    main()
