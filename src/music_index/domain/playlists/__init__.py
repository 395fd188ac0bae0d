"""Playlists domain - ordered track lists."""

from .crud import (
    add_track_to_playlist,
    create_playlist,
    delete_playlist,
    get_all_playlists,
    get_playlist_tracks,
    remove_track_from_playlist,
    rename_playlist,
)

__all__ = [
    "add_track_to_playlist",
    "create_playlist",
    "delete_playlist",
    "get_all_playlists",
    "get_playlist_tracks",
    "remove_track_from_playlist",
    "rename_playlist",
]
