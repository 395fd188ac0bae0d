"""Tests for playlist management."""

import sqlite3

import pytest

from music_index.core.database import get_db_connection
from music_index.domain.playlists import (
    add_track_to_playlist,
    create_playlist,
    delete_playlist,
    get_all_playlists,
    get_playlist_tracks,
    remove_track_from_playlist,
    rename_playlist,
)


@pytest.fixture
def track_ids(db):
    ids = []
    with get_db_connection() as conn:
        for n in range(1, 4):
            cursor = conn.execute(
                "INSERT INTO tracks (path, title) VALUES (?, ?)", (f"/m/{n}.mp3", f"Track {n}")
            )
            ids.append(cursor.lastrowid)
        conn.commit()
    return ids


class TestPlaylistCrud:
    """Create, rename and delete."""

    def test_create_and_list(self, db):
        playlist_id = create_playlist("  Road Trip  ")

        playlists = get_all_playlists()
        assert len(playlists) == 1
        assert playlists[0]["id"] == playlist_id
        assert playlists[0]["name"] == "Road Trip"
        assert playlists[0]["track_count"] == 0

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, db, name):
        with pytest.raises(ValueError):
            create_playlist(name)

    def test_rename(self, db):
        playlist_id = create_playlist("Old")
        assert rename_playlist(playlist_id, "New") is True
        assert get_all_playlists()[0]["name"] == "New"
        assert rename_playlist(9999, "Nope") is False

    def test_delete_removes_memberships(self, track_ids):
        playlist_id = create_playlist("Gone")
        add_track_to_playlist(playlist_id, track_ids[0])

        assert delete_playlist(playlist_id) is True
        assert get_all_playlists() == []
        assert get_playlist_tracks(playlist_id) == []
        assert delete_playlist(playlist_id) is False


class TestPlaylistTracks:
    """Membership and ordering."""

    def test_tracks_keep_insertion_order(self, track_ids):
        playlist_id = create_playlist("Mix")
        for track_id in reversed(track_ids):
            add_track_to_playlist(playlist_id, track_id)

        tracks = get_playlist_tracks(playlist_id)
        assert [t["id"] for t in tracks] == list(reversed(track_ids))
        assert [t["position"] for t in tracks] == [1, 2, 3]

    def test_adding_twice_keeps_one_row(self, track_ids):
        playlist_id = create_playlist("Dedup")

        assert add_track_to_playlist(playlist_id, track_ids[0]) is True
        assert add_track_to_playlist(playlist_id, track_ids[0]) is False

        tracks = get_playlist_tracks(playlist_id)
        assert len(tracks) == 1
        assert tracks[0]["position"] == 1

    def test_remove_track(self, track_ids):
        playlist_id = create_playlist("Remove")
        add_track_to_playlist(playlist_id, track_ids[0])
        add_track_to_playlist(playlist_id, track_ids[1])

        assert remove_track_from_playlist(playlist_id, track_ids[0]) is True
        assert remove_track_from_playlist(playlist_id, track_ids[0]) is False
        assert [t["id"] for t in get_playlist_tracks(playlist_id)] == [track_ids[1]]

    def test_position_continues_after_removal(self, track_ids):
        playlist_id = create_playlist("Positions")
        add_track_to_playlist(playlist_id, track_ids[0])
        add_track_to_playlist(playlist_id, track_ids[1])
        remove_track_from_playlist(playlist_id, track_ids[0])
        add_track_to_playlist(playlist_id, track_ids[2])

        positions = [t["position"] for t in get_playlist_tracks(playlist_id)]
        assert positions == [2, 3]

    def test_unknown_track_rejected(self, track_ids):
        playlist_id = create_playlist("Strict")
        with pytest.raises(sqlite3.IntegrityError):
            add_track_to_playlist(playlist_id, 9999)

    def test_track_count(self, track_ids):
        playlist_id = create_playlist("Counted")
        for track_id in track_ids:
            add_track_to_playlist(playlist_id, track_id)
        assert get_all_playlists()[0]["track_count"] == 3
