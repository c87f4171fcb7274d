"""Tests for playlist ordering values."""

from __future__ import annotations

import random

from pocket_player.services.playlist import Playlist, Track


def _tracks(count: int) -> list[Track]:
    return [Track(f"t{i}", f"Song {i}", None, f"s{i}") for i in range(count)]


def test_playlist_of_keeps_order() -> None:
    playlist = Playlist.of(_tracks(3))
    assert len(playlist) == 3
    assert playlist[1].track_id == "t1"
    assert playlist.active == playlist.canonical
    assert not playlist.is_shuffled


def test_shuffled_pins_current_and_keeps_canonical() -> None:
    tracks = _tracks(8)
    playlist = Playlist.of(tracks)
    shuffled = playlist.shuffled(tracks[5], random.Random(4))
    assert shuffled.active[0] == tracks[5]
    assert sorted(shuffled.active, key=lambda t: t.track_id) == sorted(
        tracks, key=lambda t: t.track_id
    )
    assert shuffled.canonical == tuple(tracks)


def test_shuffled_without_current_is_permutation() -> None:
    tracks = _tracks(5)
    shuffled = Playlist.of(tracks).shuffled(None, random.Random(2))
    assert set(shuffled.active) == set(tracks)
    assert len(shuffled) == 5


def test_restored_returns_canonical_and_index_of_finds_track() -> None:
    tracks = _tracks(6)
    shuffled = Playlist.of(tracks).shuffled(tracks[2], random.Random(9))
    restored = shuffled.restored()
    assert restored.active == tuple(tracks)
    assert restored.index_of(tracks[2]) == 2
    assert restored.index_of(None) is None
    assert restored.index_of(Track("zz", None, None, "zz")) is None


def test_empty_playlist_shuffles_to_empty() -> None:
    playlist = Playlist.of([]).shuffled(None, random.Random(0))
    assert len(playlist) == 0
    assert playlist.restored().active == ()
