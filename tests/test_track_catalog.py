"""Tests for building playlists from files."""

from __future__ import annotations

from _audio_fixtures import write_wav
from pocket_player.services.track_catalog import (
    DEMO_TRACKS,
    demo_tracks,
    expand_sources,
    probe_audio,
    tracks_from_paths,
)


def test_probe_reads_wave_length(tmp_path) -> None:
    path = write_wav(tmp_path / "tone.wav", amplitude=1000, seconds=2.0)
    probe = probe_audio(path)
    assert probe.error is None
    assert probe.duration_s is not None
    assert abs(probe.duration_s - 2.0) < 0.01


def test_probe_reports_unreadable_file(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    assert probe_audio(path).error is not None


def test_expand_sources_lists_audio_files_in_directories(tmp_path) -> None:
    album = tmp_path / "album"
    album.mkdir()
    write_wav(album / "b.wav", amplitude=1)
    write_wav(album / "a.wav", amplitude=1)
    (album / "cover.jpg").write_bytes(b"jpg")
    single = tmp_path / "single.mp3"
    found = expand_sources([single, album])
    assert found == [single, album / "a.wav", album / "b.wav"]


def test_tracks_fall_back_to_file_stem(tmp_path) -> None:
    path = write_wav(tmp_path / "Morning Run.wav", amplitude=500)
    missing = tmp_path / "gone.flac"
    tracks = tracks_from_paths([path, missing])
    assert [t.track_id for t in tracks] == ["t001", "t002"]
    assert tracks[0].title == "Morning Run"
    assert tracks[0].artist is None
    assert tracks[0].source == str(path)
    assert tracks[1].title == "gone"


def test_demo_tracks_are_stable() -> None:
    tracks = demo_tracks()
    assert len(tracks) == len(DEMO_TRACKS) == 7
    assert tracks[0].track_id == "demo01"
    assert tracks[0].title == "Night Bus"
    assert tracks[0].source == "night_bus"
    assert len({t.track_id for t in tracks}) == 7
