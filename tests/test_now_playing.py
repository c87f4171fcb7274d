"""Tests for now-playing publishing and remote command handling."""

from __future__ import annotations

import asyncio
import logging

from pocket_player.services.fake_output import FakeAudioDevice, FakeOutputHandle
from pocket_player.services.now_playing import (
    REMOTE_COMMANDS,
    NowPlayingInfo,
    NowPlayingPublisher,
    RemoteCommandAdapter,
    log_now_playing,
)
from pocket_player.services.playback_engine import PlaybackEngine
from pocket_player.services.playlist import Track


def _run(coro):
    return asyncio.run(coro)


def _engine() -> PlaybackEngine:
    return PlaybackEngine(
        device=FakeAudioDevice(auto_advance=False, default_duration_s=120.0),
        tracks=[
            Track("a", "Night Bus", "The Late Shift", "a"),
            Track("b", "Low Tide", None, "b"),
        ],
        artwork="cover",
        meter_interval_s=60.0,
    )


def test_publisher_pushes_metadata_on_state_changes() -> None:
    published: list[NowPlayingInfo] = []

    async def sink(info: NowPlayingInfo) -> None:
        published.append(info)

    async def run() -> None:
        engine = _engine()
        publisher = NowPlayingPublisher(engine, sink)
        publisher.attach()
        publisher.attach()
        await engine.load_and_play(0)
        assert published[-1].title == "Night Bus"
        assert published[-1].artist == "The Late Shift"
        assert published[-1].duration_s == 120.0
        assert published[-1].is_playing is True
        await engine.next()
        assert published[-1].title == "Low Tide"
        assert published[-1].artist == "Unknown"
        await engine.toggle_play_pause()
        assert published[-1].is_playing is False
        assert publisher.last_published == published[-1]
        assert publisher.published_count == len(published)
        publisher.detach()
        count = len(published)
        await engine.toggle_play_pause()
        assert len(published) == count
        await engine.shutdown()

    _run(run())


def test_publisher_skips_sub_second_elapsed_changes() -> None:
    published: list[NowPlayingInfo] = []

    async def sink(info: NowPlayingInfo) -> None:
        published.append(info)

    async def run() -> None:
        engine = _engine()
        publisher = NowPlayingPublisher(engine, sink)
        publisher.attach()
        await engine.load_and_play(0)
        count = len(published)
        await engine.seek(0.4)
        await engine.seek(0.8)
        assert len(published) == count
        await engine.seek(1.2)
        assert len(published) == count + 1
        assert published[-1].elapsed_s == 1.0
        await engine.shutdown()

    _run(run())


def test_remote_play_and_pause_only_apply_when_meaningful() -> None:
    async def run() -> None:
        engine = _engine()
        remote = RemoteCommandAdapter(engine)
        assert await remote.handle("pause") is False
        assert await remote.handle("play") is True
        assert engine.state.status == "playing"
        assert await remote.handle("play") is False
        assert engine.state.status == "playing"
        assert await remote.handle("pause") is True
        assert engine.state.status == "paused"
        assert await remote.handle("play") is True
        assert engine.state.status == "playing"
        await engine.shutdown()

    _run(run())


def test_remote_next_and_previous_route_to_engine() -> None:
    async def run() -> None:
        engine = _engine()
        remote = RemoteCommandAdapter(engine)
        await engine.load_and_play(0)
        assert await remote.handle("next") is True
        assert engine.state.current_index == 1
        assert await remote.handle("previous") is True
        assert engine.state.current_index == 0
        handle = engine.current_handle
        assert isinstance(handle, FakeOutputHandle)
        await engine.shutdown()

    _run(run())


def test_remote_unknown_command_is_rejected(caplog) -> None:
    async def run() -> bool:
        return await RemoteCommandAdapter(_engine()).handle("eject")

    with caplog.at_level(logging.WARNING):
        assert _run(run()) is False
    assert "Unsupported remote command" in caplog.text
    assert "eject" not in REMOTE_COMMANDS


def test_log_now_playing_emits_structured_record(caplog) -> None:
    info = NowPlayingInfo(
        title="Afterglow",
        artist="The Late Shift",
        duration_s=200.0,
        elapsed_s=12.0,
        artwork=None,
        is_playing=True,
    )
    with caplog.at_level(logging.INFO):
        _run(log_now_playing(info))
    record = next(r for r in caplog.records if "Now playing" in r.message)
    assert record.event == "now_playing"
    assert record.elapsed_s == 12.0
