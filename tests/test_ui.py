"""Minimal UI tests for the Textual app."""

from __future__ import annotations

import asyncio

from pocket_player.app import PocketPlayerApp
from pocket_player.events import SeekRequested
from pocket_player.services.fake_output import FakeAudioDevice
from pocket_player.services.playback_engine import PlaybackEngine
from pocket_player.services.track_catalog import demo_tracks
from pocket_player.ui.meter_bars import MeterBars
from pocket_player.ui.seek_bar import SeekBar
from pocket_player.ui.transport_controls import REPEAT_LABELS, TransportControls


def _run(coro):
    return asyncio.run(coro)


def _app(device: FakeAudioDevice, **kwargs) -> PocketPlayerApp:
    engine = PlaybackEngine(
        device=device, tracks=demo_tracks(), meter_interval_s=60.0
    )
    return PocketPlayerApp(engine, **kwargs)


def test_app_mounts_and_scopes_audio_session() -> None:
    device = FakeAudioDevice(auto_advance=False)
    app = _app(device)

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.pause()
            assert app.query_one(TransportControls)
            assert app.query_one(MeterBars)
            assert app.query_one(SeekBar)
            assert device.session_active
            assert app.engine.state.status == "stopped"
            app.exit()

    _run(run_app())
    assert not device.session_active
    assert device.releases == 1


def test_keyboard_transport_drives_engine() -> None:
    device = FakeAudioDevice(auto_advance=False)
    app = _app(device)

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.press("space")
            await pilot.pause()
            assert app.engine.state.status == "playing"
            assert app._transport._play_button.intent == "pause"
            await pilot.press("n")
            await pilot.pause()
            assert app.engine.state.current_index == 1
            await pilot.press("p")
            await pilot.pause()
            assert app.engine.state.current_index == 0
            await pilot.press("r")
            await pilot.pause()
            assert app.engine.state.repeat_mode == "ALL"
            assert app._transport._repeat_button.has_class("-active")
            await pilot.press("s")
            await pilot.pause()
            assert app.engine.state.shuffle is True
            await pilot.press("full_stop")
            await pilot.pause()
            assert app.engine.state.position_s == 5.0
            await pilot.press("x")
            await pilot.pause()
            assert app.engine.state.status == "stopped"
            app.exit()

    _run(run_app())


def test_autoplay_and_now_playing_subtitle() -> None:
    app = _app(FakeAudioDevice(auto_advance=False), autoplay=True, artwork_label="LP")

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.pause()
            assert app.engine.state.status == "playing"
            assert app.sub_title == "The Late Shift - Night Bus"
            app.exit()

    _run(run_app())


def test_clicking_transport_buttons_posts_intents() -> None:
    app = _app(FakeAudioDevice(auto_advance=False))

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.click("#transport-play")
            await pilot.pause()
            assert app.engine.state.status == "playing"
            await pilot.click("#transport-next")
            await pilot.pause()
            assert app.engine.state.current_index == 1
            await pilot.click("#repeat-indicator")
            await pilot.pause()
            assert app.engine.state.repeat_mode == "ALL"
            await pilot.click("#shuffle-indicator")
            await pilot.pause()
            assert app.engine.state.shuffle is True
            app.exit()

    _run(run_app())


def test_final_seek_request_moves_playhead() -> None:
    app = _app(FakeAudioDevice(auto_advance=False, default_duration_s=200.0))

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.press("space")
            await pilot.pause()
            seek_bar = app.query_one(SeekBar)
            seek_bar.post_message(SeekRequested(0.25, False))
            await pilot.pause()
            assert app.engine.state.position_s == 0.0
            seek_bar.post_message(SeekRequested(0.25, True))
            await pilot.pause()
            assert app.engine.state.position_s == 50.0
            app.exit()

    _run(run_app())


def test_unavailable_track_keeps_player_running() -> None:
    device = FakeAudioDevice(auto_advance=False, missing={"paper_moons"})
    app = _app(device)

    async def run_app() -> None:
        async with app.run_test(size=(100, 40)) as pilot:
            await pilot.press("space")
            await pilot.pause()
            await pilot.press("n")
            await pilot.pause()
            assert app.engine.state.current_index == 0
            assert app.engine.state.status == "playing"
            assert app.engine.state.unavailable
            app.exit()

    _run(run_app())


def test_repeat_labels_cover_all_modes() -> None:
    assert set(REPEAT_LABELS) == {"OFF", "ALL", "ONE"}
