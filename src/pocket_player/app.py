"""Textual now-playing screen for pocket-player."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Header, Static

from .events import (
    PlaybackStateChanged,
    RepeatCycleRequested,
    SeekRequested,
    ShuffleToggleRequested,
    TransportRequested,
)
from .services.audio_output import AudioOutputError
from .services.now_playing import (
    NowPlayingInfo,
    NowPlayingPublisher,
    RemoteCommandAdapter,
    log_now_playing,
)
from .services.playback_engine import PlaybackEngine, PlaybackState
from .ui.meter_bars import MeterBars
from .ui.seek_bar import SeekBar
from .ui.transport_controls import TransportControls

logger = logging.getLogger(__name__)
SEEK_STEP_S = 5.0


class PocketPlayerApp(App):
    TITLE = "pocket-player"
    CSS = """
    Screen {
        align: center middle;
    }

    #player {
        width: 60;
        height: auto;
        padding: 1 2;
        border: round #FF4F9A;
    }

    #artwork {
        height: 7;
        content-align: center middle;
        border: solid $panel-lighten-2;
        margin-bottom: 1;
    }

    #track-title {
        text-style: bold;
        content-align: center middle;
    }

    #track-artist {
        color: $text-muted;
        content-align: center middle;
        margin-bottom: 1;
    }

    #unavailable {
        color: #FF5A36;
        height: auto;
    }
    """

    BINDINGS = [
        ("space", "play_pause", "Play/Pause"),
        ("n", "next_track", "Next"),
        ("p", "previous_track", "Previous"),
        ("x", "stop", "Stop"),
        ("s", "shuffle", "Shuffle"),
        ("r", "repeat_mode", "Repeat"),
        ("comma", "seek_back", "-5s"),
        ("full_stop", "seek_forward", "+5s"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        engine: PlaybackEngine,
        *,
        artwork_label: str | None = None,
        autoplay: bool = False,
    ) -> None:
        super().__init__()
        self.engine = engine
        self._artwork_label = artwork_label or "♪"
        self._autoplay = autoplay
        self._remote = RemoteCommandAdapter(engine)
        self._publisher = NowPlayingPublisher(engine, self._on_now_playing)
        self._unsubscribe = None
        self._artwork = Static(self._artwork_label, id="artwork")
        self._title = Static("", id="track-title")
        self._artist = Static("", id="track-artist")
        self._meter = MeterBars(id="meter")
        self._seek_bar = SeekBar(id="seek-bar")
        self._transport = TransportControls(id="transport")
        self._unavailable = Static("", id="unavailable")

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(
            self._artwork,
            self._title,
            self._artist,
            self._meter,
            self._seek_bar,
            self._transport,
            self._unavailable,
            id="player",
        )
        yield Footer()

    async def on_mount(self) -> None:
        self._unsubscribe = self.engine.subscribe(self._handle_engine_event)
        self._publisher.attach()
        self._render_state(self.engine.state)
        try:
            await self.engine.start()
        except AudioOutputError as exc:
            logger.exception("Failed to start audio session: %s", exc)
            self._unavailable.update(f"Audio output unavailable: {exc}")
            return
        if self._autoplay:
            await self.engine.toggle_play_pause()

    async def on_unmount(self) -> None:
        self._publisher.detach()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.engine.shutdown()

    async def action_play_pause(self) -> None:
        await self.engine.toggle_play_pause()

    async def action_next_track(self) -> None:
        await self._remote.handle("next")

    async def action_previous_track(self) -> None:
        await self._remote.handle("previous")

    async def action_stop(self) -> None:
        await self.engine.stop()

    async def action_shuffle(self) -> None:
        await self.engine.toggle_shuffle()

    async def action_repeat_mode(self) -> None:
        await self.engine.cycle_repeat_mode()

    async def action_seek_back(self) -> None:
        await self.engine.seek(self.engine.state.position_s - SEEK_STEP_S)

    async def action_seek_forward(self) -> None:
        await self.engine.seek(self.engine.state.position_s + SEEK_STEP_S)

    async def on_transport_requested(self, event: TransportRequested) -> None:
        await self._remote.handle(event.intent)

    async def on_shuffle_toggle_requested(self, _event: ShuffleToggleRequested) -> None:
        await self.engine.toggle_shuffle()

    async def on_repeat_cycle_requested(self, _event: RepeatCycleRequested) -> None:
        await self.engine.cycle_repeat_mode()

    async def on_seek_requested(self, event: SeekRequested) -> None:
        if not event.is_final:
            return
        await self.engine.seek(event.fraction * self.engine.state.duration_s)

    async def _handle_engine_event(self, event: object) -> None:
        if isinstance(event, PlaybackStateChanged):
            self._render_state(event.state)

    async def _on_now_playing(self, info: NowPlayingInfo) -> None:
        self.sub_title = f"{info.artist} - {info.title}"
        await log_now_playing(info)

    def _render_state(self, state: PlaybackState) -> None:
        track = state.current_track
        self._title.update((track.title or "Unknown") if track else "No track")
        self._artist.update((track.artist or "Unknown") if track else "")
        self._meter.update_level(state.power, is_playing=state.status == "playing")
        self._seek_bar.set_progress(state.position_s, state.duration_s)
        self._transport.update_from_state(state)
        self._unavailable.update(state.error.splitlines()[0] if state.error else "")
