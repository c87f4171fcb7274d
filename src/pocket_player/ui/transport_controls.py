"""Transport buttons plus shuffle/repeat indicators."""

from __future__ import annotations

from typing import Literal

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import Click, Key
from textual.widget import Widget
from textual.widgets import Static

from pocket_player.events import (
    RepeatCycleRequested,
    ShuffleToggleRequested,
    TransportIntent,
    TransportRequested,
)
from pocket_player.services.playback_engine import PlaybackState

REPEAT_LABELS = {"OFF": "REPEAT", "ALL": "REPEAT ALL", "ONE": "REPEAT 1"}


class TransportControls(Widget):
    DEFAULT_CSS = """
    TransportControls {
        height: 1;
    }

    #transport-row {
        height: 1;
        align: center middle;
    }

    TransportControls .transport-button {
        width: auto;
        height: 1;
        padding: 0 1;
        background: $panel;
        color: $text;
    }

    TransportControls .transport-button:focus {
        background: $boost;
    }

    TransportControls .transport-button.-active {
        color: #FF4F9A;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._shuffle_button = TransportButton(
            "SHUFFLE", toggle="shuffle", id="shuffle-indicator"
        )
        self._prev_button = TransportButton("|<<", intent="previous", id="transport-prev")
        self._play_button = TransportButton("PLAY", intent="play", id="transport-play")
        self._next_button = TransportButton(">>|", intent="next", id="transport-next")
        self._repeat_button = TransportButton(
            "REPEAT", toggle="repeat", id="repeat-indicator"
        )

    def compose(self) -> ComposeResult:
        yield Horizontal(
            self._shuffle_button,
            self._prev_button,
            self._play_button,
            self._next_button,
            self._repeat_button,
            id="transport-row",
        )

    def update_from_state(self, state: PlaybackState) -> None:
        playing = state.status == "playing"
        self._play_button.intent = "pause" if playing else "play"
        self._play_button.update("PAUSE" if playing else "PLAY")
        self._shuffle_button.set_class(state.shuffle, "-active")
        self._repeat_button.update(REPEAT_LABELS[state.repeat_mode])
        self._repeat_button.set_class(state.repeat_mode != "OFF", "-active")


class TransportButton(Static):
    def __init__(
        self,
        label: str,
        *,
        intent: TransportIntent | None = None,
        toggle: Literal["repeat", "shuffle"] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(label, classes="transport-button", **kwargs)
        self.intent = intent
        self.toggle = toggle
        self.can_focus = True

    def on_click(self, event: Click) -> None:
        self._emit()
        event.stop()

    def on_key(self, event: Key) -> None:
        if event.key not in {"enter", "space"}:
            return
        self._emit()
        event.stop()

    def _emit(self) -> None:
        if self.intent is not None:
            self.post_message(TransportRequested(self.intent))
        elif self.toggle == "repeat":
            self.post_message(RepeatCycleRequested())
        elif self.toggle == "shuffle":
            self.post_message(ShuffleToggleRequested())
