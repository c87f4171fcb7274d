"""Cross-module event/message models for service and UI communication.

Dataclass events are used for engine/observer signaling, while
`textual.message` types are used for widget-level interaction routing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from textual.message import Message

if TYPE_CHECKING:
    from pocket_player.services.playback_engine import PlaybackState
    from pocket_player.services.playlist import Track

TransportIntent = Literal["play", "pause", "next", "previous"]


@dataclass(frozen=True)
class PlaybackStateChanged:
    """Engine event emitted after every state mutation."""

    state: PlaybackState


@dataclass(frozen=True)
class TrackChanged:
    """Engine event emitted when a new track has started playing."""

    track: Track | None


class TransportRequested(Message):
    """UI message for a transport button press."""

    def __init__(self, intent: TransportIntent) -> None:
        super().__init__()
        self.intent = intent


class ShuffleToggleRequested(Message):
    """UI message for the shuffle indicator press."""


class RepeatCycleRequested(Message):
    """UI message for the repeat indicator press."""


class SeekRequested(Message):
    """UI message carrying a seek target as a fraction of the duration."""

    def __init__(self, fraction: float, is_final: bool) -> None:
        super().__init__()
        self.fraction = fraction
        self.is_final = is_final
