"""Now-playing metadata publishing and remote transport commands."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Literal

from pocket_player.events import PlaybackStateChanged

if TYPE_CHECKING:
    from pocket_player.services.playback_engine import PlaybackEngine

logger = logging.getLogger(__name__)

RemoteCommand = Literal["play", "pause", "next", "previous"]
REMOTE_COMMANDS: tuple[RemoteCommand, ...] = ("play", "pause", "next", "previous")


@dataclass(frozen=True)
class NowPlayingInfo:
    """Metadata exposed to system-level media surfaces."""

    title: str
    artist: str
    duration_s: float | None
    elapsed_s: float | None
    artwork: str | None
    is_playing: bool


NowPlayingSink = Callable[[NowPlayingInfo], Awaitable[None]]


class NowPlayingPublisher:
    """Pulls metadata from the engine after each state change and pushes it out.

    Elapsed time is rounded to whole seconds before comparison so a sink sees
    one update per second of playback rather than one per metering tick.
    """

    def __init__(self, engine: PlaybackEngine, sink: NowPlayingSink) -> None:
        self._engine = engine
        self._sink = sink
        self._last: NowPlayingInfo | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._published = 0

    @property
    def last_published(self) -> NowPlayingInfo | None:
        return self._last

    @property
    def published_count(self) -> int:
        return self._published

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._engine.subscribe(self._on_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def publish(self) -> None:
        info = _coarse(self._engine.now_playing())
        if info == self._last:
            return
        self._last = info
        self._published += 1
        await self._sink(info)

    async def _on_event(self, event: object) -> None:
        if isinstance(event, PlaybackStateChanged):
            await self.publish()


class RemoteCommandAdapter:
    """Maps lock-screen style remote commands onto engine transport calls."""

    def __init__(self, engine: PlaybackEngine) -> None:
        self._engine = engine

    async def handle(self, command: str) -> bool:
        """Dispatch a command; returns False when it was not applicable."""
        status = self._engine.state.status
        if command == "play":
            if status == "playing":
                return False
            await self._engine.toggle_play_pause()
        elif command == "pause":
            if status != "playing":
                return False
            await self._engine.toggle_play_pause()
        elif command == "next":
            await self._engine.next()
        elif command == "previous":
            await self._engine.previous()
        else:
            logger.warning("Unsupported remote command: %s", command)
            return False
        logger.debug("Remote command handled: %s", command)
        return True


async def log_now_playing(info: NowPlayingInfo) -> None:
    """Default sink used when no system media surface is attached."""
    logger.info(
        "Now playing: %s - %s",
        info.artist,
        info.title,
        extra={
            "event": "now_playing",
            "duration_s": info.duration_s,
            "elapsed_s": info.elapsed_s,
            "is_playing": info.is_playing,
        },
    )


def _coarse(info: NowPlayingInfo) -> NowPlayingInfo:
    if info.elapsed_s is None:
        return info
    return replace(info, elapsed_s=float(int(info.elapsed_s)))
