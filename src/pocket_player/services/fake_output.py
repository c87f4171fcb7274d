"""Fake audio output device for deterministic testing and demo runs."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable, Mapping
from contextlib import suppress
from typing import Literal

from .audio_output import DecodeError, FinishedCallback, SourceNotFound

HandleStatus = Literal["idle", "playing", "paused", "stopped"]


class FakeOutputHandle:
    """In-memory handle that simulates playback progress and power."""

    def __init__(
        self,
        source: str,
        *,
        duration_s: float,
        tick_interval_s: float,
        auto_advance: bool,
    ) -> None:
        self.source = source
        self.status: HandleStatus = "idle"
        self.power_db: float | None = None
        self._position_s = 0.0
        self._duration_s = max(0.0, duration_s)
        self._tick_interval_s = tick_interval_s
        self._auto_advance = auto_advance
        self._callbacks: list[FinishedCallback] = []
        self._task: asyncio.Task[None] | None = None

    async def play(self) -> None:
        self.status = "playing"
        if self._auto_advance and self._task is None:
            self._task = asyncio.create_task(self._ticker_loop())

    async def pause(self) -> None:
        if self.status == "playing":
            self.status = "paused"

    async def stop(self) -> None:
        self.status = "stopped"
        await self._cancel_ticker()

    async def set_position(self, seconds: float) -> None:
        self._position_s = _clamp(seconds, 0.0, self._duration_s)

    async def position(self) -> float:
        return self._position_s

    async def duration(self) -> float:
        return self._duration_s

    async def instantaneous_power(self) -> float:
        if self.power_db is not None:
            return self.power_db
        if self.status != "playing":
            return -160.0
        return _synthetic_power_db(self._position_s)

    def on_finished(self, callback: FinishedCallback) -> None:
        self._callbacks.append(callback)

    def advance(self, seconds: float) -> None:
        """Move the playhead forward without reaching the completion signal."""
        self._position_s = _clamp(self._position_s + seconds, 0.0, self._duration_s)

    def finish(self, success: bool = True) -> None:
        """Fire the completion signal as the real output would at track end."""
        if success:
            self._position_s = self._duration_s
        self.status = "stopped"
        for callback in list(self._callbacks):
            callback(success)

    async def _cancel_ticker(self) -> None:
        task = self._task
        self._task = None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _ticker_loop(self) -> None:
        try:
            while self.status in {"playing", "paused"}:
                await asyncio.sleep(self._tick_interval_s)
                if self.status != "playing":
                    continue
                self.advance(self._tick_interval_s)
                if self._duration_s > 0 and self._position_s >= self._duration_s:
                    self._task = None
                    self.finish(True)
                    return
        except asyncio.CancelledError:
            pass


class FakeAudioDevice:
    """Device that resolves sources from a fixed table instead of the disk."""

    def __init__(
        self,
        *,
        durations: Mapping[str, float] | None = None,
        default_duration_s: float = 180.0,
        missing: Iterable[str] = (),
        undecodable: Iterable[str] = (),
        tick_interval_s: float = 0.25,
        auto_advance: bool = True,
    ) -> None:
        self._durations = dict(durations or {})
        self._default_duration_s = default_duration_s
        self._missing = set(missing)
        self._undecodable = set(undecodable)
        self._tick_interval_s = tick_interval_s
        self._auto_advance = auto_advance
        self.session_active = False
        self.activations = 0
        self.releases = 0
        self.opened: list[FakeOutputHandle] = []

    async def activate_session(self) -> None:
        self.session_active = True
        self.activations += 1

    async def release_session(self) -> None:
        self.session_active = False
        self.releases += 1

    async def open(self, source: str) -> FakeOutputHandle:
        if not source or source in self._missing:
            raise SourceNotFound(f"Audio file not found for {source!r}.")
        if source in self._undecodable:
            raise DecodeError(f"Could not decode {source!r}.")
        handle = FakeOutputHandle(
            source,
            duration_s=self._durations.get(source, self._default_duration_s),
            tick_interval_s=self._tick_interval_s,
            auto_advance=self._auto_advance,
        )
        self.opened.append(handle)
        return handle

    @property
    def last_handle(self) -> FakeOutputHandle | None:
        return self.opened[-1] if self.opened else None


def _synthetic_power_db(position_s: float) -> float:
    """Deterministic loudness curve between roughly -42 dB and -4 dB."""
    swing = 0.5 + 0.5 * math.sin((position_s * 5.4) + 0.3)
    return -42.0 + 38.0 * swing


def _clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))
