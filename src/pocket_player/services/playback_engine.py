"""Playback orchestration between UI intent and the audio output device.

`PlaybackEngine` is the transport/queue authority. It owns the playlist and
the single live output handle, applies repeat/shuffle rules when a track
finishes, drives the metering sampler while playing, and emits state
snapshots to registered observers.

Every transport operation and every metering tick runs under one
`asyncio.Lock`, so no two of them interleave on the same state. Observer
notifications are queued while the lock is held and dispatched after it is
released, which lets observers call back into the engine.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from typing import Literal

from pocket_player.events import PlaybackStateChanged, TrackChanged
from pocket_player.services.audio_output import (
    AudioDevice,
    AudioOutputError,
    AudioOutputHandle,
    FinishedCallback,
    SourceNotFound,
)
from pocket_player.services.metering import (
    DEFAULT_INTERVAL_S,
    MeteringSampler,
    read_meter,
)
from pocket_player.services.now_playing import NowPlayingInfo
from pocket_player.services.playlist import Playlist, Track

logger = logging.getLogger(__name__)

STATUS = Literal["stopped", "playing", "paused"]
REPEAT = Literal["OFF", "ALL", "ONE"]
REPEAT_CYCLE: dict[REPEAT, REPEAT] = {"OFF": "ALL", "ALL": "ONE", "ONE": "OFF"}
DEFAULT_OPEN_TIMEOUT_S = 5.0

Observer = Callable[[object], Awaitable[None]]


def _format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message


@dataclass(frozen=True)
class PlaybackState:
    """Immutable snapshot of the live session exposed to observers."""

    tracks: tuple[Track, ...] = ()
    current_index: int = 0
    status: STATUS = "stopped"
    shuffle: bool = False
    repeat_mode: REPEAT = "OFF"
    position_s: float = 0.0
    duration_s: float = 0.0
    power: float = 0.0
    error: str | None = None

    @property
    def current_track(self) -> Track | None:
        if 0 <= self.current_index < len(self.tracks):
            return self.tracks[self.current_index]
        return None

    @property
    def has_next(self) -> bool:
        return self.current_index < len(self.tracks) - 1

    @property
    def unavailable(self) -> bool:
        return self.error is not None


class PlaybackEngine:
    """Owns playback state and the current output handle."""

    def __init__(
        self,
        *,
        device: AudioDevice,
        tracks: Sequence[Track] = (),
        shuffle: bool = False,
        repeat_mode: REPEAT = "OFF",
        artwork: str | None = None,
        meter_interval_s: float = DEFAULT_INTERVAL_S,
        open_timeout_s: float = DEFAULT_OPEN_TIMEOUT_S,
        shuffle_random: random.Random | None = None,
    ) -> None:
        self._device = device
        self._artwork = artwork
        self._rng = shuffle_random or random.Random()
        self._open_timeout_s = max(0.1, float(open_timeout_s))
        self._playlist = Playlist.of(tracks)
        self._state = PlaybackState(
            tracks=self._playlist.active, repeat_mode=repeat_mode
        )
        self._lock = asyncio.Lock()
        self._handle: AudioOutputHandle | None = None
        self._observers: list[Observer] = []
        self._pending_events: list[object] = []
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._session_active = False
        self._sampler = MeteringSampler(
            on_tick=self._on_meter_tick, interval_s=meter_interval_s
        )
        if shuffle:
            self._apply_shuffle(True)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def playlist(self) -> Playlist:
        return self._playlist

    @property
    def current_handle(self) -> AudioOutputHandle | None:
        return self._handle

    @property
    def sampler_running(self) -> bool:
        return self._sampler.running

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an async observer; returns a callable that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def start(self) -> None:
        """Acquire the process-wide audio session once."""
        if self._session_active:
            return
        await self._device.activate_session()
        self._session_active = True
        logger.info("Audio session activated (%d tracks).", len(self._playlist))

    async def shutdown(self) -> None:
        """Stop playback and release the audio session."""
        try:
            async with self._lock:
                if self._handle is not None or self._state.status != "stopped":
                    await self._stop_locked()
            await self._flush_events()
            current = asyncio.current_task()
            pending = [t for t in self._background_tasks if t is not current]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            if self._session_active:
                self._session_active = False
                await self._device.release_session()
                logger.info("Audio session released.")

    async def __aenter__(self) -> PlaybackEngine:
        await self.start()
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.shutdown()

    async def load_and_play(self, index: int) -> None:
        """Replace the output handle with one for `index` and start playing."""
        async with self._lock:
            await self._load_and_play_locked(index)
        await self._flush_events()

    async def toggle_play_pause(self) -> None:
        async with self._lock:
            handle = self._handle
            status = self._state.status
            if handle is None or status == "stopped":
                await self._load_and_play_locked(self._state.current_index)
            elif status == "playing":
                try:
                    await handle.pause()
                except AudioOutputError as exc:
                    await self._fail_output_locked(self._state.current_index, exc)
                else:
                    await self._sampler.stop()
                    self._state = replace(self._state, status="paused")
                    self._emit_state_locked()
            else:
                try:
                    await handle.play()
                except AudioOutputError as exc:
                    await self._fail_output_locked(self._state.current_index, exc)
                else:
                    self._state = replace(self._state, status="playing")
                    self._emit_state_locked()
                    self._sampler.start()
        await self._flush_events()

    async def seek(self, position_s: float) -> None:
        """Clamp and apply a new position to both the handle and the state."""
        async with self._lock:
            position = _clamp_position(position_s, self._state.duration_s)
            if self._handle is not None:
                try:
                    await self._handle.set_position(position)
                except AudioOutputError as exc:
                    logger.warning("Seek to %.2fs failed: %s", position, exc)
                    return
            self._state = replace(self._state, position_s=position)
            self._emit_state_locked()
        await self._flush_events()

    async def next(self) -> None:
        async with self._lock:
            await self._advance_locked(1)
        await self._flush_events()

    async def previous(self) -> None:
        async with self._lock:
            await self._advance_locked(-1)
        await self._flush_events()

    async def toggle_shuffle(self) -> None:
        """Flip shuffle, reordering around the current track without a reload."""
        async with self._lock:
            self._apply_shuffle(not self._state.shuffle)
            self._emit_state_locked()
        await self._flush_events()

    async def cycle_repeat_mode(self) -> None:
        async with self._lock:
            mode = REPEAT_CYCLE[self._state.repeat_mode]
            self._state = replace(self._state, repeat_mode=mode)
            self._emit_state_locked()
        await self._flush_events()

    async def stop(self) -> None:
        async with self._lock:
            await self._stop_locked()
        await self._flush_events()

    async def on_track_finished(
        self, success: bool, *, handle: AudioOutputHandle | None = None
    ) -> None:
        """Apply repeat/shuffle policy after the output reports completion.

        `handle` identifies the reporting output; signals from a handle that
        has since been replaced are ignored.
        """
        async with self._lock:
            if handle is not None and handle is not self._handle:
                logger.debug("Ignoring completion signal from superseded output.")
                return
            if self._handle is None:
                return
            if not success:
                logger.warning(
                    "Playback interrupted before track end (index=%d).",
                    self._state.current_index,
                )
                return
            repeat_mode = self._state.repeat_mode
            if repeat_mode == "ONE":
                await self._load_and_play_locked(self._state.current_index)
            elif repeat_mode == "ALL":
                await self._advance_locked(1)
            elif self._state.shuffle or self._state.has_next:
                await self._advance_locked(1)
            else:
                await self._stop_locked()
        await self._flush_events()

    def now_playing(self) -> NowPlayingInfo:
        """Pull-based now-playing metadata for external publishers."""
        state = self._state
        track = state.current_track
        return NowPlayingInfo(
            title=(track.title if track and track.title else "Unknown"),
            artist=(track.artist if track and track.artist else "Unknown"),
            duration_s=state.duration_s if self._handle is not None else None,
            elapsed_s=state.position_s if self._handle is not None else None,
            artwork=self._artwork,
            is_playing=state.status == "playing",
        )

    def _apply_shuffle(self, enabled: bool) -> None:
        current = self._state.current_track
        if enabled:
            self._playlist = self._playlist.shuffled(current, self._rng)
            index = 0
        else:
            self._playlist = self._playlist.restored()
            found = self._playlist.index_of(current)
            index = found if found is not None else 0
        self._state = replace(
            self._state,
            tracks=self._playlist.active,
            current_index=index,
            shuffle=enabled,
        )
        logger.debug(
            "Shuffle %s with %d tracks.",
            "enabled" if enabled else "disabled",
            len(self._playlist),
        )

    async def _advance_locked(self, direction: int) -> None:
        count = len(self._playlist)
        if count == 0:
            return
        if self._state.shuffle:
            index = self._rng.randrange(count)
        else:
            index = (self._state.current_index + direction + count) % count
        await self._load_and_play_locked(index)

    async def _load_and_play_locked(self, index: int) -> None:
        count = len(self._playlist)
        if count == 0:
            return
        if not 0 <= index < count:
            logger.warning("Ignoring load for out-of-range index %d.", index)
            return
        track = self._playlist[index]
        try:
            handle = await asyncio.wait_for(
                self._device.open(track.source), timeout=self._open_timeout_s
            )
        except SourceNotFound as exc:
            logger.warning(
                "Audio source not found for track %s: %s",
                track.track_id,
                exc,
                extra={"event": "source_not_found", "source": track.source},
            )
            self._state = replace(
                self._state,
                error=_format_user_error(
                    what_failed=f"Could not find audio for '{track.title or track.source}'.",
                    likely_cause="Track file is missing, moved, or no longer readable.",
                    next_step="Verify the file path and restart with a valid playlist.",
                    detail=str(exc),
                ),
            )
            self._emit_state_locked()
            return
        except asyncio.TimeoutError:
            await self._fail_output_locked(
                index,
                AudioOutputError(
                    f"Opening {track.source!r} took longer than {self._open_timeout_s}s."
                ),
            )
            return
        except AudioOutputError as exc:
            await self._fail_output_locked(index, exc)
            return

        await self._discard_handle_locked()
        self._handle = handle
        handle.on_finished(self._completion_callback(handle))
        try:
            duration = float(await handle.duration())
            await handle.play()
        except AudioOutputError as exc:
            await self._fail_output_locked(index, exc)
            return
        if not math.isfinite(duration) or duration < 0:
            duration = 0.0
        self._state = replace(
            self._state,
            current_index=index,
            status="playing",
            position_s=0.0,
            duration_s=duration,
            power=0.0,
            error=None,
        )
        self._pending_events.append(TrackChanged(track))
        self._emit_state_locked()
        self._sampler.start()
        logger.info(
            "Playing track %d/%d: %s",
            index + 1,
            count,
            track.title or track.source,
            extra={"event": "track_started", "track_id": track.track_id},
        )

    async def _fail_output_locked(self, index: int, exc: AudioOutputError) -> None:
        logger.warning(
            "Audio output failed for index %d: %s",
            index,
            exc,
            extra={"event": "output_failed", "error_type": type(exc).__name__},
        )
        await self._discard_handle_locked()
        self._state = replace(
            self._state,
            current_index=index,
            status="stopped",
            position_s=0.0,
            duration_s=0.0,
            power=0.0,
            error=_format_user_error(
                what_failed="Failed to start playback.",
                likely_cause="Audio output could not open or decode the media.",
                next_step="Verify the file is a supported audio format, then retry.",
                detail=str(exc),
            ),
        )
        self._emit_state_locked()

    async def _stop_locked(self) -> None:
        await self._discard_handle_locked()
        self._state = replace(
            self._state, status="stopped", position_s=0.0, duration_s=0.0, power=0.0
        )
        self._emit_state_locked()

    async def _discard_handle_locked(self) -> None:
        await self._sampler.stop()
        handle = self._handle
        self._handle = None
        if handle is None:
            return
        try:
            await handle.stop()
        except AudioOutputError as exc:
            logger.debug("Ignoring stop failure on discarded output: %s", exc)

    def _completion_callback(self, handle: AudioOutputHandle) -> FinishedCallback:
        loop = asyncio.get_running_loop()

        def callback(success: bool) -> None:
            try:
                loop.call_soon_threadsafe(self._schedule_finished, handle, success)
            except RuntimeError:
                logger.debug("Dropped completion signal after event loop closed.")

        return callback

    def _schedule_finished(self, handle: AudioOutputHandle, success: bool) -> None:
        task = asyncio.create_task(self.on_track_finished(success, handle=handle))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _on_meter_tick(self) -> None:
        async with self._lock:
            handle = self._handle
            if handle is None or self._state.status != "playing":
                return
            try:
                reading = await read_meter(handle)
            except AudioOutputError as exc:
                logger.debug("Meter tick skipped: %s", exc)
                return
            position = _clamp_position(reading.position_s, self._state.duration_s)
            if (
                position == self._state.position_s
                and reading.power == self._state.power
            ):
                return
            self._state = replace(self._state, position_s=position, power=reading.power)
            self._emit_state_locked()
        await self._flush_events()

    def _emit_state_locked(self) -> None:
        self._pending_events.append(PlaybackStateChanged(self._state))

    async def _flush_events(self) -> None:
        events = self._pending_events
        self._pending_events = []
        for event in events:
            for observer in list(self._observers):
                try:
                    await observer(event)
                except Exception:
                    logger.exception("Playback observer failed for %s", event)


def _clamp_position(position_s: float, duration_s: float) -> float:
    try:
        value = float(position_s)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    upper = max(0.0, float(duration_s))
    return max(0.0, min(value, upper))
