"""VLC audio output device using python-vlc."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Iterable
from contextlib import suppress
from pathlib import Path
from typing import Any

from pocket_player.services.audio_output import (
    AudioOutputError,
    DecodeError,
    FinishedCallback,
    TransientMeterReadError,
    resolve_source_path,
)
from pocket_player.services.power_envelope import PowerEnvelope, analyze_power_envelope
from pocket_player.services.track_catalog import probe_audio
from pocket_player.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)


class VLCOutputHandle:
    """One libVLC media player bound to one resolved file.

    libVLC fires end/error events on its own thread; callbacks registered via
    `on_finished` are invoked there and must marshal onto the event loop.
    """

    def __init__(
        self,
        player: Any,
        *,
        path: Path,
        duration_s: float,
        vlc_module: Any,
    ) -> None:
        self._player = player
        self._path = path
        self._duration_s = duration_s
        self._vlc = vlc_module
        self._callbacks: list[FinishedCallback] = []
        self._envelope: PowerEnvelope | None = None
        self._envelope_task: asyncio.Task[None] | None = None
        self._released = False
        events = player.event_manager()
        events.event_attach(
            vlc_module.EventType.MediaPlayerEndReached, self._on_end_reached
        )
        events.event_attach(
            vlc_module.EventType.MediaPlayerEncounteredError, self._on_error
        )

    @property
    def path(self) -> Path:
        return self._path

    def start_envelope_analysis(self) -> None:
        """Decode the power envelope in the background; power reads degrade until ready."""
        if self._envelope_task is None:
            self._envelope_task = asyncio.create_task(self._load_envelope())

    async def play(self) -> None:
        self._ensure_alive()
        if self._player.play() == -1:
            raise DecodeError(f"libVLC could not start {self._path.name}.")

    async def pause(self) -> None:
        self._ensure_alive()
        self._player.set_pause(1)

    async def stop(self) -> None:
        if self._released:
            return
        self._released = True
        task = self._envelope_task
        self._envelope_task = None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        events = self._player.event_manager()
        events.event_detach(self._vlc.EventType.MediaPlayerEndReached)
        events.event_detach(self._vlc.EventType.MediaPlayerEncounteredError)
        await run_blocking(self._player.stop)
        self._player.release()

    async def set_position(self, seconds: float) -> None:
        self._ensure_alive()
        self._player.set_time(int(max(0.0, seconds) * 1000))

    async def position(self) -> float:
        self._ensure_alive()
        return max(self._player.get_time(), 0) / 1000.0

    async def duration(self) -> float:
        if self._duration_s > 0:
            return self._duration_s
        self._ensure_alive()
        return max(self._player.get_length(), 0) / 1000.0

    async def instantaneous_power(self) -> float:
        envelope = self._envelope
        if envelope is None:
            raise TransientMeterReadError("power envelope not ready")
        return envelope.power_at(await self.position())

    def on_finished(self, callback: FinishedCallback) -> None:
        self._callbacks.append(callback)

    async def _load_envelope(self) -> None:
        envelope = await run_blocking(analyze_power_envelope, self._path)
        if envelope is None:
            logger.info("No power envelope for %s; meter will stay flat.", self._path)
            return
        self._envelope = envelope
        if self._duration_s <= 0 and math.isfinite(envelope.duration_s):
            self._duration_s = envelope.duration_s
        logger.debug(
            "Power envelope ready for %s (%d points).",
            self._path.name,
            len(envelope.positions_s),
        )

    def _ensure_alive(self) -> None:
        if self._released:
            raise AudioOutputError("Output handle already released.")

    def _fire(self, success: bool) -> None:
        for callback in list(self._callbacks):
            callback(success)

    def _on_end_reached(self, _event: Any) -> None:
        self._fire(True)

    def _on_error(self, _event: Any) -> None:
        self._fire(False)


class VLCAudioDevice:
    """Opens VLC-backed handles; the libVLC instance is the audio session."""

    def __init__(self, *, search_dirs: Iterable[Path] = (), args: Iterable[str] = ()) -> None:
        self._search_dirs = tuple(Path(root) for root in search_dirs)
        self._args = tuple(args)
        self._vlc: Any = None
        self._instance: Any = None

    async def activate_session(self) -> None:
        if self._instance is not None:
            return
        try:
            import vlc

            instance = vlc.Instance(*self._args)
        except Exception as exc:  # pragma: no cover - depends on VLC install
            raise AudioOutputError(
                "VLC backend unavailable. Ensure VLC/libVLC is installed."
            ) from exc
        if instance is None:
            raise AudioOutputError(
                "VLC backend unavailable. Ensure VLC/libVLC is installed."
            )
        self._vlc = vlc
        self._instance = instance

    async def release_session(self) -> None:
        instance = self._instance
        self._instance = None
        if instance is not None:
            instance.release()

    async def open(self, source: str) -> VLCOutputHandle:
        if self._instance is None:
            raise AudioOutputError("Audio session is not active.")
        path = await run_blocking(resolve_source_path, source, self._search_dirs)
        probe = await run_blocking(probe_audio, path)
        if probe.error is not None:
            raise DecodeError(f"{path.name}: {probe.error}")
        media = self._instance.media_new_path(str(path))
        if media is None:
            raise DecodeError(f"libVLC rejected {path.name}.")
        player = self._instance.media_player_new()
        player.set_media(media)
        media.release()
        handle = VLCOutputHandle(
            player,
            path=path,
            duration_s=probe.duration_s or 0.0,
            vlc_module=self._vlc,
        )
        handle.start_envelope_analysis()
        return handle
