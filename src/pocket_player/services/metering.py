"""Output power metering for the bar visualizer and progress display."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass

from .audio_output import AudioOutputHandle, TransientMeterReadError

logger = logging.getLogger(__name__)

POWER_FLOOR_DB = -80.0
POWER_GAMMA = 1.5
DEFAULT_INTERVAL_S = 0.1


@dataclass(frozen=True)
class MeterReading:
    """One sampler tick: elapsed position plus normalized output power."""

    position_s: float
    power: float
    transient: bool = False


def normalize_power(
    db: float, *, floor_db: float = POWER_FLOOR_DB, gamma: float = POWER_GAMMA
) -> float:
    """Map decibel power onto a 0.0-1.0 visual intensity."""
    try:
        value = float(db)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    if value >= 0.0:
        return 1.0
    if value <= floor_db:
        return 0.0
    return ((value - floor_db) / -floor_db) ** gamma


async def read_meter(handle: AudioOutputHandle) -> MeterReading:
    """Read position and power from a handle, degrading bad power reads to 0."""
    position = max(0.0, float(await handle.position()))
    try:
        db = await handle.instantaneous_power()
        if not math.isfinite(db):
            raise TransientMeterReadError(f"non-finite power reading: {db!r}")
    except TransientMeterReadError as exc:
        logger.debug("Meter read degraded to silence: %s", exc)
        return MeterReading(position_s=position, power=0.0, transient=True)
    return MeterReading(position_s=position, power=normalize_power(db))


class MeteringSampler:
    """Repeating tick task bound to the Playing state's lifetime.

    The owner calls `start()` on entering Playing and `stop()` on leaving it.
    Each tick awaits `on_tick`, which is expected to serialize with transport
    operations.
    """

    def __init__(
        self,
        *,
        on_tick: Callable[[], Awaitable[None]],
        interval_s: float = DEFAULT_INTERVAL_S,
    ) -> None:
        self._on_tick = on_tick
        self._interval_s = max(0.01, float(interval_s))
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0
        self._started_monotonic_s: float | None = None

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._ticks = 0
        self._started_monotonic_s = time.monotonic()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        if task is asyncio.current_task():
            # Stopped from inside a tick: the loop exits once the tick returns.
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        if self._started_monotonic_s is not None:
            logger.debug(
                "Metering sampler stopped",
                extra={
                    "event": "metering_sampler_stopped",
                    "ticks": self._ticks,
                    "window_s": round(time.monotonic() - self._started_monotonic_s, 3),
                },
            )
            self._started_monotonic_s = None

    async def _run(self) -> None:
        me = asyncio.current_task()
        try:
            while self._task is me:
                await asyncio.sleep(self._interval_s)
                if self._task is not me:
                    return
                try:
                    await self._on_tick()
                except asyncio.CancelledError:
                    raise
                except Exception:  # pragma: no cover - output safety net
                    logger.exception("Metering tick failed")
                    continue
                self._ticks += 1
        except asyncio.CancelledError:
            return
