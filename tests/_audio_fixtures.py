"""Helpers that write small PCM WAV files for analysis tests."""

from __future__ import annotations

import struct
import wave
from pathlib import Path


def write_wav(
    path: Path,
    *,
    amplitude: int,
    seconds: float = 1.0,
    frame_rate: int = 8000,
    channels: int = 1,
) -> Path:
    frames = int(frame_rate * seconds)
    samples: list[int] = []
    for index in range(frames):
        value = amplitude if index % 2 == 0 else -amplitude
        samples.extend([value] * channels)
    with wave.open(str(path), "wb") as handle:
        handle.setnchannels(channels)
        handle.setsampwidth(2)
        handle.setframerate(frame_rate)
        handle.writeframes(struct.pack(f"<{len(samples)}h", *samples))
    return path
