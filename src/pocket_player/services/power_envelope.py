"""Decoded RMS power envelopes used as the instantaneous power source."""

from __future__ import annotations

import logging
import math
import shutil
import struct
import subprocess
import wave
from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SILENCE_DB = -160.0
_FFMPEG_SAMPLE_RATE = 22_050
_FFMPEG_BYTES_PER_SAMPLE = 2
_WAVE_SUFFIXES = {".wav", ".wave"}


@dataclass(frozen=True)
class PowerEnvelope:
    """Timestamped RMS power in dBFS, one point per bucket."""

    duration_s: float
    positions_s: tuple[float, ...]
    levels_db: tuple[float, ...]

    def power_at(self, position_s: float) -> float:
        """Power of the bucket containing `position_s` (NaN when empty)."""
        if not self.positions_s:
            return math.nan
        idx = bisect_right(self.positions_s, max(0.0, position_s)) - 1
        return self.levels_db[max(0, idx)]


def analyze_power_envelope(
    track_path: Path | str, *, bucket_ms: int = 50
) -> PowerEnvelope | None:
    """Decode a track into per-bucket RMS power; None when undecodable."""
    path = Path(track_path)
    if not path.exists() or not path.is_file():
        return None
    bucket_ms = max(10, int(bucket_ms))
    result = _analyze_wave(path, bucket_ms=bucket_ms)
    if result is not None:
        return result
    # WAV goes through the wave module only; a failed decode is final.
    if path.suffix.lower() in _WAVE_SUFFIXES:
        return None
    return _analyze_ffmpeg(path, bucket_ms=bucket_ms)


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def rms_to_db(rms: float) -> float:
    if rms <= 0.0 or not math.isfinite(rms):
        return SILENCE_DB
    return max(SILENCE_DB, 20.0 * math.log10(min(1.0, rms)))


def _analyze_wave(path: Path, *, bucket_ms: int) -> PowerEnvelope | None:
    try:
        with wave.open(str(path), "rb") as handle:
            channels = int(handle.getnchannels())
            frame_rate = int(handle.getframerate())
            sample_width = int(handle.getsampwidth())
            frame_count = int(handle.getnframes())
            if channels <= 0 or frame_rate <= 0 or sample_width <= 0:
                return None
            bucket_frames = max(1, int(frame_rate * (bucket_ms / 1000.0)))
            positions: list[float] = []
            levels: list[float] = []
            processed = 0
            while processed < frame_count:
                raw = handle.readframes(min(bucket_frames, frame_count - processed))
                if not raw:
                    break
                rms, consumed = _rms_from_pcm(
                    raw, channels=channels, sample_width=sample_width
                )
                if consumed <= 0:
                    break
                positions.append(processed / frame_rate)
                levels.append(rms_to_db(rms))
                processed += consumed
    except (wave.Error, EOFError, OSError, ValueError):
        return None
    if not positions:
        return None
    return PowerEnvelope(
        duration_s=frame_count / frame_rate,
        positions_s=tuple(positions),
        levels_db=tuple(levels),
    )


def _analyze_ffmpeg(path: Path, *, bucket_ms: int) -> PowerEnvelope | None:
    ffmpeg_bin = shutil.which("ffmpeg")
    if ffmpeg_bin is None:
        return None
    cmd = [
        ffmpeg_bin,
        "-v",
        "error",
        "-i",
        str(path),
        "-vn",
        "-sn",
        "-dn",
        "-f",
        "s16le",
        "-acodec",
        "pcm_s16le",
        "-ac",
        "1",
        "-ar",
        str(_FFMPEG_SAMPLE_RATE),
        "pipe:1",
    ]
    bucket_bytes = (
        max(1, int(_FFMPEG_SAMPLE_RATE * (bucket_ms / 1000.0)))
        * _FFMPEG_BYTES_PER_SAMPLE
    )
    proc: subprocess.Popen[bytes] | None = None
    try:
        proc = subprocess.Popen(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL
        )
        if proc.stdout is None:
            return None
        positions: list[float] = []
        levels: list[float] = []
        buffer = bytearray()
        total_samples = 0
        while True:
            chunk = proc.stdout.read(32_768)
            if chunk:
                buffer.extend(chunk)
            while len(buffer) >= bucket_bytes or (not chunk and len(buffer) >= 2):
                take = min(bucket_bytes, len(buffer) - (len(buffer) % 2))
                block = bytes(buffer[:take])
                del buffer[:take]
                rms, consumed = _rms_from_pcm(block, channels=1, sample_width=2)
                positions.append(total_samples / _FFMPEG_SAMPLE_RATE)
                levels.append(rms_to_db(rms))
                total_samples += consumed
            if not chunk:
                break
        return_code = proc.wait(timeout=2.0)
        if return_code != 0 or not positions:
            return None
        return PowerEnvelope(
            duration_s=total_samples / _FFMPEG_SAMPLE_RATE,
            positions_s=tuple(positions),
            levels_db=tuple(levels),
        )
    except (OSError, subprocess.SubprocessError):
        logger.debug("ffmpeg power analysis failed for %s", path)
        return None
    finally:
        if proc is not None and proc.poll() is None:
            proc.kill()


def _rms_from_pcm(raw: bytes, *, channels: int, sample_width: int) -> tuple[float, int]:
    """Mono-mixed RMS of a PCM block normalized to full scale."""
    bytes_per_frame = channels * sample_width
    frames = len(raw) // bytes_per_frame
    if frames <= 0:
        return 0.0, 0
    max_value = _sample_max(sample_width)
    if sample_width == 2:
        samples = struct.unpack(f"<{frames * channels}h", raw[: frames * bytes_per_frame])
        square_sum = 0.0
        for frame_idx in range(frames):
            base = frame_idx * channels
            mixed = sum(samples[base : base + channels]) / channels
            square_sum += (mixed / max_value) ** 2
        return math.sqrt(square_sum / frames), frames
    square_sum = 0.0
    for frame_idx in range(frames):
        offset = frame_idx * bytes_per_frame
        total = 0
        for channel in range(channels):
            total += _read_sample(raw, offset + channel * sample_width, sample_width)
        square_sum += ((total / channels) / max_value) ** 2
    return math.sqrt(square_sum / frames), frames


def _read_sample(raw: bytes, offset: int, sample_width: int) -> int:
    if sample_width == 1:
        return raw[offset] - 128
    if sample_width == 3:
        value = int.from_bytes(raw[offset : offset + 3], "little", signed=False)
        if value & 0x800000:
            value -= 0x1000000
        return value
    if sample_width == 4:
        return int.from_bytes(raw[offset : offset + 4], "little", signed=True)
    raise ValueError("Unsupported sample width")


def _sample_max(sample_width: int) -> float:
    if sample_width == 1:
        return 128.0
    if sample_width == 2:
        return 32768.0
    if sample_width == 3:
        return 8_388_608.0
    if sample_width == 4:
        return 2_147_483_648.0
    return 32768.0
