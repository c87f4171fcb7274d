"""Audio output contracts and error types.

`PlaybackEngine` depends on these protocols to stay device-agnostic. Concrete
devices (fake/VLC) resolve a track source into a single-use output handle and
translate engine-specific behavior into the shared handle commands.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

FinishedCallback = Callable[[bool], None]
DEFAULT_SOURCE_SUFFIXES = (".mp3", ".m4a", ".flac", ".ogg", ".wav")


class AudioOutputError(Exception):
    """Base class for failures reported by the audio output subsystem."""


class SourceNotFound(AudioOutputError):
    """Track source could not be resolved to a readable file."""


class DecodeError(AudioOutputError):
    """Track source exists but the stream could not be opened."""


class TransientMeterReadError(AudioOutputError):
    """A single power reading was unusable; the next tick may succeed."""


class AudioOutputHandle(Protocol):
    """One decoded stream bound to one track.

    Handles are never reused: the engine stops and discards a handle on every
    track change. `on_finished` callbacks may fire from a foreign thread.
    """

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def stop(self) -> None: ...

    async def set_position(self, seconds: float) -> None: ...

    async def position(self) -> float: ...

    async def duration(self) -> float: ...

    async def instantaneous_power(self) -> float: ...

    def on_finished(self, callback: FinishedCallback) -> None: ...


class AudioDevice(Protocol):
    """Process-wide output device that opens per-track handles."""

    async def activate_session(self) -> None: ...

    async def release_session(self) -> None: ...

    async def open(self, source: str) -> AudioOutputHandle: ...


def resolve_source_path(
    source: str,
    search_dirs: Iterable[Path] = (),
    suffixes: Iterable[str] = DEFAULT_SOURCE_SUFFIXES,
) -> Path:
    """Resolve a track source reference to an existing file.

    Absolute or cwd-relative paths win. Otherwise each search directory is
    tried, and bare names without a suffix are matched against `suffixes`.
    """
    if not source or not source.strip():
        raise SourceNotFound("Empty audio source reference.")
    direct = Path(source).expanduser()
    candidates: list[Path] = [direct]
    if not direct.is_absolute():
        candidates.extend(Path(root) / source for root in search_dirs)
    suffix_list = tuple(suffixes)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
        if candidate.suffix:
            continue
        for suffix in suffix_list:
            with_suffix = candidate.with_name(candidate.name + suffix)
            if with_suffix.is_file():
                return with_suffix
    raise SourceNotFound(f"Audio file not found for {source!r}.")
