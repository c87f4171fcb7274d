"""Builds the static initial playlist from audio files, backed by mutagen."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from mutagen import File as MutagenFile

from pocket_player.services.audio_output import DEFAULT_SOURCE_SUFFIXES
from pocket_player.services.playlist import Track

logger = logging.getLogger(__name__)

DEMO_TRACKS = (
    ("Night Bus", "The Late Shift"),
    ("Paper Moons", "The Late Shift, Ana Rey"),
    ("Short Circuit", "Voltline"),
    ("Glass Harbor", "Voltline, Mira K"),
    ("Low Tide", "Harbor Lights"),
    ("Undefeated", "Harbor Lights, Jo Park"),
    ("Afterglow", "The Late Shift"),
)


@dataclass(frozen=True)
class AudioProbe:
    """Tag and stream info read from one audio file."""

    title: str | None = None
    artist: str | None = None
    duration_s: float | None = None
    error: str | None = None


def probe_audio(path: Path) -> AudioProbe:
    """Read title/artist tags and stream length; `error` set when unreadable."""
    try:
        audio = MutagenFile(path, easy=True)
    except Exception as exc:
        return AudioProbe(error=str(exc))
    if audio is None:
        return AudioProbe(error="Unsupported or unreadable file")
    tags = audio.tags or {}
    duration_s = None
    length = getattr(audio.info, "length", None)
    if isinstance(length, (int, float)) and length > 0:
        duration_s = float(length)
    return AudioProbe(
        title=_first_tag(tags, "title"),
        artist=_first_tag(tags, "artist"),
        duration_s=duration_s,
    )


def expand_sources(paths: Iterable[Path | str]) -> list[Path]:
    """Expand directories into their audio files, keeping argument order."""
    found: list[Path] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            found.extend(
                sorted(
                    child
                    for child in path.iterdir()
                    if child.is_file()
                    and child.suffix.lower() in DEFAULT_SOURCE_SUFFIXES
                )
            )
        else:
            found.append(path)
    return found


def tracks_from_paths(paths: Iterable[Path | str]) -> list[Track]:
    """Create tracks for files, falling back to the file stem for titles."""
    tracks: list[Track] = []
    for index, path in enumerate(expand_sources(paths), start=1):
        probe = probe_audio(path) if path.is_file() else AudioProbe(error="missing")
        if probe.error is not None:
            logger.debug("Tags unavailable for %s: %s", path, probe.error)
        tracks.append(
            Track(
                track_id=f"t{index:03d}",
                title=probe.title or path.stem,
                artist=probe.artist,
                source=str(path),
            )
        )
    return tracks


def demo_tracks() -> list[Track]:
    """Built-in playlist whose sources resolve on the fake device."""
    return [
        Track(
            track_id=f"demo{index:02d}",
            title=title,
            artist=artist,
            source=title.lower().replace(" ", "_"),
        )
        for index, (title, artist) in enumerate(DEMO_TRACKS, start=1)
    ]


def _first_tag(tags: object, key: str) -> str | None:
    getter = getattr(tags, "get", None)
    if getter is None:
        return None
    value = getter(key)
    if isinstance(value, list) and value:
        first = value[0]
        if first is None:
            return None
        return str(first).strip() or None
    if isinstance(value, str):
        return value.strip() or None
    return None
