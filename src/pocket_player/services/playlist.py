"""Immutable track and playlist values."""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Track:
    """A single playable entry. `source` is resolved by the audio device."""

    track_id: str
    title: str | None
    artist: str | None
    source: str


@dataclass(frozen=True)
class Playlist:
    """Active navigation order plus the untouched canonical order.

    `canonical` is never reordered; `active` is always a permutation of it.
    """

    canonical: tuple[Track, ...] = ()
    active: tuple[Track, ...] = field(default=())

    @classmethod
    def of(cls, tracks: Sequence[Track]) -> Playlist:
        ordered = tuple(tracks)
        return cls(canonical=ordered, active=ordered)

    def __len__(self) -> int:
        return len(self.active)

    def __getitem__(self, index: int) -> Track:
        return self.active[index]

    @property
    def is_shuffled(self) -> bool:
        return self.active != self.canonical

    def shuffled(self, current: Track | None, rng: random.Random) -> Playlist:
        """Return a random permutation of canonical with `current` first."""
        remaining = [track for track in self.canonical if track != current]
        rng.shuffle(remaining)
        if current is not None and current in self.canonical:
            remaining.insert(0, current)
        return Playlist(canonical=self.canonical, active=tuple(remaining))

    def restored(self) -> Playlist:
        return Playlist(canonical=self.canonical, active=self.canonical)

    def index_of(self, track: Track | None) -> int | None:
        if track is None:
            return None
        try:
            return self.active.index(track)
        except ValueError:
            return None
