"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic.
"""

from __future__ import annotations

import math

from pocket_player.services.playback_engine import REPEAT

BACKENDS = ("fake", "vlc")
METER_HZ_DEFAULT = 10.0
METER_HZ_MIN = 1.0
METER_HZ_MAX = 30.0
_REPEAT_NAMES: dict[str, REPEAT] = {
    "off": "OFF",
    "none": "OFF",
    "all": "ALL",
    "one": "ONE",
}


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def meter_interval_s(hz: float | None) -> float:
    """Convert a metering rate to a tick interval, clamped to 1-30 Hz."""
    if hz is None:
        return 1.0 / METER_HZ_DEFAULT
    try:
        value = float(hz)
    except (TypeError, ValueError):
        value = METER_HZ_DEFAULT
    if not math.isfinite(value) or value <= 0:
        value = METER_HZ_DEFAULT
    value = max(METER_HZ_MIN, min(value, METER_HZ_MAX))
    return 1.0 / value


def normalize_repeat_mode(value: str | None) -> REPEAT:
    """Map a user-facing repeat name onto the engine mode (default OFF)."""
    if not value:
        return "OFF"
    return _REPEAT_NAMES.get(value.strip().lower(), "OFF")


def resolve_backend_name(cli_backend: str | None, *, has_paths: bool) -> str:
    """Pick the output backend: explicit flag wins, file playlists default to VLC."""
    if cli_backend in BACKENDS:
        return cli_backend
    return "vlc" if has_paths else "fake"
