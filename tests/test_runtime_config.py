"""Tests for runtime config precedence behavior."""

from __future__ import annotations

import pytest

from pocket_player.cli import build_parser
from pocket_player.runtime_config import (
    meter_interval_s,
    normalize_repeat_mode,
    resolve_backend_name,
    resolve_log_level,
)


def test_resolve_log_level_precedence_matrix() -> None:
    assert resolve_log_level(verbose=False, quiet=False) == "INFO"
    assert resolve_log_level(verbose=True, quiet=False) == "DEBUG"
    assert resolve_log_level(verbose=False, quiet=True) == "WARNING"
    assert resolve_log_level(verbose=True, quiet=True) == "WARNING"


def test_backend_parser_and_log_resolution_consistent() -> None:
    args = build_parser().parse_args(["--backend", "vlc", "--verbose", "--quiet"])
    assert args.backend == "vlc"
    assert resolve_log_level(verbose=args.verbose, quiet=args.quiet) == "WARNING"


@pytest.mark.parametrize(
    ("hz", "expected"),
    [
        (None, 0.1),
        (10, 0.1),
        (20, 0.05),
        (0.2, 1.0),
        (500, 1 / 30),
        (-3, 0.1),
        (float("nan"), 0.1),
        ("fast", 0.1),
    ],
)
def test_meter_interval_clamps_rate(hz, expected: float) -> None:
    assert meter_interval_s(hz) == pytest.approx(expected)


def test_repeat_mode_normalization() -> None:
    assert normalize_repeat_mode("all") == "ALL"
    assert normalize_repeat_mode(" ONE ") == "ONE"
    assert normalize_repeat_mode("none") == "OFF"
    assert normalize_repeat_mode("bogus") == "OFF"
    assert normalize_repeat_mode(None) == "OFF"


def test_backend_resolution_prefers_flag_then_playlist_kind() -> None:
    assert resolve_backend_name("fake", has_paths=True) == "fake"
    assert resolve_backend_name("vlc", has_paths=False) == "vlc"
    assert resolve_backend_name(None, has_paths=True) == "vlc"
    assert resolve_backend_name(None, has_paths=False) == "fake"
    assert resolve_backend_name("winamp", has_paths=False) == "fake"
