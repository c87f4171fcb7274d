"""Tests for the bar visualizer math."""

from __future__ import annotations

import random

from pocket_player.ui.meter_bars import BAR_COUNT, MIN_HEIGHT, bar_heights, render_rows


def test_idle_bars_sit_at_minimum_height() -> None:
    heights = bar_heights(0.9, is_playing=False)
    assert heights == [MIN_HEIGHT] * BAR_COUNT


def test_playing_bars_are_jittered_fraction_of_power() -> None:
    rng = random.Random(5)
    for _ in range(20):
        heights = bar_heights(0.8, is_playing=True, rng=rng)
        assert len(heights) == 15
        assert all(0.8 * 0.6 <= h <= 0.8 for h in heights)


def test_playing_bars_clamp_power_and_floor() -> None:
    assert all(h <= 1.0 for h in bar_heights(7.0, is_playing=True))
    assert bar_heights(0.0, is_playing=True, count=3) == [MIN_HEIGHT] * 3


def test_render_rows_uses_block_glyphs_top_first() -> None:
    assert render_rows([1.0, 0.5, 0.0], rows=2) == ["█    ", "█ █  "]


def test_render_rows_partial_heights_use_eighth_glyphs() -> None:
    assert render_rows([0.5], rows=1) == ["▄"]
    assert render_rows([0.0, 1.0], rows=1) == ["  █"]
