"""Bar-style audio visualizer driven by normalized output power."""

from __future__ import annotations

import random

from rich.text import Text
from textual.widget import Widget

BAR_COUNT = 15
MIN_HEIGHT = 1 / 30
_EIGHTHS = " ▁▂▃▄▅▆▇█"


def bar_heights(
    power: float,
    *,
    is_playing: bool,
    count: int = BAR_COUNT,
    rng: random.Random | None = None,
) -> list[float]:
    """Per-bar height fractions: power scaled by a 0.6-1.0 jitter each frame."""
    if not is_playing:
        return [MIN_HEIGHT] * count
    source = rng or random
    level = max(0.0, min(1.0, power))
    return [max(MIN_HEIGHT, level * source.uniform(0.6, 1.0)) for _ in range(count)]


def render_rows(heights: list[float], rows: int) -> list[str]:
    """Render height fractions as `rows` lines of block glyphs, top line first."""
    rows = max(1, rows)
    lines: list[str] = []
    for row in range(rows - 1, -1, -1):
        chars = []
        for height in heights:
            eighths = int(round(max(0.0, min(1.0, height)) * rows * 8)) - row * 8
            chars.append(_EIGHTHS[max(0, min(8, eighths))])
        lines.append(" ".join(chars))
    return lines


class MeterBars(Widget):
    DEFAULT_CSS = """
    MeterBars {
        height: 4;
        content-align: center bottom;
    }
    """

    def __init__(self, *, rng: random.Random | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._rng = rng or random.Random()
        self._heights = bar_heights(0.0, is_playing=False)

    def update_level(self, power: float, *, is_playing: bool) -> None:
        self._heights = bar_heights(power, is_playing=is_playing, rng=self._rng)
        self.refresh()

    def render(self) -> Text:
        rows = max(1, self.size.height)
        return Text("\n".join(render_rows(self._heights, rows)), style="#FF4F9A")
