"""Progress bar that doubles as a seek control."""

from __future__ import annotations

from time import monotonic

from rich.text import Text
from textual.events import Blur, Key, MouseDown, MouseMove, MouseUp
from textual.widget import Widget

from pocket_player.events import SeekRequested
from pocket_player.utils.time_format import format_time_pair_s


class SeekBar(Widget):
    """Elapsed/duration bar with mouse drag and arrow-key seeking."""

    DEFAULT_CSS = """
    SeekBar {
        height: 1;
    }
    SeekBar:focus {
        background: $boost;
    }
    """

    def __init__(
        self,
        *,
        key_step: float = 0.02,
        emit_interval: float = 0.05,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.fraction = 0.0
        self.position_s = 0.0
        self.duration_s = 0.0
        self.key_step = key_step
        self.emit_interval = emit_interval
        self._dragging = False
        self._last_emit = 0.0
        self._bar_start = 0
        self._bar_length = 0
        self.can_focus = True

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def set_progress(self, position_s: float, duration_s: float) -> None:
        """Reflect engine progress unless the user is mid-drag."""
        self.duration_s = max(0.0, duration_s)
        if self._dragging:
            return
        self.position_s = max(0.0, position_s)
        self.fraction = progress_fraction(self.position_s, self.duration_s)
        self.refresh()

    def render(self) -> Text:
        width = self.size.width
        if width <= 0:
            return Text("")
        if self._dragging:
            shown_s = self.fraction * self.duration_s
        else:
            shown_s = self.position_s
        elapsed, total = format_time_pair_s(shown_s, self.duration_s)
        bar_length = width - len(elapsed) - len(total) - 2
        if bar_length < 3:
            self._bar_length = 0
            return Text(f"{elapsed}/{total}"[:width], no_wrap=True)
        self._bar_start = len(elapsed) + 1
        self._bar_length = bar_length
        text = Text(no_wrap=True)
        text.append(elapsed)
        text.append(" ")
        text.append_text(_render_bar(self.fraction, bar_length))
        text.append(" ")
        text.append(total)
        return text

    def on_mouse_down(self, event: MouseDown) -> None:
        if event.button != 1 or not self._point_in_bar(event.x):
            return
        self.focus()
        self._dragging = True
        self.capture_mouse()
        self._set_from_x(event.x, is_final=False)
        event.stop()

    def on_mouse_move(self, event: MouseMove) -> None:
        if not self._dragging:
            return
        self._set_from_x(event.x, is_final=False)
        event.stop()

    def on_mouse_up(self, event: MouseUp) -> None:
        if not self._dragging:
            return
        self._dragging = False
        self.release_mouse()
        self._set_from_x(event.x, is_final=True)
        event.stop()

    def on_blur(self, event: Blur) -> None:
        if not self._dragging:
            return
        self._dragging = False
        self.release_mouse()
        self.refresh()
        event.stop()

    def on_key(self, event: Key) -> None:
        if event.key not in {"left", "right"}:
            return
        delta = -self.key_step if event.key == "left" else self.key_step
        self._set_fraction(self.fraction + delta, is_final=True)
        event.stop()

    def _point_in_bar(self, x: int) -> bool:
        if self._bar_length <= 0:
            return False
        return self._bar_start <= x < self._bar_start + self._bar_length

    def _set_from_x(self, x: int, *, is_final: bool) -> None:
        if self._bar_length <= 0:
            return
        relative = x - self._bar_start
        fraction = 0.0 if self._bar_length == 1 else relative / (self._bar_length - 1)
        self._set_fraction(fraction, is_final=is_final)

    def _set_fraction(self, fraction: float, *, is_final: bool) -> None:
        self.fraction = _clamp_fraction(fraction)
        now = monotonic()
        if is_final or now - self._last_emit >= self.emit_interval:
            self._last_emit = now
            self.post_message(SeekRequested(self.fraction, is_final))
        self.refresh()


def progress_fraction(position_s: float, duration_s: float) -> float:
    if duration_s <= 0:
        return 0.0
    return _clamp_fraction(position_s / duration_s)


def _render_bar(fraction: float, bar_length: int) -> Text:
    filled = int(round(_clamp_fraction(fraction) * bar_length))
    text = Text()
    text.append("━" * filled, style="bold #FF4F9A")
    text.append("─" * (bar_length - filled), style="#5A5A6E")
    return text


def _clamp_fraction(value: float) -> float:
    return max(0.0, min(value, 1.0))
