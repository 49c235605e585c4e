"""Visible index window over a series, driven by drag, wheel and zoom buttons.

Every transition is a pure function ``(state, input) -> state`` and clamps
before committing, so the window always satisfies
``0 <= start < end <= length`` and ``min(min_visible, length) <= end - start``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_MIN_VISIBLE = 10
WHEEL_ZOOM_OUT = 1.1
WHEEL_ZOOM_IN = 0.9
BUTTON_ZOOM_IN = 0.8
BUTTON_ZOOM_OUT = 1.2


@dataclass(frozen=True)
class ViewportState:
    start: int
    end: int
    length: int
    min_visible: int = DEFAULT_MIN_VISIBLE
    drag_anchor_x: Optional[float] = None
    # window size captured at pointer-down; sensitivity stays fixed for one drag
    drag_span: Optional[int] = None

    def __post_init__(self) -> None:
        if self.length < 1:
            raise ValueError("viewport requires a non-empty series")
        if self.min_visible < 1:
            raise ValueError("min_visible must be at least 1")
        if not (0 <= self.start < self.end <= self.length):
            raise ValueError(f"invalid window [{self.start}, {self.end}) for length {self.length}")
        if self.end - self.start < self.floor_size:
            raise ValueError(f"window smaller than {self.floor_size}")
        if (self.drag_anchor_x is None) != (self.drag_span is None):
            raise ValueError("drag anchor and drag span must be set together")

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def floor_size(self) -> int:
        return min(self.min_visible, self.length)

    @property
    def dragging(self) -> bool:
        return self.drag_anchor_x is not None


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def initial(length: int, min_visible: int = DEFAULT_MIN_VISIBLE) -> ViewportState:
    """Full-range viewport for a freshly loaded series."""
    return ViewportState(start=0, end=length, length=length, min_visible=min_visible)


def reset(state: ViewportState) -> ViewportState:
    return replace(state, start=0, end=state.length)


def pointer_down(state: ViewportState, x: float) -> ViewportState:
    return replace(state, drag_anchor_x=float(x), drag_span=state.size)


def pointer_up(state: ViewportState) -> ViewportState:
    return replace(state, drag_anchor_x=None, drag_span=None)


pointer_leave = pointer_up


def pointer_move(state: ViewportState, x: float, canvas_width: float) -> ViewportState:
    """Pan while dragging; dragging right reveals older points."""

    if not state.dragging or canvas_width <= 0:
        return state
    delta_px = float(x) - state.drag_anchor_x
    sensitivity = state.drag_span / canvas_width
    index_shift = math.floor(delta_px * sensitivity)
    # slide the window as far as the bounds allow, never resizing it
    shift = _clamp(-index_shift, -state.start, state.length - state.end)
    return replace(state, start=state.start + shift, end=state.end + shift, drag_anchor_x=float(x))


def _zoom(state: ViewportState, factor: float) -> ViewportState:
    new_size = _clamp(_round_half_up(state.size * factor), state.floor_size, state.length)
    center = (state.start + state.end) / 2
    new_start = _clamp(math.floor(center - new_size / 2), 0, state.length - new_size)
    return replace(state, start=new_start, end=new_start + new_size)


def wheel(state: ViewportState, delta_y: float) -> ViewportState:
    """Scroll down (positive delta) zooms out, scroll up zooms in."""
    if delta_y > 0:
        return _zoom(state, WHEEL_ZOOM_OUT)
    if delta_y < 0:
        return _zoom(state, WHEEL_ZOOM_IN)
    return state


def zoom_in(state: ViewportState) -> ViewportState:
    return _zoom(state, BUTTON_ZOOM_IN)


def zoom_out(state: ViewportState) -> ViewportState:
    return _zoom(state, BUTTON_ZOOM_OUT)


def from_range(length: int, start: int, end: int, min_visible: int = DEFAULT_MIN_VISIBLE) -> ViewportState:
    """Build a valid viewport from an arbitrary requested range by clamping it."""

    state = initial(length, min_visible)
    size = _clamp(end - start, state.floor_size, length)
    new_start = _clamp(start, 0, length - size)
    return replace(state, start=new_start, end=new_start + size)


__all__ = [
    "DEFAULT_MIN_VISIBLE",
    "ViewportState",
    "from_range",
    "initial",
    "pointer_down",
    "pointer_leave",
    "pointer_move",
    "pointer_up",
    "reset",
    "wheel",
    "zoom_in",
    "zoom_out",
]
