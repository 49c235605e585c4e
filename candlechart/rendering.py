"""Pure candlestick rendering: (visible slice, canvas size) -> draw commands.

Commands use canvas pixel coordinates with the origin at the top-left corner
and y growing downward.  Nothing is cached between calls; every geometry value
is derived from the canvas size passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .series import OHLCVPoint, Series
from .viewport import ViewportState

PADDING = 60.0
BOTTOM_PADDING = 50.0
PRICE_GRID_LINES = 5
DATE_GRID_TARGET = 8
BODY_RATIO = 0.8
MIN_CANDLE_WIDTH = 2.0
MIN_BODY_HEIGHT = 1.0


@dataclass(frozen=True)
class CanvasSize:
    width: float
    height: float


@dataclass(frozen=True)
class Theme:
    background: str = "#ffffff"
    grid: str = "#e0e0e0"
    label: str = "#666666"
    border: str = "#cccccc"
    text: str = "#000000"
    muted: str = "#888888"
    warning: str = "#b45309"
    up: str = "#00c851"
    down: str = "#ff3547"


DEFAULT_THEME = Theme()


@dataclass(frozen=True)
class FillRect:
    x: float
    y: float
    width: float
    height: float
    color: str


@dataclass(frozen=True)
class StrokeRect:
    x: float
    y: float
    width: float
    height: float
    color: str
    line_width: float = 1.0


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    line_width: float = 1.0


@dataclass(frozen=True)
class Text:
    text: str
    x: float
    y: float
    color: str
    size: float = 12.0
    align: str = "left"
    bold: bool = False


DrawCommand = Union[FillRect, StrokeRect, Line, Text]


@dataclass(frozen=True)
class PlotArea:
    left: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width

    @classmethod
    def for_canvas(cls, canvas: CanvasSize) -> "PlotArea":
        width = max(1.0, canvas.width - PADDING * 2)
        height = max(1.0, canvas.height - PADDING - BOTTOM_PADDING)
        return cls(PADDING, PADDING, width, height)


@dataclass(frozen=True)
class PriceScale:
    """Linear price -> y mapping; higher prices map to smaller y."""

    low: float
    high: float
    area: PlotArea

    @property
    def degenerate(self) -> bool:
        return self.high <= self.low

    def y(self, price: float) -> float:
        if self.degenerate:
            return self.area.top + self.area.height / 2
        return self.area.top + (self.high - price) * self.area.height / (self.high - self.low)


def price_bounds(points: Series) -> Tuple[float, float]:
    return min(point.low for point in points), max(point.high for point in points)


def slot_x(area: PlotArea, index: int, count: int) -> float:
    """Centre of the ``index``-th of ``count`` equal slots across the plot."""
    return area.left + area.width * (index + 0.5) / count


def _grid(visible: Series, area: PlotArea, scale: PriceScale, theme: Theme) -> List[DrawCommand]:
    commands: List[DrawCommand] = []
    steps = PRICE_GRID_LINES - 1
    for i in range(PRICE_GRID_LINES):
        y = area.top + area.height * i / steps
        price = scale.high - (scale.high - scale.low) * i / steps
        commands.append(Line(area.left, y, area.right, y, theme.grid))
        commands.append(Text(f"${price:.2f}", area.left - 10, y + 4, theme.label, size=12, align="right"))

    count = len(visible)
    stride = max(1, count // DATE_GRID_TARGET)
    for i in range(0, count, stride):
        x = slot_x(area, i, count)
        day = visible[i].date
        commands.append(Line(x, area.top, x, area.bottom, theme.grid))
        commands.append(Text(f"{day.month}/{day.day}", x, area.bottom + 15, theme.label, size=10, align="center"))
    return commands


def _candle(point: OHLCVPoint, x: float, width: float, scale: PriceScale, theme: Theme) -> List[DrawCommand]:
    color = theme.up if point.is_up else theme.down
    open_y = scale.y(point.open)
    close_y = scale.y(point.close)
    body_top = min(open_y, close_y)
    body_height = max(MIN_BODY_HEIGHT, abs(close_y - open_y))
    return [
        Line(x, scale.y(point.high), x, scale.y(point.low), color),
        FillRect(x - width / 2, body_top, width, body_height, color),
    ]


def _overlay(
    visible: Series,
    canvas: CanvasSize,
    theme: Theme,
    symbol: str,
    source_label: str,
    warning: Optional[str],
) -> List[DrawCommand]:
    last = visible[-1]
    prior = visible[-2] if len(visible) > 1 else last
    change = last.close - prior.close
    pct = change / prior.close * 100
    sign = "+" if change >= 0 else ""
    commands: List[DrawCommand] = [
        Text(f"{symbol}: ${last.close:.2f}", 10, 25, theme.text, size=16, bold=True),
        Text(
            f"{sign}{change:.2f} ({sign}{pct:.2f}%)",
            10,
            45,
            theme.up if change >= 0 else theme.down,
            size=14,
        ),
        Text(source_label, canvas.width - 10, 25, theme.muted, size=11, align="right"),
    ]
    if warning:
        commands.append(Text(warning, canvas.width - 10, 45, theme.warning, size=11, align="right"))
    commands.append(
        Text(
            f"{last.date.isoformat()} | Vol {last.volume / 1_000_000:.1f}M",
            10,
            canvas.height - 15,
            theme.muted,
            size=10,
        )
    )
    return commands


def render(
    series: Series,
    viewport: ViewportState,
    canvas: CanvasSize,
    *,
    symbol: str = "",
    source_label: str = "",
    warning: Optional[str] = None,
    theme: Theme = DEFAULT_THEME,
) -> Tuple[DrawCommand, ...]:
    """Return the draw commands for the visible window, back to front."""

    visible = series[viewport.start:viewport.end]
    if not len(visible) or canvas.width <= 0 or canvas.height <= 0:
        return ()

    area = PlotArea.for_canvas(canvas)
    low, high = price_bounds(visible)
    scale = PriceScale(low, high, area)

    commands: List[DrawCommand] = [FillRect(0, 0, canvas.width, canvas.height, theme.background)]
    commands.extend(_grid(visible, area, scale, theme))

    count = len(visible)
    candle_width = max(MIN_CANDLE_WIDTH, area.width / count * BODY_RATIO)
    for index, point in enumerate(visible):
        commands.extend(_candle(point, slot_x(area, index, count), candle_width, scale, theme))

    commands.append(StrokeRect(area.left, area.top, area.width, area.height, theme.border, line_width=2))
    commands.extend(_overlay(visible, canvas, theme, symbol, source_label, warning))
    return tuple(commands)


__all__ = [
    "CanvasSize",
    "DEFAULT_THEME",
    "DrawCommand",
    "FillRect",
    "Line",
    "PlotArea",
    "PriceScale",
    "StrokeRect",
    "Text",
    "Theme",
    "price_bounds",
    "render",
]
