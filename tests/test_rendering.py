from __future__ import annotations

from datetime import date, timedelta

import pytest

from candlechart import viewport as vp
from candlechart.rendering import (
    DEFAULT_THEME,
    CanvasSize,
    FillRect,
    Line,
    PlotArea,
    PriceScale,
    StrokeRect,
    Text,
    render,
)
from candlechart.series import OHLCVPoint, Series

CANVAS = CanvasSize(800, 500)


def _series(closes: list[float], start: date = date(2024, 3, 1)) -> Series:
    points = []
    prev = closes[0]
    for i, close in enumerate(closes):
        open_ = prev
        points.append(
            OHLCVPoint(
                start + timedelta(days=i),
                open_,
                max(open_, close) + 1,
                min(open_, close) - 1,
                close,
                2_500_000,
            )
        )
        prev = close
    return Series(points)


def _candle_bodies(commands):
    return [c for c in commands if isinstance(c, FillRect) and c.color in (DEFAULT_THEME.up, DEFAULT_THEME.down)]


def _wicks(commands):
    return [c for c in commands if isinstance(c, Line) and c.color in (DEFAULT_THEME.up, DEFAULT_THEME.down)]


def test_layers_are_emitted_back_to_front():
    series = _series([10, 11, 12, 11, 13, 14, 12, 15, 16, 15, 17, 18])
    commands = render(series, vp.initial(len(series)), CANVAS, symbol="AAPL", source_label="Live data (yahoo)")

    assert commands[0] == FillRect(0, 0, 800, 500, DEFAULT_THEME.background)
    kinds = [type(c).__name__ for c in commands]
    first_body = commands.index(_candle_bodies(commands)[0])
    border_at = kinds.index("StrokeRect")
    assert all(isinstance(c, (Line, Text)) for c in commands[1:first_body - 1])
    assert border_at > first_body
    assert isinstance(commands[-1], Text)


def test_price_grid_has_five_lines_spanning_bounds():
    series = _series([10, 20, 15, 12, 18, 11, 19, 14, 16, 13])
    commands = render(series, vp.initial(len(series)), CANVAS)
    area = PlotArea.for_canvas(CANVAS)

    price_labels = [c for c in commands if isinstance(c, Text) and c.align == "right" and c.x == area.left - 10]
    assert len(price_labels) == 5
    assert price_labels[0].text == "$21.00"
    assert price_labels[-1].text == "$9.00"
    grid_rows = [c for c in commands if isinstance(c, Line) and c.color == DEFAULT_THEME.grid and c.y1 == c.y2]
    assert [line.y1 for line in grid_rows] == pytest.approx([area.top + area.height * i / 4 for i in range(5)])


def test_date_grid_uses_one_eighth_stride():
    series = _series([10.0 + (i % 5) for i in range(40)])
    commands = render(series, vp.initial(40), CANVAS)

    date_labels = [c for c in commands if isinstance(c, Text) and c.align == "center"]
    assert len(date_labels) == 8
    assert date_labels[0].text == "3/1"
    assert date_labels[1].text == "3/6"


def test_one_candle_per_visible_point_with_direction_colors():
    series = _series([10, 12, 11, 11])
    window = vp.initial(4, min_visible=1)
    commands = render(series, window, CANVAS)

    bodies = _candle_bodies(commands)
    wicks = _wicks(commands)
    assert len(bodies) == 4 and len(wicks) == 4
    # first candle is open == close (doji); up only when close > open
    assert [b.color for b in bodies] == [DEFAULT_THEME.down, DEFAULT_THEME.up, DEFAULT_THEME.down, DEFAULT_THEME.down]
    assert all(b.height >= 1 for b in bodies)
    xs = [w.x1 for w in wicks]
    assert xs == sorted(xs)
    steps = {round(b - a, 6) for a, b in zip(xs, xs[1:])}
    assert len(steps) == 1


def test_higher_prices_map_to_smaller_y():
    area = PlotArea.for_canvas(CANVAS)
    scale = PriceScale(10.0, 20.0, area)
    assert scale.y(20.0) == pytest.approx(area.top)
    assert scale.y(10.0) == pytest.approx(area.bottom)
    assert scale.y(15.0) < scale.y(12.0)


def test_flat_series_degrades_to_a_line():
    flat = Series(OHLCVPoint(date(2024, 1, 1) + timedelta(days=i), 5.0, 5.0, 5.0, 5.0, 0) for i in range(12))
    commands = render(flat, vp.initial(12), CANVAS)

    ys = {w.y1 for w in _wicks(commands)} | {w.y2 for w in _wicks(commands)}
    area = PlotArea.for_canvas(CANVAS)
    assert ys == {area.top + area.height / 2}
    assert all(b.height == 1 for b in _candle_bodies(commands))


def test_only_visible_slice_is_drawn():
    series = _series([float(10 + i) for i in range(30)])
    window = vp.zoom_in(vp.initial(30))
    commands = render(series, window, CANVAS)
    assert len(_candle_bodies(commands)) == window.size


def test_overlay_reports_change_against_prior_point_and_source():
    series = _series([100, 100, 110])
    commands = render(
        series,
        vp.initial(3),
        CANVAS,
        symbol="TMDX",
        source_label="Simulated data",
        warning="showing simulated data",
    )
    texts = [c.text for c in commands if isinstance(c, Text)]

    assert "TMDX: $110.00" in texts
    assert "+10.00 (+10.00%)" in texts
    assert "Simulated data" in texts
    assert "showing simulated data" in texts
    assert "2024-03-03 | Vol 2.5M" in texts


def test_single_point_renders_without_error():
    series = _series([42.0])
    commands = render(series, vp.initial(1), CANVAS, symbol="ONE")
    texts = [c.text for c in commands if isinstance(c, Text)]
    assert "+0.00 (+0.00%)" in texts
    assert len(_candle_bodies(commands)) == 1


def test_geometry_follows_canvas_size():
    series = _series([10, 11, 12, 13, 12, 11, 10, 11, 12, 13])
    small = render(series, vp.initial(10), CanvasSize(400, 300))
    large = render(series, vp.initial(10), CanvasSize(1200, 700))

    small_border = next(c for c in small if isinstance(c, StrokeRect))
    large_border = next(c for c in large if isinstance(c, StrokeRect))
    assert small_border.width == 400 - 120
    assert large_border.width == 1200 - 120
    assert large_border.height == 700 - 110


def test_empty_canvas_emits_nothing():
    series = _series([10, 11])
    assert render(series, vp.initial(2), CanvasSize(0, 300)) == ()
