"""OHLCV point and ordered daily series."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Iterator, Sequence, Tuple, overload

import pandas as pd

from .errors import InvalidPointError

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")


@dataclass(slots=True, frozen=True)
class OHLCVPoint:
    """A single daily OHLCV bar.

    Construction does not validate; use :func:`validate_point` before a point
    enters a :class:`Series`.
    """

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @property
    def is_up(self) -> bool:
        return self.close > self.open

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def validate_point(point: OHLCVPoint) -> OHLCVPoint:
    """Return ``point`` unchanged or raise :class:`InvalidPointError`."""

    if not isinstance(point.date, date):
        raise InvalidPointError(f"date must be a calendar day, got {point.date!r}")
    prices = (point.open, point.high, point.low, point.close)
    for value in prices:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidPointError(f"{point.date}: non-finite price {value!r}")
    if point.open <= 0 or point.close <= 0:
        raise InvalidPointError(f"{point.date}: open/close must be positive")
    if point.high < point.low:
        raise InvalidPointError(f"{point.date}: high {point.high} below low {point.low}")
    if point.high < max(point.open, point.close):
        raise InvalidPointError(f"{point.date}: high {point.high} below body")
    if point.low > min(point.open, point.close):
        raise InvalidPointError(f"{point.date}: low {point.low} above body")
    if isinstance(point.volume, bool) or not isinstance(point.volume, int) or point.volume < 0:
        raise InvalidPointError(f"{point.date}: volume must be a non-negative integer")
    return point


class Series(Sequence[OHLCVPoint]):
    """Immutable, strictly date-ordered sequence of validated points."""

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[OHLCVPoint] = ()) -> None:
        items = tuple(points)
        for prev, current in zip(items, items[1:]):
            if current.date <= prev.date:
                raise ValueError(f"series dates must be strictly increasing: {prev.date} then {current.date}")
        self._points: Tuple[OHLCVPoint, ...] = items

    @overload
    def __getitem__(self, index: int) -> OHLCVPoint: ...

    @overload
    def __getitem__(self, index: slice) -> "Series": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            if index.step is not None and index.step <= 0:
                raise ValueError("series slices must keep ascending date order")
            sliced = Series.__new__(Series)
            sliced._points = self._points[index]
            return sliced
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[OHLCVPoint]:
        return iter(self._points)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Series):
            return self._points == other._points
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._points)

    def __repr__(self) -> str:
        if not self._points:
            return "Series([])"
        return f"Series(len={len(self._points)}, {self._points[0].date}..{self._points[-1].date})"

    @property
    def points(self) -> Tuple[OHLCVPoint, ...]:
        return self._points

    @property
    def dates(self) -> list[date]:
        return [point.date for point in self._points]

    def to_frame(self) -> pd.DataFrame:
        """Return the series as a DataFrame indexed by date."""
        frame = pd.DataFrame(
            [{column: getattr(point, column) for column in OHLCV_COLUMNS} for point in self._points],
            columns=list(OHLCV_COLUMNS),
        )
        frame.index = pd.DatetimeIndex([pd.Timestamp(point.date) for point in self._points], name="date")
        return frame


def _coerce_volume(raw: Any) -> int:
    if raw is None:
        return 0
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidPointError(f"volume {raw!r} is not numeric") from exc
    if not math.isfinite(value):
        raise InvalidPointError(f"volume {raw!r} is not finite")
    return int(value)


def _coerce_price(raw: Any) -> float:
    if raw is None or isinstance(raw, bool):
        raise InvalidPointError("missing price")
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidPointError(f"price {raw!r} is not numeric") from exc


def point_from_row(row: dict[str, Any]) -> OHLCVPoint:
    """Build and validate a point from a raw mapping of OHLCV fields."""

    raw_date = row.get("date")
    if isinstance(raw_date, pd.Timestamp):
        day = raw_date.date()
    elif isinstance(raw_date, date):
        day = raw_date
    elif isinstance(raw_date, str):
        try:
            day = date.fromisoformat(raw_date.strip()[:10])
        except ValueError as exc:
            raise InvalidPointError(f"unparseable date {raw_date!r}") from exc
    else:
        raise InvalidPointError(f"unparseable date {raw_date!r}")
    point = OHLCVPoint(
        date=day,
        open=_coerce_price(row.get("open")),
        high=_coerce_price(row.get("high")),
        low=_coerce_price(row.get("low")),
        close=_coerce_price(row.get("close")),
        volume=_coerce_volume(row.get("volume")),
    )
    return validate_point(point)


def build_series(rows: Iterable[dict[str, Any]]) -> tuple[Series, int]:
    """Validate raw rows into a sorted :class:`Series`.

    Invalid rows and repeated dates are dropped, never corrected. Returns the
    series together with the number of dropped rows.
    """

    valid: list[OHLCVPoint] = []
    dropped = 0
    for row in rows:
        try:
            valid.append(point_from_row(row))
        except InvalidPointError as exc:
            dropped += 1
            logger.debug("ohlcv_point_dropped %s", exc)

    valid.sort(key=lambda point: point.date)
    unique: list[OHLCVPoint] = []
    for point in valid:
        if unique and unique[-1].date == point.date:
            dropped += 1
            continue
        unique.append(point)
    return Series(unique), dropped


__all__ = ["OHLCV_COLUMNS", "OHLCVPoint", "Series", "build_series", "point_from_row", "validate_point"]
