"""Synthetic daily OHLCV generator used when live data is unavailable or disabled.

The walk is mean-reverting: each day's move combines a trend bias, a slow
sinusoidal cycle, uniform noise scaled by the profile's volatility and a pull
back toward the profile's base price.  Values are random; only the structure
(point count, date span, OHLC ordering, price range) is guaranteed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Mapping, Tuple

import numpy as np

from .series import OHLCVPoint, Series, validate_point

logger = logging.getLogger(__name__)

CYCLE_AMPLITUDE = 0.005
CYCLE_PERIOD_DAYS = 15.0
MOMENTUM_SPREAD = 0.015
REVERSION_STRENGTH = 0.005
WICK_MAX = 0.02
VOLUME_MOVE_WEIGHT = 8.0
START_JITTER = 0.15


@dataclass(frozen=True)
class SyntheticProfile:
    """Per-symbol parameters for the synthetic walk."""

    base_price: float
    price_range: Tuple[float, float]
    daily_volatility: float
    trend_bias: float = 0.0
    base_volume: int = 1_000_000

    def __post_init__(self) -> None:
        low, high = self.price_range
        if not (0 < low <= self.base_price <= high):
            raise ValueError(f"base price {self.base_price} outside range {self.price_range}")
        if self.daily_volatility < 0:
            raise ValueError("daily_volatility must be non-negative")
        if self.base_volume < 0:
            raise ValueError("base_volume must be non-negative")


DEFAULT_PROFILE = SyntheticProfile(base_price=100.0, price_range=(80.0, 130.0), daily_volatility=0.025)

PROFILES: Dict[str, SyntheticProfile] = {
    "TMDX": SyntheticProfile(117.0, (80.0, 180.0), 0.045, trend_bias=0.001, base_volume=400_000),
    "AAPL": SyntheticProfile(180.0, (150.0, 200.0), 0.02, trend_bias=0.001),
    "TSLA": SyntheticProfile(250.0, (180.0, 350.0), 0.045, trend_bias=0.002),
}


def profile_for(symbol: str, profiles: Mapping[str, SyntheticProfile] | None = None) -> SyntheticProfile:
    table = PROFILES if profiles is None else profiles
    return table.get((symbol or "").strip().upper(), DEFAULT_PROFILE)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _daily_delta(profile: SyntheticProfile, day_index: int, price: float, rng: np.random.Generator) -> float:
    cyclical = math.sin(day_index / CYCLE_PERIOD_DAYS) * CYCLE_AMPLITUDE
    noise = rng.uniform(-1.0, 1.0) * profile.daily_volatility
    momentum = rng.uniform(-0.5, 0.5) * MOMENTUM_SPREAD
    reversion = (profile.base_price - price) / profile.base_price * REVERSION_STRENGTH
    return profile.trend_bias + cyclical + noise + momentum + reversion


def _make_point(day: date, price: float, profile: SyntheticProfile, rng: np.random.Generator) -> OHLCVPoint:
    open_ = price
    day_range = profile.daily_volatility * rng.uniform(0.3, 1.0)
    close = open_ * (1 + rng.uniform(-0.5, 0.5) * day_range)
    high = max(open_, close) * (1 + rng.uniform(0.0, WICK_MAX))
    low = min(open_, close) * (1 - rng.uniform(0.0, WICK_MAX))

    move = abs(close - open_) / open_
    volume = int(profile.base_volume * (1 + move * VOLUME_MOVE_WEIGHT) * rng.uniform(0.5, 1.5))

    open_, close = round(open_, 2), round(close, 2)
    # rounding can nudge the body past a tight wick
    high = max(round(high, 2), open_, close)
    low = min(round(low, 2), open_, close)
    return validate_point(OHLCVPoint(day, open_, high, low, close, max(volume, 0)))


def generate_series(
    symbol: str,
    days: int,
    *,
    rng: np.random.Generator | None = None,
    today: date | None = None,
    profile: SyntheticProfile | None = None,
) -> Series:
    """Return ``days + 1`` consecutive daily points ending at ``today``."""

    if days < 0:
        raise ValueError("days must be non-negative")
    generator = rng if rng is not None else np.random.default_rng()
    config = profile or profile_for(symbol)
    end_day = today or datetime.now(timezone.utc).date()
    low_bound, high_bound = config.price_range

    price = config.base_price + generator.uniform(-0.5, 0.5) * config.base_price * START_JITTER
    price = _clamp(price, low_bound, high_bound)
    points: list[OHLCVPoint] = []
    for offset in range(days, -1, -1):
        day = end_day - timedelta(days=offset)
        price *= 1 + _daily_delta(config, offset, price, generator)
        price = _clamp(price, low_bound, high_bound)
        point = _make_point(day, price, config, generator)
        points.append(point)
        price = point.close

    logger.debug(
        "synthetic_series_generated",
        extra={"symbol": symbol.upper(), "days": days, "points": len(points)},
    )
    return Series(points)


__all__ = ["DEFAULT_PROFILE", "PROFILES", "SyntheticProfile", "generate_series", "profile_for"]
