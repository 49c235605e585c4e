"""Live daily OHLCV sources (Yahoo Finance, Alpha Vantage).

Each source exposes the same two-step contract: ``fetch`` issues one HTTP GET
and returns the decoded payload, ``normalize`` turns that payload into raw
OHLCV rows.  Validation into a :class:`~candlechart.series.Series` is left to
the acquisition chain so every source is judged by the same rules.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable
from urllib.parse import quote, urlencode

import httpx
import pandas as pd

from .config import Settings, get_settings
from .errors import MalformedPayloadError, TransportError

logger = logging.getLogger(__name__)

RawRow = Dict[str, Any]

_ALPHA_VANTAGE_ERROR_KEYS = ("Error Message", "Note", "Information")
_ALPHA_VANTAGE_COMPACT_LIMIT = 100


@runtime_checkable
class LiveSource(Protocol):
    """Uniform contract for a live daily-bar provider."""

    name: str

    async def fetch(self, client: httpx.AsyncClient, symbol: str, days: int) -> Any:
        ...

    def normalize(self, payload: Any, days: int) -> List[RawRow]:
        ...


_REDACTED_PARAMS = frozenset({"apikey"})


async def _get_json(client: httpx.AsyncClient, source: str, url: str, params: Mapping[str, Any] | None) -> Any:
    shown = {key: value for key, value in (params or {}).items() if key not in _REDACTED_PARAMS}
    logger.debug("ohlcv_request %s %s", source, url, extra={"source": source, "params": shown})
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        body = (exc.response.text or "")[:400]
        raise TransportError(source, f"HTTP {exc.response.status_code}: {body}") from exc
    except httpx.HTTPError as exc:
        raise TransportError(source, f"{type(exc).__name__}: {exc}") from exc
    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedPayloadError(source, "response body is not JSON") from exc


class YahooChartSource:
    """Yahoo Finance v8 chart API, optionally reached through a pass-through proxy."""

    name = "yahoo"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def build_url(self, symbol: str, days: int) -> tuple[str, Dict[str, str] | None]:
        base = f"{self._settings.yahoo_base_url}/v8/finance/chart/{quote(symbol.upper(), safe='')}"
        params = {"interval": "1d", "range": f"{days}d", "includePrePost": "false"}
        proxy = self._settings.yahoo_proxy_url
        if proxy:
            target = f"{base}?{urlencode(params)}"
            return f"{proxy}{quote(target, safe='')}", None
        return base, params

    async def fetch(self, client: httpx.AsyncClient, symbol: str, days: int) -> Any:
        url, params = self.build_url(symbol, days)
        return await _get_json(client, self.name, url, params)

    def normalize(self, payload: Any, days: int) -> List[RawRow]:
        try:
            chart = payload["chart"]
            if chart.get("error"):
                raise MalformedPayloadError(self.name, f"chart error: {chart['error']}")
            result = chart["result"][0]
            timestamps = result.get("timestamp") or []
            quote_block = result["indicators"]["quote"][0]
        except MalformedPayloadError:
            raise
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise MalformedPayloadError(self.name, "unexpected chart payload shape") from exc
        if not isinstance(timestamps, list) or not isinstance(quote_block, Mapping):
            raise MalformedPayloadError(self.name, "timestamp/quote arrays missing")

        columns = {name: quote_block.get(name) or [] for name in ("open", "high", "low", "close", "volume")}
        if not all(isinstance(values, list) for values in columns.values()):
            raise MalformedPayloadError(self.name, "quote arrays are not lists")
        try:
            dates = pd.to_datetime(timestamps, unit="s", utc=True)
        except (TypeError, ValueError) as exc:
            raise MalformedPayloadError(self.name, "timestamps are not epoch seconds") from exc

        rows: List[RawRow] = []
        for ts, open_, high, low, close, volume in zip(
            dates, columns["open"], columns["high"], columns["low"], columns["close"], columns["volume"]
        ):
            if pd.isna(ts):
                continue
            rows.append(
                {
                    "date": ts.date(),
                    "open": open_,
                    "high": high,
                    "low": low,
                    "close": close,
                    "volume": volume,
                }
            )
        return rows


class AlphaVantageSource:
    """Alpha Vantage ``TIME_SERIES_DAILY`` endpoint."""

    name = "alpha_vantage"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def fetch(self, client: httpx.AsyncClient, symbol: str, days: int) -> Any:
        url = f"{self._settings.alpha_vantage_base_url}/query"
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol.upper(),
            "apikey": self._settings.alpha_vantage_api_key,
            "outputsize": "compact" if days + 1 <= _ALPHA_VANTAGE_COMPACT_LIMIT else "full",
        }
        return await _get_json(client, self.name, url, params)

    def normalize(self, payload: Any, days: int) -> List[RawRow]:
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError(self.name, "payload is not an object")
        for key in _ALPHA_VANTAGE_ERROR_KEYS:
            if payload.get(key):
                raise MalformedPayloadError(self.name, str(payload[key])[:200])
        series = payload.get("Time Series (Daily)")
        if not isinstance(series, Mapping):
            raise MalformedPayloadError(self.name, "missing 'Time Series (Daily)'")

        rows: List[RawRow] = []
        for day, values in series.items():
            if not isinstance(values, Mapping):
                raise MalformedPayloadError(self.name, f"bar {day!r} is not an object")
            rows.append(
                {
                    "date": day,
                    "open": _to_float(values.get("1. open")),
                    "high": _to_float(values.get("2. high")),
                    "low": _to_float(values.get("3. low")),
                    "close": _to_float(values.get("4. close")),
                    "volume": _to_float(values.get("5. volume")),
                }
            )
        rows.sort(key=lambda row: str(row["date"]))
        return rows[-(days + 1):]


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def default_sources(settings: Settings | None = None) -> list[LiveSource]:
    """Primary then secondary live source."""
    resolved = settings or get_settings()
    return [YahooChartSource(resolved), AlphaVantageSource(resolved)]


__all__ = ["AlphaVantageSource", "LiveSource", "RawRow", "YahooChartSource", "default_sources"]
