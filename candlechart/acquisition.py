"""Resilient acquisition of a daily series with ordered fallback.

Live sources are tried once each, in priority order.  Transport failures,
malformed payloads and empty normalized series are recorded and the next
source is tried; when every live source fails the synthetic generator fills
in and the result carries a warning instead of an error.  Only when synthetic
generation is disabled does :class:`AllSourcesExhaustedError` escape.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import httpx
import numpy as np

from .config import Settings, get_settings
from .data_sources import LiveSource, default_sources
from .errors import (
    AllSourcesExhaustedError,
    EmptyDatasetError,
    MalformedPayloadError,
    SourceError,
    TransportError,
)
from .logging_setup import acquisition_scope
from .series import Series, build_series
from .synthetic import generate_series

logger = logging.getLogger(__name__)

SIMULATED_WARNING = "showing simulated data"


class DataSource(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of one load or refresh request."""

    series: Series
    source: DataSource
    as_of: datetime
    provider: str
    warning: Optional[str] = None
    failures: Tuple[SourceError, ...] = field(default_factory=tuple)
    dropped_points: int = 0

    @property
    def is_simulated(self) -> bool:
        return self.source is DataSource.SYNTHETIC

    @property
    def source_label(self) -> str:
        if self.is_simulated:
            return "Simulated data"
        return f"Live data ({self.provider})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "provider": self.provider,
            "as_of": self.as_of.isoformat(),
            "warning": self.warning,
            "dropped_points": self.dropped_points,
            "failures": [{"source": f.source, "kind": f.kind, "detail": f.detail} for f in self.failures],
            "points": [point.to_dict() for point in self.series],
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe_failures(failures: Sequence[SourceError]) -> str:
    return "; ".join(f"{failure.source} {failure.kind}" for failure in failures)


class AcquisitionChain:
    """Try live sources in order, then fall back to synthetic data."""

    def __init__(
        self,
        sources: Sequence[LiveSource] | None = None,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        synthetic_enabled: bool | None = None,
        timeout: float | None = None,
        rng: np.random.Generator | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings or get_settings()
        self._sources: Tuple[LiveSource, ...] = tuple(
            sources if sources is not None else default_sources(self._settings)
        )
        self._synthetic_enabled = (
            self._settings.synthetic_enabled if synthetic_enabled is None else synthetic_enabled
        )
        self._timeout = timeout if timeout is not None else self._settings.request_timeout
        self._rng = rng
        self._clock = clock
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()

    @property
    def sources(self) -> Tuple[LiveSource, ...]:
        return self._sources

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            async with self._client_lock:
                if self._client is None or self._client.is_closed:
                    self._client = httpx.AsyncClient(
                        timeout=httpx.Timeout(self._timeout, connect=min(4.0, self._timeout)),
                        headers={"Accept": "application/json", "User-Agent": "Mozilla/5.0 (candlechart)"},
                    )
                    self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _try_source(self, source: LiveSource, symbol: str, days: int) -> tuple[Series, int]:
        client = await self._get_client()
        try:
            payload = await asyncio.wait_for(source.fetch(client, symbol, days), timeout=self._timeout)
        except SourceError:
            raise
        except asyncio.TimeoutError as exc:
            raise TransportError(source.name, f"timed out after {self._timeout:g}s") from exc
        except Exception as exc:
            raise TransportError(source.name, f"{type(exc).__name__}: {exc}") from exc

        try:
            rows = source.normalize(payload, days)
        except SourceError:
            raise
        except Exception as exc:
            raise MalformedPayloadError(source.name, f"{type(exc).__name__}: {exc}") from exc

        try:
            series, dropped = build_series(rows)
        except Exception as exc:
            raise MalformedPayloadError(source.name, f"unusable rows: {type(exc).__name__}: {exc}") from exc
        if not len(series):
            raise EmptyDatasetError(source.name, f"no valid points ({dropped} dropped)")
        return series, dropped

    async def acquire(self, symbol: str, days: int, *, use_real_data: bool | None = None) -> AcquisitionResult:
        """Return a result for ``symbol`` covering ``days``; see module docstring."""

        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValueError("symbol is required")
        if days < 1:
            raise ValueError("days must be a positive integer")
        real = self._settings.use_real_data if use_real_data is None else use_real_data

        with acquisition_scope(symbol):
            return await self._acquire(symbol, days, real)

    async def _acquire(self, symbol: str, days: int, real: bool) -> AcquisitionResult:
        failures: list[SourceError] = []
        if real:
            for index, source in enumerate(self._sources):
                context = {"symbol": symbol, "days": days, "source": source.name, "priority": index}
                try:
                    series, dropped = await self._try_source(source, symbol, days)
                except SourceError as exc:
                    failures.append(exc)
                    logger.warning(
                        "ohlcv_source_failed %s",
                        exc,
                        extra={**context, "kind": exc.kind, "detail": exc.detail},
                    )
                    continue
                warning = None
                if failures:
                    warning = f"using {source.name}: {_describe_failures(failures)}"
                if dropped:
                    note = f"{dropped} invalid points dropped"
                    warning = f"{warning}; {note}" if warning else note
                logger.info("ohlcv_source_succeeded", extra={**context, "points": len(series), "dropped": dropped})
                return AcquisitionResult(
                    series=series,
                    source=DataSource.PRIMARY if index == 0 else DataSource.SECONDARY,
                    as_of=self._clock(),
                    provider=source.name,
                    warning=warning,
                    failures=tuple(failures),
                    dropped_points=dropped,
                )

        if not self._synthetic_enabled:
            logger.error("ohlcv_sources_exhausted", extra={"symbol": symbol, "days": days})
            raise AllSourcesExhaustedError(symbol, failures)

        series = generate_series(symbol, days, rng=self._rng, today=self._clock().date())
        warning = None
        if failures:
            warning = f"{SIMULATED_WARNING}: {_describe_failures(failures)}"
            logger.info("ohlcv_synthetic_fallback", extra={"symbol": symbol, "days": days})
        return AcquisitionResult(
            series=series,
            source=DataSource.SYNTHETIC,
            as_of=self._clock(),
            provider="synthetic",
            warning=warning,
            failures=tuple(failures),
        )


__all__ = ["AcquisitionChain", "AcquisitionResult", "DataSource", "SIMULATED_WARNING"]
