"""Error taxonomy for series validation and data acquisition."""

from __future__ import annotations

from typing import Sequence


class ChartDataError(RuntimeError):
    """Base class for chart data failures."""


class InvalidPointError(ChartDataError, ValueError):
    """Raised when a candidate point violates the OHLCV invariants."""


class SourceError(ChartDataError):
    """A failure attributed to one live data source."""

    kind = "source_error"

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class TransportError(SourceError):
    """Request failed, timed out, or returned a non-success status."""

    kind = "transport"


class MalformedPayloadError(SourceError):
    """Response shape does not match the expected schema."""

    kind = "malformed_payload"


class EmptyDatasetError(SourceError):
    """Normalized series has zero valid points."""

    kind = "empty_dataset"


class AllSourcesExhaustedError(ChartDataError):
    """Every live source failed and synthetic generation is disabled."""

    def __init__(self, symbol: str, failures: Sequence[SourceError]) -> None:
        self.symbol = symbol
        self.failures = tuple(failures)
        summary = "; ".join(str(failure) for failure in self.failures) or "no live sources attempted"
        super().__init__(f"No market data available for {symbol}: {summary}")


__all__ = [
    "AllSourcesExhaustedError",
    "ChartDataError",
    "EmptyDatasetError",
    "InvalidPointError",
    "MalformedPayloadError",
    "SourceError",
    "TransportError",
]
