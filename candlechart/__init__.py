"""Interactive candlestick chart: acquisition, viewport and rendering."""

from .acquisition import AcquisitionChain, AcquisitionResult, DataSource
from .component import ChartComponent, ChartState, Status
from .errors import (
    AllSourcesExhaustedError,
    EmptyDatasetError,
    MalformedPayloadError,
    TransportError,
)
from .rendering import CanvasSize, render
from .series import OHLCVPoint, Series, build_series
from .synthetic import SyntheticProfile, generate_series
from .viewport import ViewportState

__all__ = [
    "AcquisitionChain",
    "AcquisitionResult",
    "AllSourcesExhaustedError",
    "CanvasSize",
    "ChartComponent",
    "ChartState",
    "DataSource",
    "EmptyDatasetError",
    "MalformedPayloadError",
    "OHLCVPoint",
    "Series",
    "Status",
    "SyntheticProfile",
    "TransportError",
    "ViewportState",
    "build_series",
    "generate_series",
    "render",
]
