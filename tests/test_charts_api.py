from __future__ import annotations

from datetime import datetime, timezone

import numpy as np
import pytest
from fastapi.testclient import TestClient

from candlechart.acquisition import AcquisitionChain
from candlechart.app import create_app
from candlechart.charts_api import get_chain
from candlechart.config import Settings
from candlechart.errors import TransportError

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class FailingSource:
    name = "yahoo"

    async def fetch(self, client, symbol, days):
        raise TransportError(self.name, "HTTP 503")

    def normalize(self, payload, days):  # pragma: no cover - never reached
        return []


def _client(chain: AcquisitionChain) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_chain] = lambda: chain
    return TestClient(app)


def _chain(**kwargs) -> AcquisitionChain:
    return AcquisitionChain(
        [FailingSource()],
        settings=Settings(_env_file=None),
        rng=np.random.default_rng(11),
        clock=lambda: datetime(2025, 8, 15, tzinfo=timezone.utc),
        **kwargs,
    )


def test_series_endpoint_returns_synthetic_fallback():
    client = _client(_chain())

    resp = client.get("/charts/tmdx/series", params={"days": 30, "real": "true"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["symbol"] == "TMDX"
    assert body["source"] == "synthetic"
    assert body["warning"].startswith("showing simulated data")
    assert len(body["points"]) == 31
    assert body["points"][-1]["date"] == "2025-08-15"


def test_series_endpoint_reports_exhaustion_as_503():
    client = _client(_chain(synthetic_enabled=False))

    resp = client.get("/charts/AAPL/series", params={"real": "true"})

    assert resp.status_code == 503
    assert "AAPL" in resp.json()["detail"]


def test_series_endpoint_validates_days():
    client = _client(_chain())
    assert client.get("/charts/AAPL/series", params={"days": 0}).status_code == 422


def test_png_endpoint_renders_requested_window():
    client = _client(_chain())

    resp = client.get(
        "/charts/AAPL/png",
        params={"days": 60, "start": 55, "end": 58, "width": 640, "height": 360},
    )

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content.startswith(PNG_MAGIC)
    assert resp.headers["x-chart-source"] == "synthetic"
    # three requested points widen to the ten-point minimum at the right edge
    assert resp.headers["x-chart-window"] == "51-61"


@pytest.mark.parametrize("params", [{"width": 50}, {"height": 10_000}])
def test_png_endpoint_rejects_out_of_range_sizes(params):
    client = _client(_chain())
    assert client.get("/charts/AAPL/png", params=params).status_code == 422
