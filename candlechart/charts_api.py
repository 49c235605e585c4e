"""Chart endpoints for hosts that mount the chart over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from .acquisition import AcquisitionChain, AcquisitionResult
from .config import get_settings
from .errors import AllSourcesExhaustedError
from .raster import paint_png
from .rendering import CanvasSize, render
from .viewport import from_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/charts", tags=["charts"])

MAX_DAYS = 3650

_CHAIN: AcquisitionChain | None = None


def get_chain() -> AcquisitionChain:
    """Return the process-wide acquisition chain."""
    global _CHAIN
    if _CHAIN is None:
        _CHAIN = AcquisitionChain()
    return _CHAIN


async def close_chain() -> None:
    global _CHAIN
    if _CHAIN is not None:
        await _CHAIN.aclose()
        _CHAIN = None


async def _acquire(chain: AcquisitionChain, symbol: str, days: Optional[int], real: Optional[bool]) -> AcquisitionResult:
    settings = get_settings()
    try:
        return await chain.acquire(symbol, days or settings.default_days, use_real_data=real)
    except AllSourcesExhaustedError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/{symbol}/series")
async def chart_series(
    symbol: str,
    days: Optional[int] = Query(None, ge=1, le=MAX_DAYS),
    real: Optional[bool] = Query(None),
    chain: AcquisitionChain = Depends(get_chain),
) -> Dict[str, Any]:
    """Return the acquired daily series and where it came from."""
    result = await _acquire(chain, symbol, days, real)
    payload = result.to_dict()
    payload["symbol"] = symbol.upper()
    return payload


@router.get("/{symbol}/png")
async def chart_png(
    symbol: str,
    days: Optional[int] = Query(None, ge=1, le=MAX_DAYS),
    real: Optional[bool] = Query(None),
    start: Optional[int] = Query(None, ge=0),
    end: Optional[int] = Query(None, ge=1),
    width: int = Query(800, ge=200, le=4000),
    height: int = Query(500, ge=150, le=3000),
    chain: AcquisitionChain = Depends(get_chain),
) -> Response:
    result = await _acquire(chain, symbol, days, real)
    length = len(result.series)
    window = from_range(
        length,
        start if start is not None else 0,
        end if end is not None else length,
        get_settings().min_visible,
    )
    canvas = CanvasSize(width, height)
    commands = render(
        result.series,
        window,
        canvas,
        symbol=symbol.upper(),
        source_label=result.source_label,
        warning=result.warning,
    )
    content = paint_png(commands, canvas)
    headers = {
        "X-Chart-Source": result.source.value,
        "X-Chart-Window": f"{window.start}-{window.end}",
    }
    return Response(content=content, media_type="image/png", headers=headers)


__all__ = ["close_chain", "get_chain", "router"]
