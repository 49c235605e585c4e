"""FastAPI application exposing the chart endpoints."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .charts_api import close_chain, router
from .config import get_settings
from .logging_setup import setup_logging


@asynccontextmanager
async def _lifespan(_: FastAPI):
    yield
    await close_chain()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="candlechart",
        description="Interactive candlestick chart data and rendering.",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


__all__ = ["create_app"]
