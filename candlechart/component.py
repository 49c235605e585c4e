"""Chart component: owns acquisition, viewport and redraw for one mount point.

All mutable state lives in a single :class:`ChartState` value that is replaced
through small pure transition functions.  The host drives the component with
pointer/wheel events and receives draw commands through ``on_render``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Set, Tuple, Union

from . import viewport as vp
from .acquisition import AcquisitionChain, AcquisitionResult
from .config import Settings, get_settings
from .errors import ChartDataError
from .rendering import CanvasSize, DrawCommand, render

logger = logging.getLogger(__name__)

Dimension = Union[int, float, str]
RenderCallback = Callable[[Tuple[DrawCommand, ...]], None]


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ChartState:
    status: Status = Status.IDLE
    request_id: int = 0
    result: Optional[AcquisitionResult] = None
    viewport: Optional[vp.ViewportState] = None
    error: Optional[str] = None


def begin_load(state: ChartState) -> ChartState:
    """Start a new request; the previous result stays visible until replaced."""
    return replace(state, status=Status.LOADING, request_id=state.request_id + 1, error=None)


def apply_result(state: ChartState, request_id: int, result: AcquisitionResult, min_visible: int) -> ChartState:
    if request_id != state.request_id:
        return state
    return replace(
        state,
        status=Status.READY,
        result=result,
        viewport=vp.initial(len(result.series), min_visible),
        error=None,
    )


def apply_failure(state: ChartState, request_id: int, message: str) -> ChartState:
    if request_id != state.request_id:
        return state
    return replace(state, status=Status.ERROR, result=None, viewport=None, error=message)


def invalidate(state: ChartState) -> ChartState:
    """Orphan any in-flight request so its result can never be applied."""
    return replace(state, request_id=state.request_id + 1)


def resolve_dimension(value: Dimension, available: float) -> float:
    """Resolve ``500``, ``"500px"`` or ``"100%"`` against the mount size."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    token = str(value).strip().lower()
    try:
        if token.endswith("%"):
            return available * float(token[:-1]) / 100.0
        if token.endswith("px"):
            return float(token[:-2])
        return float(token)
    except ValueError as exc:
        raise ValueError(f"unsupported dimension {value!r}") from exc


def _checked_request(symbol: str | None, days: int) -> Tuple[str, int]:
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise ValueError("symbol is required")
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise ValueError("days must be a positive integer")
    return cleaned, days


class ChartComponent:
    """Interactive candlestick chart bound to one symbol at a time."""

    def __init__(
        self,
        symbol: str,
        days: int | None = None,
        *,
        use_real_data: bool | None = None,
        width: Dimension = "100%",
        height: Dimension = 500,
        chain: AcquisitionChain | None = None,
        settings: Settings | None = None,
        on_render: RenderCallback | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.symbol, self.days = _checked_request(symbol, days if days is not None else self._settings.default_days)
        self.use_real_data = self._settings.use_real_data if use_real_data is None else use_real_data
        self.width = width
        self.height = height
        self._chain = chain or AcquisitionChain(settings=self._settings)
        self._owns_chain = chain is None
        self._on_render = on_render
        self._state = ChartState()
        self._canvas: Optional[CanvasSize] = None
        self._tasks: Set[asyncio.Task] = set()
        self._mounted = True
        self.last_commands: Tuple[DrawCommand, ...] = ()

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ChartState:
        return self._state

    @property
    def canvas(self) -> Optional[CanvasSize]:
        return self._canvas

    @property
    def visible_summary(self) -> str:
        viewport = self._state.viewport
        if viewport is None:
            return ""
        return f"{viewport.size} / {viewport.length} days"

    # ------------------------------------------------------------------ #
    # Acquisition
    # ------------------------------------------------------------------ #

    def refresh(self) -> "asyncio.Task[bool]":
        """Re-run acquisition; a newer call supersedes any pending one.

        Returns the task, which resolves to ``True`` if its result was applied.
        """

        if not self._mounted:
            raise RuntimeError("component is unmounted")
        self._state = begin_load(self._state)
        request_id = self._state.request_id
        task = asyncio.get_running_loop().create_task(self._run(request_id, self.symbol, self.days))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    load = refresh

    async def _run(self, request_id: int, symbol: str, days: int) -> bool:
        try:
            result = await self._chain.acquire(symbol, days, use_real_data=self.use_real_data)
        except ChartDataError as exc:
            if request_id != self._state.request_id:
                return False
            logger.warning("chart_load_failed", extra={"symbol": symbol, "error": str(exc)})
            self._state = apply_failure(self._state, request_id, str(exc))
            self.redraw()
            return True
        except Exception as exc:
            if request_id != self._state.request_id:
                return False
            logger.exception("chart_load_crashed", extra={"symbol": symbol})
            self._state = apply_failure(self._state, request_id, f"{type(exc).__name__}: {exc}")
            self.redraw()
            return True
        if request_id != self._state.request_id:
            logger.debug("chart_stale_result_discarded", extra={"symbol": symbol, "request_id": request_id})
            return False
        self._state = apply_result(self._state, request_id, result, self._settings.min_visible)
        self.redraw()
        return True

    def _cancel_pending(self) -> None:
        self._state = invalidate(self._state)
        for task in list(self._tasks):
            task.cancel()

    def set_symbol(self, symbol: str, days: int | None = None) -> "asyncio.Task[bool]":
        # reject bad input before touching the current load or result
        symbol, days = _checked_request(symbol, self.days if days is None else days)
        self._cancel_pending()
        self.symbol, self.days = symbol, days
        self._state = replace(self._state, result=None, viewport=None)
        return self.refresh()

    async def unmount(self) -> None:
        """Abort in-flight work; nothing is applied or rendered afterwards."""
        self._mounted = False
        self._cancel_pending()
        pending = list(self._tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_chain:
            await self._chain.aclose()

    # ------------------------------------------------------------------ #
    # Layout + rendering
    # ------------------------------------------------------------------ #

    def mount(self, available_width: float, available_height: float) -> CanvasSize:
        """Resolve the configured width/height against the host mount size."""
        self._canvas = CanvasSize(
            resolve_dimension(self.width, available_width),
            resolve_dimension(self.height, available_height),
        )
        self.redraw()
        return self._canvas

    def resize(self, width_px: float, height_px: float) -> None:
        self._canvas = CanvasSize(float(width_px), float(height_px))
        self.redraw()

    def redraw(self) -> Tuple[DrawCommand, ...]:
        state = self._state
        if not self._mounted or self._canvas is None or state.result is None or state.viewport is None:
            self.last_commands = ()
        else:
            self.last_commands = render(
                state.result.series,
                state.viewport,
                self._canvas,
                symbol=self.symbol,
                source_label=state.result.source_label,
                warning=state.result.warning,
            )
        if self._on_render is not None and self._mounted:
            self._on_render(self.last_commands)
        return self.last_commands

    def _update_viewport(self, transition: Callable[[vp.ViewportState], vp.ViewportState]) -> None:
        current = self._state.viewport
        if current is None:
            return
        updated = transition(current)
        if updated == current:
            return
        self._state = replace(self._state, viewport=updated)
        self.redraw()

    # ------------------------------------------------------------------ #
    # Pointer / wheel / buttons
    # ------------------------------------------------------------------ #

    def pointer_down(self, x: float) -> None:
        self._update_viewport(lambda state: vp.pointer_down(state, x))

    def pointer_move(self, x: float) -> None:
        width = self._canvas.width if self._canvas is not None else 0.0
        self._update_viewport(lambda state: vp.pointer_move(state, x, width))

    def pointer_up(self) -> None:
        self._update_viewport(vp.pointer_up)

    def pointer_leave(self) -> None:
        self._update_viewport(vp.pointer_leave)

    def wheel(self, delta_y: float) -> None:
        self._update_viewport(lambda state: vp.wheel(state, delta_y))

    def zoom_in(self) -> None:
        self._update_viewport(vp.zoom_in)

    def zoom_out(self) -> None:
        self._update_viewport(vp.zoom_out)

    def reset_view(self) -> None:
        self._update_viewport(vp.reset)


__all__ = [
    "ChartComponent",
    "ChartState",
    "Status",
    "apply_failure",
    "apply_result",
    "begin_load",
    "invalidate",
    "resolve_dimension",
]
