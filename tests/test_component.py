from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from candlechart.acquisition import AcquisitionResult, DataSource
from candlechart.component import ChartComponent, Status, resolve_dimension
from candlechart.config import Settings
from candlechart.errors import AllSourcesExhaustedError
from candlechart.rendering import FillRect
from candlechart.series import OHLCVPoint, Series


def _result(length: int, base: float = 100.0, tag: DataSource = DataSource.PRIMARY) -> AcquisitionResult:
    points = [
        OHLCVPoint(date(2025, 1, 1) + timedelta(days=i), base + i, base + i + 2, base + i - 1, base + i + 1, 1000)
        for i in range(length)
    ]
    return AcquisitionResult(
        series=Series(points),
        source=tag,
        as_of=datetime(2025, 6, 1, tzinfo=timezone.utc),
        provider="fake",
    )


class ScriptedChain:
    """Stand-in chain whose acquire calls resolve when the test releases them."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, bool]] = []
        self.pending: list[asyncio.Future] = []
        self.closed = False

    async def acquire(self, symbol: str, days: int, *, use_real_data=None):
        self.calls.append((symbol, days, use_real_data))
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    async def aclose(self) -> None:
        self.closed = True


def _component(chain, **kwargs) -> ChartComponent:
    renders = kwargs.pop("renders", None)
    component = ChartComponent(
        kwargs.pop("symbol", "aapl"),
        kwargs.pop("days", 90),
        chain=chain,
        settings=Settings(_env_file=None),
        on_render=renders.append if renders is not None else None,
        **kwargs,
    )
    component.mount(800, 600)
    return component


@pytest.mark.asyncio
async def test_load_applies_result_and_renders_full_range():
    chain = ScriptedChain()
    renders: list = []
    component = _component(chain, renders=renders, height="50%")

    task = component.refresh()
    await asyncio.sleep(0)
    assert component.state.status is Status.LOADING
    chain.pending[0].set_result(_result(90))
    assert await task is True

    state = component.state
    assert state.status is Status.READY
    assert (state.viewport.start, state.viewport.end) == (0, 90)
    assert component.canvas.height == 300
    assert renders[-1] and isinstance(renders[-1][0], FillRect)
    assert component.visible_summary == "90 / 90 days"


@pytest.mark.asyncio
async def test_latest_refresh_wins_and_stale_results_are_discarded():
    chain = ScriptedChain()
    component = _component(chain)

    first = component.refresh()
    second = component.refresh()
    await asyncio.sleep(0)
    assert len(chain.calls) == 2

    chain.pending[1].set_result(_result(40, base=200.0))
    assert await second is True
    chain.pending[0].set_result(_result(90, base=100.0))
    assert await first is False

    assert len(component.state.result.series) == 40
    assert component.state.result.series[0].open == 200.0


@pytest.mark.asyncio
async def test_exhaustion_moves_to_error_and_refresh_retries():
    chain = ScriptedChain()
    component = _component(chain)

    task = component.refresh()
    await asyncio.sleep(0)
    chain.pending[0].set_exception(AllSourcesExhaustedError("AAPL", []))
    await task
    assert component.state.status is Status.ERROR
    assert "AAPL" in component.state.error
    assert component.last_commands == ()

    retry = component.refresh()
    await asyncio.sleep(0)
    chain.pending[1].set_result(_result(20))
    await retry
    assert component.state.status is Status.READY
    assert component.state.error is None


@pytest.mark.asyncio
async def test_unmount_cancels_in_flight_and_never_applies():
    chain = ScriptedChain()
    renders: list = []
    component = _component(chain, renders=renders)

    task = component.refresh()
    await asyncio.sleep(0)
    renders.clear()
    await component.unmount()

    assert task.cancelled()
    assert chain.pending[0].cancelled()
    assert component.state.result is None
    assert renders == []
    with pytest.raises(RuntimeError):
        component.refresh()


@pytest.mark.asyncio
async def test_set_symbol_cancels_previous_load():
    chain = ScriptedChain()
    component = _component(chain)

    first = component.refresh()
    await asyncio.sleep(0)
    second = component.set_symbol("tsla", days=30)
    await asyncio.sleep(0)

    assert first.cancelled()
    assert chain.calls[-1][:2] == ("TSLA", 30)
    chain.pending[1].set_result(_result(31))
    assert await second is True
    assert component.symbol == "TSLA"


@pytest.mark.asyncio
async def test_pointer_and_wheel_events_update_viewport_and_redraw():
    chain = ScriptedChain()
    renders: list = []
    component = _component(chain, renders=renders)
    task = component.refresh()
    await asyncio.sleep(0)
    chain.pending[0].set_result(_result(90))
    await task

    component.zoom_in()
    assert (component.state.viewport.start, component.state.viewport.end) == (9, 81)

    before = len(renders)
    component.pointer_down(400)
    component.pointer_move(320)
    component.pointer_up()
    viewport = component.state.viewport
    assert (viewport.start, viewport.end) == (17, 89)
    assert not viewport.dragging
    assert len(renders) > before

    component.wheel(1)
    assert component.state.viewport.size == 79
    component.reset_view()
    assert (component.state.viewport.start, component.state.viewport.end) == (0, 90)


@pytest.mark.asyncio
async def test_events_before_load_are_ignored():
    component = _component(ScriptedChain())
    component.zoom_in()
    component.pointer_down(10)
    assert component.state.viewport is None
    assert component.redraw() == ()


@pytest.mark.asyncio
async def test_resize_recomputes_geometry():
    chain = ScriptedChain()
    component = _component(chain)
    task = component.refresh()
    await asyncio.sleep(0)
    chain.pending[0].set_result(_result(12))
    await task

    component.resize(1000, 400)
    assert component.last_commands[0] == FillRect(0, 0, 1000.0, 400.0, "#ffffff")


@pytest.mark.parametrize(
    "value, available, expected",
    [(500, 900, 500.0), ("100%", 640, 640.0), ("50%", 300, 150.0), ("320px", 1000, 320.0), ("240", 10, 240.0)],
)
def test_resolve_dimension(value, available, expected):
    assert resolve_dimension(value, available) == expected


def test_resolve_dimension_rejects_garbage():
    with pytest.raises(ValueError):
        resolve_dimension("wide", 100)


def test_component_requires_symbol_and_positive_days():
    with pytest.raises(ValueError):
        ChartComponent("  ", chain=ScriptedChain(), settings=Settings(_env_file=None))
    with pytest.raises(ValueError):
        ChartComponent("AAPL", 0, chain=ScriptedChain(), settings=Settings(_env_file=None))


async def _loaded_component(chain: ScriptedChain) -> ChartComponent:
    component = _component(chain)
    task = component.refresh()
    await asyncio.sleep(0)
    chain.pending[0].set_result(_result(31))
    assert await task is True
    return component


@pytest.mark.asyncio
@pytest.mark.parametrize("symbol, days", [("   ", None), ("", 30), ("tsla", 0), ("tsla", -5)])
async def test_invalid_set_symbol_leaves_current_chart_untouched(symbol, days):
    chain = ScriptedChain()
    component = await _loaded_component(chain)
    before = component.state

    with pytest.raises(ValueError):
        component.set_symbol(symbol, days=days)

    assert component.symbol == "AAPL"
    assert component.days == 90
    assert component.state is before
    assert component.state.status is Status.READY
    assert len(chain.calls) == 1


class CrashingChain:
    async def acquire(self, symbol: str, days: int, *, use_real_data=None):
        raise RuntimeError("provider exploded")

    async def aclose(self) -> None:
        pass


@pytest.mark.asyncio
async def test_unexpected_acquisition_error_moves_to_error_state():
    renders: list = []
    component = _component(CrashingChain(), renders=renders)

    assert await component.refresh() is True

    state = component.state
    assert state.status is Status.ERROR
    assert "provider exploded" in state.error
    assert state.result is None
    assert renders[-1] == ()
