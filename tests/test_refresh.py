import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from dashboard_core.errors import TransportError
from dashboard_core.models import DashboardSnapshot
from dashboard_core.refresh import EMPTY_ORDERS_MESSAGE, RefreshOrchestrator, RefreshRunner, Status


def _snapshot(combined_orders=()) -> DashboardSnapshot:
    return DashboardSnapshot(
        reserve_orders=(),
        gp_records=(),
        combined_orders=tuple(combined_orders),
        fetched_at=datetime(2024, 1, 1),
    )


class ScriptedLoader:
    """Returns or raises the queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        await asyncio.sleep(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_initial_state_is_loading():
    orchestrator = RefreshOrchestrator(ScriptedLoader())
    assert orchestrator.state.status == Status.LOADING
    assert not orchestrator.state.has_data


@pytest.mark.anyio
async def test_success_then_failure_keeps_snapshot():
    first = _snapshot()
    times = iter([datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10)])
    orchestrator = RefreshOrchestrator(
        ScriptedLoader(first, TransportError("HTTP error! status: 500")), clock=lambda: next(times)
    )

    state = await orchestrator.refresh()
    assert state.status == Status.READY
    assert state.snapshot is first
    assert state.last_updated == datetime(2024, 1, 1, 9)

    state = await orchestrator.refresh()
    assert state.status == Status.STALE_ERROR
    assert state.snapshot is first
    assert state.error == "HTTP error! status: 500"
    assert state.last_updated == datetime(2024, 1, 1, 9)


@pytest.mark.anyio
async def test_first_failure_is_error():
    orchestrator = RefreshOrchestrator(ScriptedLoader(TransportError("offline")))
    state = await orchestrator.refresh()
    assert state.status == Status.ERROR
    assert state.snapshot is None
    assert state.error == "offline"


@pytest.mark.anyio
async def test_unexpected_error_is_captured():
    orchestrator = RefreshOrchestrator(ScriptedLoader(ValueError()))
    state = await orchestrator.refresh()
    assert state.status == Status.ERROR
    assert state.error == "ValueError"


@pytest.mark.anyio
async def test_concurrent_refreshes_share_one_cycle():
    loader = ScriptedLoader(_snapshot(), _snapshot())
    orchestrator = RefreshOrchestrator(loader)
    first, second = await asyncio.gather(orchestrator.refresh(), orchestrator.refresh())
    assert loader.calls == 1
    assert first is second

    await orchestrator.refresh()
    assert loader.calls == 2


@pytest.mark.anyio
async def test_empty_orders_message():
    orchestrator = RefreshOrchestrator(ScriptedLoader(_snapshot()))
    state = await orchestrator.refresh()
    assert state.empty_message == EMPTY_ORDERS_MESSAGE


@pytest.mark.anyio
async def test_start_and_stop():
    loader = ScriptedLoader(*[_snapshot() for _ in range(50)])
    orchestrator = RefreshOrchestrator(loader, interval=0.01)
    orchestrator.start()
    assert orchestrator.running
    await asyncio.sleep(0.05)
    await orchestrator.stop()
    assert not orchestrator.running
    assert loader.calls >= 2
    assert orchestrator.state.status == Status.READY


def test_runner_shares_cycle_across_threads():
    calls = []

    async def slow_loader():
        calls.append(1)
        await asyncio.sleep(0.3)
        return _snapshot()

    runner = RefreshRunner(RefreshOrchestrator(slow_loader))
    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            states = list(pool.map(lambda _: runner.refresh(timeout=5), range(2)))
    finally:
        runner.close()
    assert len(calls) == 1
    assert states[0] is states[1]
    assert runner.state.status == Status.READY
