"""Refresh orchestration: owns the current snapshot and its status.

State is one frozen ``DashboardState`` replaced as a whole at the end of each
cycle, so readers never see a half-updated view. Only one cycle runs at a
time: a trigger that arrives while a cycle is pending awaits that cycle and
gets its result instead of starting another one.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from dashboard_core.errors import FetchError
from dashboard_core.models import DashboardSnapshot

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECONDS = 60.0

EMPTY_ORDERS_MESSAGE = (
    "No data found. This might be because the Google Sheet is empty or not shared publicly. "
    "Please ensure headers are in the first row."
)

Loader = Callable[[], Awaitable[DashboardSnapshot]]


class Status(str, Enum):
    LOADING = "loading"
    READY = "ready"
    STALE_ERROR = "stale_error"
    ERROR = "error"


@dataclass(frozen=True)
class DashboardState:
    status: Status = Status.LOADING
    snapshot: Optional[DashboardSnapshot] = None
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    refreshing: bool = False

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None

    @property
    def empty_message(self) -> Optional[str]:
        if self.snapshot is not None and not self.snapshot.combined_orders:
            return EMPTY_ORDERS_MESSAGE
        return None


class RefreshOrchestrator:
    def __init__(
        self,
        loader: Loader,
        *,
        interval: float = REFRESH_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._loader = loader
        self._interval = interval
        self._clock = clock
        self._state = DashboardState()
        self._in_flight: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def refresh(self) -> DashboardState:
        """Run one cycle, or join the one already in flight."""
        if self._in_flight is None or self._in_flight.done():
            self._in_flight = asyncio.ensure_future(self._run_cycle())
        # a caller giving up must not cancel the shared cycle
        return await asyncio.shield(self._in_flight)

    async def _run_cycle(self) -> DashboardState:
        self._state = replace(self._state, refreshing=True)
        try:
            snapshot = await self._loader()
        except FetchError as e:
            logger.error("refresh failed (%s): %s", type(e).__name__, e)
            self._state = self._failed_state(str(e))
        except Exception as e:
            logger.exception("refresh failed unexpectedly")
            self._state = self._failed_state(str(e) or type(e).__name__)
        else:
            self._state = DashboardState(status=Status.READY, snapshot=snapshot, last_updated=self._clock())
        return self._state

    def _failed_state(self, message: str) -> DashboardState:
        previous = self._state
        if previous.snapshot is None:
            return DashboardState(status=Status.ERROR, error=message)
        return DashboardState(
            status=Status.STALE_ERROR,
            snapshot=previous.snapshot,
            error=message,
            last_updated=previous.last_updated,
        )

    def start(self) -> None:
        """Run a cycle now and then every ``interval`` seconds until ``stop``."""
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._timer = asyncio.create_task(self._run_timer(self._stopping))

    async def _run_timer(self, stopping: asyncio.Event) -> None:
        while not stopping.is_set():
            await self.refresh()
            try:
                await asyncio.wait_for(stopping.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue

    async def stop(self) -> None:
        """Stop the timer; a cycle already in flight is allowed to finish."""
        if self._stopping is not None:
            self._stopping.set()
        if self._timer is not None:
            await self._timer
        self._timer = None
        self._stopping = None


class RefreshRunner:
    """Drives one orchestrator from synchronous callers on different threads.

    The orchestrator lives on a private event loop in a daemon thread, so
    every caller joins the same in-flight cycle no matter which thread asks.
    """

    def __init__(self, orchestrator: RefreshOrchestrator):
        self.orchestrator = orchestrator
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="dashboard-refresh", daemon=True)
        self._thread.start()

    @property
    def state(self) -> DashboardState:
        return self.orchestrator.state

    @property
    def interval(self) -> float:
        return self.orchestrator.interval

    def refresh(self, timeout: Optional[float] = None) -> DashboardState:
        future = asyncio.run_coroutine_threadsafe(self.orchestrator.refresh(), self._loop)
        return future.result(timeout)

    def close(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
