from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest

from busyness.core.library_registry import Library
from busyness.models.response_models import (
    BusynessError,
    BusynessLoaded,
    BusynessLoading,
    ResponseStatus,
)
from busyness.scheduler.jobs import REFRESH_JOB_ID, DashboardController
from tests.conftest import NOW, FakeEndpoints, hill_row


class _FakeScheduler:
    def __init__(self) -> None:
        self.running = False
        self.jobs: List[Dict[str, Any]] = []

    def start(self) -> None:
        self.running = True

    def shutdown(self, wait: bool = True) -> None:
        self.running = False

    def add_job(self, func, trigger, **kwargs) -> None:
        self.jobs.append({"func": func, "trigger": trigger, **kwargs})


class _GatedEndpoints:
    """Historical fetches block until the test opens the gate for their cycle."""

    def __init__(self, counts: Dict[datetime, int]):
        self.counts = counts
        self.gates: Dict[datetime, asyncio.Event] = {}

    def gate(self, now: datetime) -> asyncio.Event:
        return self.gates.setdefault(now, asyncio.Event())

    async def fetch_historical_records(self, library, since=None):
        now = since + timedelta(days=7)
        await self.gate(now).wait()
        return [hill_row(now, total_count=self.counts[now])]

    async def fetch_forecast_records(self, library, since):
        return []


async def _until(predicate) -> None:
    while not predicate():
        await asyncio.sleep(0)


def _controller(endpoints, **kwargs) -> DashboardController:
    return DashboardController(
        endpoints=endpoints,
        scheduler=_FakeScheduler(),
        libraries=[Library.HILL],
        clock=lambda: NOW,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_refresh_loads_every_library(hill_series) -> None:
    controller = DashboardController(
        endpoints=FakeEndpoints(historical_rows=hill_series),
        scheduler=_FakeScheduler(),
        clock=lambda: NOW,
    )
    assert isinstance(controller.data(Library.HILL), BusynessLoading)

    controller.refresh()
    await controller.wait_idle()

    assert controller.now == NOW
    assert controller.data(Library.HILL).status is ResponseStatus.LOADED
    # Hunt rows have a different shape, so the hill rows fail validation there
    assert controller.data(Library.HUNT).status is ResponseStatus.ERROR


@pytest.mark.asyncio
async def test_stale_cycle_is_discarded() -> None:
    first, second = NOW, NOW + timedelta(minutes=5)
    endpoints = _GatedEndpoints({first: 1, second: 2})
    controller = _controller(endpoints)

    controller.refresh(first)
    controller.refresh(second)
    assert controller.generation(Library.HILL) == 2

    endpoints.gate(second).set()
    await asyncio.wait_for(_until(lambda: not controller.is_refreshing(Library.HILL)), 1)

    # The older cycle resolves last
    endpoints.gate(first).set()
    await controller.wait_idle()

    data = controller.data(Library.HILL)
    assert isinstance(data, BusynessLoaded)
    assert data.historical_records[0].total.count == 2


@pytest.mark.asyncio
async def test_last_good_data_stays_visible_during_refresh() -> None:
    first, second = NOW, NOW + timedelta(minutes=5)
    endpoints = _GatedEndpoints({first: 1, second: 2})
    controller = _controller(endpoints, keep_last_good_data=True)

    endpoints.gate(first).set()
    controller.refresh(first)
    await controller.wait_idle()

    controller.refresh(second)
    assert controller.is_refreshing(Library.HILL)
    assert isinstance(controller.data(Library.HILL), BusynessLoaded)

    endpoints.gate(second).set()
    await controller.wait_idle()
    assert not controller.is_refreshing(Library.HILL)
    assert controller.data(Library.HILL).historical_records[0].total.count == 2


@pytest.mark.asyncio
async def test_refresh_resets_to_loading_when_configured() -> None:
    endpoints = _GatedEndpoints({NOW: 1})
    controller = _controller(endpoints, keep_last_good_data=False)

    controller.refresh(NOW)
    assert isinstance(controller.data(Library.HILL), BusynessLoading)

    endpoints.gate(NOW).set()
    await controller.wait_idle()
    assert isinstance(controller.data(Library.HILL), BusynessLoaded)


@pytest.mark.asyncio
async def test_crashing_cycle_becomes_error() -> None:
    controller = _controller(FakeEndpoints(historical_error=RuntimeError("bug")))
    controller.refresh()
    await controller.wait_idle()

    data = controller.data(Library.HILL)
    assert isinstance(data, BusynessError)
    assert data.error == "bug"


@pytest.mark.asyncio
async def test_timer_is_rearmed_from_each_reference_instant() -> None:
    controller = _controller(FakeEndpoints(), interval_minutes=5)

    controller.start()
    scheduler = controller.scheduler
    assert scheduler.running
    assert scheduler.jobs[-1]["trigger"] == "date"
    assert scheduler.jobs[-1]["run_date"] == NOW + timedelta(minutes=5)
    assert scheduler.jobs[-1]["id"] == REFRESH_JOB_ID
    assert scheduler.jobs[-1]["replace_existing"] is True

    later = NOW + timedelta(minutes=7)
    controller.refresh(later)
    assert scheduler.jobs[-1]["run_date"] == later + timedelta(minutes=5)

    await controller.stop()
    assert not scheduler.running


@pytest.mark.asyncio
async def test_tick_refreshes_with_clock_and_rearms() -> None:
    controller = _controller(FakeEndpoints(), interval_minutes=5)
    controller.start()
    jobs_before = len(controller.scheduler.jobs)

    await controller.scheduler.jobs[-1]["func"]()

    assert controller.generation(Library.HILL) == 2
    assert len(controller.scheduler.jobs) == jobs_before + 1
    await controller.stop()


@pytest.mark.asyncio
async def test_refresh_without_start_does_not_arm_timer() -> None:
    controller = _controller(FakeEndpoints())
    controller.refresh()
    await controller.wait_idle()
    assert controller.scheduler.jobs == []
