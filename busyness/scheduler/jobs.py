"""Busyness — Refresh Controller.

Owns the reference instant ("now") and the visible per-library state. Each
refresh issues one independent fetch cycle per library; a cycle only lands if
no newer cycle for that library was issued after it. The APScheduler job is a
one-shot rearmed after every refresh, so ticks are spaced from the last
reference instant rather than from process start.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from busyness.analyzer.pipeline import fetch_library_records
from busyness.config import settings
from busyness.connectors.backend.client import BusynessClient
from busyness.connectors.backend.endpoints import BackendEndpoints
from busyness.core.library_registry import Library
from busyness.core.logging import get_logger
from busyness.models.response_models import BusynessData, BusynessLoading

logger = get_logger("scheduler")

REFRESH_JOB_ID = "busyness_refresh"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardController:
    """Periodically refreshed busyness state for every library."""

    def __init__(
        self,
        endpoints: Optional[BackendEndpoints] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        libraries: Iterable[Library] = tuple(Library),
        clock: Callable[[], datetime] = utc_now,
        interval_minutes: Optional[int] = None,
        keep_last_good_data: Optional[bool] = None,
    ):
        self._client: Optional[BusynessClient] = None
        if endpoints is None:
            self._client = BusynessClient()
            endpoints = BackendEndpoints(self._client)
        self.endpoints = endpoints
        self.scheduler = scheduler if scheduler is not None else AsyncIOScheduler()
        self.clock = clock
        self.interval = timedelta(
            minutes=interval_minutes
            if interval_minutes is not None
            else settings.refresh_interval_minutes
        )
        self.keep_last_good_data = (
            keep_last_good_data
            if keep_last_good_data is not None
            else settings.keep_last_good_data
        )

        self.now: Optional[datetime] = None
        self._data: Dict[Library, BusynessData] = {
            library: BusynessLoading() for library in libraries
        }
        self._issued: Dict[Library, int] = {library: 0 for library in self._data}
        self._applied: Dict[Library, int] = {library: 0 for library in self._data}
        self._tasks: Set[asyncio.Task] = set()
        self._started = False

    # ── State ──

    @property
    def libraries(self) -> list[Library]:
        return list(self._data)

    def data(self, library: Library) -> BusynessData:
        """Currently visible state for a library."""
        return self._data[library]

    def generation(self, library: Library) -> int:
        """Sequence number of the latest cycle issued for a library."""
        return self._issued[library]

    def is_refreshing(self, library: Library) -> bool:
        """True while the latest issued cycle has not landed yet."""
        return self._applied[library] < self._issued[library]

    # ── Fetch cycles ──

    def refresh(self, now: Optional[datetime] = None) -> None:
        """Move the reference instant and issue a new cycle per library.

        Must be called from within the running event loop.
        """
        self.now = now if now is not None else self.clock()
        loop = asyncio.get_running_loop()

        for library in self._data:
            self._issued[library] += 1
            generation = self._issued[library]
            if not self.keep_last_good_data:
                self._data[library] = BusynessLoading()
            task = loop.create_task(self._run_cycle(library, generation, self.now))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._started:
            self._schedule_next()

    async def _run_cycle(self, library: Library, generation: int, now: datetime) -> None:
        log_extra = {"library": library.value, "generation": generation}
        result = await fetch_library_records(self.endpoints, library, now)

        if generation != self._issued[library]:
            logger.info("Discarding superseded fetch cycle", extra=log_extra)
            return

        self._data[library] = result
        self._applied[library] = generation
        logger.info(f"Fetch cycle settled: {result.status.value}", extra=log_extra)

    async def wait_idle(self) -> None:
        """Wait for every in-flight cycle to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Timer lifecycle ──

    async def _tick(self) -> None:
        logger.info("Scheduled refresh starting...")
        self.refresh()

    def _schedule_next(self) -> None:
        run_at = self.now + self.interval
        self.scheduler.add_job(
            self._tick,
            "date",
            run_date=run_at,
            id=REFRESH_JOB_ID,
            replace_existing=True,
            misfire_grace_time=int(self.interval.total_seconds()),
        )

    def start(self) -> None:
        """Refresh immediately and arm the timer."""
        if self._started:
            return
        if not self.scheduler.running:
            self.scheduler.start()
        self._started = True
        self.refresh()
        logger.info(f"Refresh controller started. Interval {self.interval}")

    async def stop(self) -> None:
        """Disarm the timer and drop in-flight cycles."""
        self._started = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._client is not None:
            await self._client.close()
        logger.info("Refresh controller stopped")
