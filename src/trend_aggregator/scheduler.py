"""Background polling scheduler.

One instance per process, created by whoever owns the event loop and passed
to the code that needs to (re)configure it. At most one polling task exists
at any time.
"""

import asyncio
import contextlib
import logging
from typing import List, Optional, Sequence

from .collector import collect_country
from .database import Database
from .models import SchedulerState
from .sources import SourceAdapter

logger = logging.getLogger(__name__)


class TrendScheduler:
    """Periodically collects trends for a configured list of countries."""

    def __init__(self, db: Database, adapters: Sequence[SourceAdapter]):
        self.db = db
        self.adapters = list(adapters)
        self._state = SchedulerState()
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def get_state(self) -> SchedulerState:
        """Current configuration and running flag (a copy)."""
        return self._state.model_copy(deep=True)

    def is_configured(self, interval_minutes: float, countries: Sequence[str]) -> bool:
        """True if already running with exactly this interval and country order."""
        return (
            self._state.started
            and self._task is not None
            and not self._task.done()
            and self._state.interval_ms == int(interval_minutes * 60 * 1000)
            and self._state.countries == list(countries)
        )

    async def start(self, interval_minutes: float, countries: Sequence[str]) -> SchedulerState:
        """
        Start polling, or restart with a new configuration.

        Identical configuration while running is a no-op: the existing task
        is kept.
        """
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        async with self._lock:
            if self.is_configured(interval_minutes, countries):
                logger.debug("Scheduler already running with this configuration")
                return self.get_state()

            await self._cancel_task()

            self._state = SchedulerState(
                started=False,
                interval_ms=int(interval_minutes * 60 * 1000),
                countries=list(countries),
            )
            await self.db.ensure_schema()

            self._task = asyncio.create_task(
                self._run(self._state.interval_ms / 1000, list(self._state.countries)),
                name="trend-scheduler",
            )
            self._state.started = True

            logger.info(
                f"Scheduler started: every {interval_minutes} min for {self._state.countries}"
            )
            return self.get_state()

    async def stop(self) -> SchedulerState:
        """Cancel the polling task."""
        async with self._lock:
            await self._cancel_task()
            self._state.started = False
            return self.get_state()

    async def run_cycle(self, countries: Optional[List[str]] = None) -> None:
        """
        Collect every country once, one after another.

        Errors for one country are logged and do not stop the others.
        """
        for country_code in countries if countries is not None else self._state.countries:
            try:
                inserted, failed = await collect_country(self.db, self.adapters, country_code)
                logger.info(f"Scheduled poll for {country_code}: {inserted} new trends")
                if failed:
                    logger.warning(f"Failed sources for {country_code}: {failed}")
            except Exception as e:
                logger.error(f"Trend fetch scheduler error for {country_code}: {e}")

    async def _run(self, interval_seconds: float, countries: List[str]) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.run_cycle(countries)

    async def _cancel_task(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
