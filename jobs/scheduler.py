"""Daily ingestion trigger running inside the service's event loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

import schedule

from jobs.config import Settings
from pipelines.errors import PwsDailyError
from pipelines.sources.wunderground import today_code

DAILY_RUN_AT = "02:05"
SCHEDULE_TIMEZONE = "Europe/Madrid"
POLL_INTERVAL_SECONDS = 30.0

logger = logging.getLogger(__name__)

IngestCallable = Callable[[str, str], Awaitable[object]]


class DailyIngestScheduler:
    """Runs ``ingest(station_id, date_code)`` every day at 02:05 Europe/Madrid.

    The job lives on a private ``schedule.Scheduler`` whose ``run_pending`` is
    polled from an asyncio task. A failed run is logged and skipped; the next
    attempt is the following day's run or a manual call.
    """

    def __init__(
        self,
        station_id: str,
        ingest: IngestCallable,
        *,
        clock: Callable[[], datetime] | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.station_id = station_id
        self._ingest = ingest
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._poll_interval = poll_interval
        self._scheduler = schedule.Scheduler()
        self.job = self._scheduler.every().day.at(DAILY_RUN_AT, SCHEDULE_TIMEZONE).do(self._fire)
        self._task: asyncio.Task | None = None
        self._runs: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _fire(self) -> asyncio.Task:
        run = asyncio.get_running_loop().create_task(self.run_once())
        self._runs.add(run)
        run.add_done_callback(self._runs.discard)
        return run

    async def run_once(self) -> bool:
        date_code = today_code(self._clock())
        try:
            await self._ingest(self.station_id, date_code)
        except PwsDailyError as exc:
            logger.error(
                "Daily ingest failed for %s %s: %s", self.station_id, date_code, exc.to_payload()
            )
            return False
        except Exception:
            logger.exception("Daily ingest crashed for %s %s", self.station_id, date_code)
            return False
        logger.info("Daily ingest ok %s %s", self.station_id, date_code)
        return True

    def run_all(self) -> list[asyncio.Task]:
        """Fire the daily job immediately; returns the ingestion tasks started."""

        before = set(self._runs)
        self._scheduler.run_all()
        return [run for run in self._runs if run not in before]

    async def _poll(self) -> None:
        while True:
            self._scheduler.run_pending()
            await asyncio.sleep(self._poll_interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._poll(), name="daily-ingest-scheduler")
        logger.info(
            "Cron ingest diario habilitado (%s %s), next run %s",
            DAILY_RUN_AT,
            SCHEDULE_TIMEZONE,
            self.job.next_run,
        )

    async def stop(self) -> None:
        pending = [task for task in (self._task, *self._runs) if task is not None]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._task = None
        self._runs.clear()


def build_scheduler(settings: Settings, ingest: IngestCallable) -> DailyIngestScheduler | None:
    """Return a scheduler when persistence, the flag and a station are all configured."""

    if not settings.scheduler_enabled:
        if settings.has_database and settings.daily_ingest_enabled:
            logger.warning("ENABLE_DAILY_INGEST=true pero falta DAILY_STATION_ID")
        return None
    return DailyIngestScheduler(settings.daily_station_id, ingest)


__all__ = [
    "DAILY_RUN_AT",
    "SCHEDULE_TIMEZONE",
    "DailyIngestScheduler",
    "build_scheduler",
]
