"""
Data Ingestion - Scheduler.

============================================================
RESPONSIBILITY
============================================================
Triggers ingestion runs on a fixed daily cadence.

- Fires at fixed local times (default 06:00 and 18:00 UTC)
- Fires once shortly after startup so empty deployments
  self-populate
- Exposes a manual trigger for operators

============================================================
SINGLE-RUN GUARD
============================================================
Timer, startup and manual callers share one guarded entry
point (trigger). A trigger arriving while a run is in
progress returns SKIPPED; runs are never queued and never
overlap. The guard is released on every exit path.

============================================================
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from core.clock import ClockProtocol, SystemClock
from data_ingestion.config import SchedulerConfig
from data_ingestion.events import EVENT_NEW_TREND
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.types import SchedulerStatus, TriggerResult


def next_scheduled_run(
    now: datetime,
    run_times: Sequence[Tuple[int, int]],
    tz: Union[str, tzinfo] = "UTC",
) -> datetime:
    """
    Next wall-clock firing strictly after `now`.

    Args:
        now: Current time (naive values are treated as UTC)
        run_times: (hour, minute) pairs in the schedule's timezone
        tz: IANA name or tzinfo of the schedule

    Returns:
        The next firing time, in UTC
    """
    if not run_times:
        raise ValueError("run_times must not be empty")

    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_now = now.astimezone(zone)

    for day_offset in range(0, 3):
        day: date = local_now.date() + timedelta(days=day_offset)
        candidates = sorted(
            datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
            for hour, minute in run_times
        )
        for candidate in candidates:
            if candidate > local_now:
                return candidate.astimezone(timezone.utc)

    # Unreachable for valid run_times
    raise ValueError("Could not compute next run time")


class IngestionScheduler:
    """
    Cadence loop plus guarded trigger around an IngestionService.

    ============================================================
    USAGE
    ============================================================
    ```python
    scheduler = IngestionScheduler(service, SchedulerConfig())
    await scheduler.start()
    ...
    result = await scheduler.trigger()   # manual run
    await scheduler.stop()
    ```

    ============================================================
    """

    def __init__(
        self,
        service: IngestionService,
        config: Optional[SchedulerConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._service = service
        self._config = config or SchedulerConfig()
        self._clock = clock or SystemClock()
        self._logger = logging.getLogger("ingestion_scheduler")

        self._is_running = False
        self._last_run_at: Optional[datetime] = None

        self._cron_task: Optional[asyncio.Task] = None
        self._startup_task: Optional[asyncio.Task] = None

    # =========================================================
    # LIFECYCLE
    # =========================================================

    async def start(self) -> None:
        """Start the cadence loop. Calling it again is a no-op."""
        if self._cron_task is not None:
            return

        self._service.event_bus.subscribe(EVENT_NEW_TREND, self._log_new_trend)

        self._cron_task = asyncio.create_task(self._cron_loop(), name="ingestion-cron")
        times = ", ".join(f"{h:02d}:{m:02d}" for h, m in self._config.run_times)
        self._logger.info(f"Trend ingestion scheduled: {times} {self._config.timezone}")

        if self._config.run_on_startup:
            self._startup_task = asyncio.create_task(
                self._startup_run(), name="ingestion-startup"
            )

    async def stop(self) -> None:
        """Stop the cadence loop; an in-flight run is cancelled."""
        tasks = [t for t in (self._cron_task, self._startup_task) if t is not None]
        self._cron_task = None
        self._startup_task = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._service.event_bus.unsubscribe(EVENT_NEW_TREND, self._log_new_trend)
        if tasks:
            self._logger.info("Trend ingestion stopped")

    # =========================================================
    # TRIGGER
    # =========================================================

    async def trigger(self) -> TriggerResult:
        """
        Run ingestion unless a run is already in progress.

        Returns:
            COMPLETED with the run result, SKIPPED, or FAILED with
            the error text. Never raises for run failures.
        """
        if self._is_running:
            self._logger.info("Ingestion already in progress, skipping")
            return TriggerResult.skipped()

        self._is_running = True
        try:
            result = await self._service.run_ingestion()
            self._last_run_at = result.completed_at
            return TriggerResult.completed(result)
        except Exception as e:
            self._logger.error(f"Ingestion run failed: {e}", exc_info=True)
            return TriggerResult.failed(str(e))
        finally:
            self._is_running = False

    def get_status(self) -> SchedulerStatus:
        return SchedulerStatus(
            is_running=self._is_running,
            last_run_at=self._last_run_at,
            cron_active=self._cron_task is not None and not self._cron_task.done(),
        )

    # =========================================================
    # BACKGROUND TASKS
    # =========================================================

    async def _cron_loop(self) -> None:
        last_fired: Optional[datetime] = None
        while True:
            now = self._clock.now()
            # Early wake-ups must not fire the same slot twice
            reference = max(now, last_fired) if last_fired else now
            next_run = next_scheduled_run(reference, self._config.run_times, self._config.timezone)
            delay = max(0.0, (next_run - now).total_seconds())
            self._logger.debug(f"Next ingestion at {next_run.isoformat()} (in {delay:.0f}s)")

            await asyncio.sleep(delay)
            last_fired = next_run
            await self.trigger()

    async def _startup_run(self) -> None:
        await asyncio.sleep(self._config.startup_delay_seconds)
        self._logger.info("Running initial ingestion on startup...")
        await self.trigger()

    def _log_new_trend(self, trend) -> None:
        self._logger.info(
            f"EVENT new trend discovered: id={trend.id} name=\"{trend.name}\" "
            f"source={trend.source_platform}"
        )
