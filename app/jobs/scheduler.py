"""Cron-style job scheduler running inside the API process.

Each registered job gets a ``ScheduleTrigger`` that owns its next fire time.
A single asyncio task wakes at every minute boundary, ticks all triggers and
runs the due jobs one after another.

Missed fire times (process down, event loop stalled, a long job) are skipped,
never backfilled: a late tick fires once and re-arms after the current time.

With several replicas, each fire time is claimed through a Valkey key so only
one replica runs it.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from app.cache.claims import claim_once
from app.core.config import settings
from app.core.exceptions import JobError
from app.core.logging import get_logger

from .executor import execute_job
from .registry import get_all_jobs


logger = get_logger("jobs.scheduler")

# How long a replica's claim on one fire time is kept
CLAIM_TTL_SECONDS = 6 * 3600

# Global scheduler instance
_scheduler: Optional["JobScheduler"] = None


class ScheduleTrigger:
    """
    Next-fire-time state for one cron expression.

    ``tick(now)`` is the only mutator:
      - the first tick arms the trigger and returns False
      - a tick before the armed time returns False
      - a tick at or after the armed time returns True and re-arms to the
        first occurrence strictly after ``now``
    """

    def __init__(self, cron: str, tz: str | tzinfo = "UTC"):
        if not croniter.is_valid(cron):
            raise ValueError(f"Invalid cron expression: {cron}")
        self.cron = cron
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._next_fire: datetime | None = None

    @property
    def next_fire(self) -> datetime | None:
        """Armed fire time, or None before the first tick."""
        return self._next_fire

    def next_after(self, now: datetime) -> datetime:
        """First occurrence strictly after ``now``, in the trigger's timezone."""
        return croniter(self.cron, now.astimezone(self.tz)).get_next(datetime)

    def tick(self, now: datetime) -> bool:
        if now.tzinfo is None:
            raise ValueError("tick() needs a timezone-aware datetime")

        if self._next_fire is None:
            self._next_fire = self.next_after(now)
            return False

        if now < self._next_fire:
            return False

        self._next_fire = self.next_after(now)
        return True


class JobScheduler:
    """Runs registered jobs on their cron schedules."""

    def __init__(self, timezone: str | None = None):
        self.timezone = timezone or settings.scheduler_timezone
        self._triggers: dict[str, ScheduleTrigger] = {}
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def load_jobs(self) -> None:
        """Build a trigger for every registered job."""
        self._triggers.clear()
        for name, job in get_all_jobs().items():
            try:
                self._triggers[name] = ScheduleTrigger(job.cron, self.timezone)
                logger.info(f"Scheduled job: {name} ({job.cron} {self.timezone})")
            except ValueError as e:
                logger.error(f"Failed to schedule job {name}: {e}")

    async def start(self) -> None:
        """Arm all triggers and start the background loop."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        if not settings.scheduler_enabled:
            logger.info("Scheduler disabled via SCHEDULER_ENABLED=false")
            return

        self.load_jobs()
        now = datetime.now(UTC)
        for trigger in self._triggers.values():
            trigger.tick(now)

        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name="job-scheduler")
        logger.info("Job scheduler started")

    async def stop(self) -> None:
        """Stop the loop. A job already running is allowed to finish."""
        if self._task is None:
            return

        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Job scheduler stopped")

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            now = datetime.now(UTC)
            next_minute = (now + timedelta(minutes=1)).replace(second=0, microsecond=0)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=(next_minute - now).total_seconds(),
                )
            except TimeoutError:
                pass

            if self._stop_event.is_set():
                break

            try:
                await self.run_pending(datetime.now(UTC))
            except Exception:
                logger.exception("Scheduler tick failed")

    async def run_pending(self, now: datetime) -> list[str]:
        """Tick every trigger and run the due jobs sequentially."""
        due: list[tuple[str, datetime]] = []
        for name, trigger in self._triggers.items():
            fire_time = trigger.next_fire
            if trigger.tick(now) and fire_time is not None:
                due.append((name, fire_time))

        ran = []
        for name, fire_time in due:
            if await self._claim(name, fire_time):
                await self._run(name)
                ran.append(name)
        return ran

    async def _claim(self, name: str, fire_time: datetime) -> bool:
        try:
            claimed = await claim_once(
                f"job:{name}:{fire_time.astimezone(UTC):%Y%m%dT%H%M}", CLAIM_TTL_SECONDS
            )
        except Exception as e:
            logger.warning(f"Could not claim {name} in Valkey, running anyway: {e}")
            return True

        if not claimed:
            logger.info(f"Job {name} skipped - already claimed by another instance")
        return claimed

    async def _run(self, name: str) -> None:
        try:
            await execute_job(name)
        except JobError:
            # Already logged with traceback by the executor
            pass

    def get_next_run_time(self, name: str) -> datetime | None:
        """Next scheduled run time for a job, if it is scheduled."""
        trigger = self._triggers.get(name)
        return trigger.next_fire if trigger else None


def get_scheduler() -> Optional[JobScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


async def start_scheduler() -> JobScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = JobScheduler()
    await _scheduler.start()
    return _scheduler


async def stop_scheduler() -> None:
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
