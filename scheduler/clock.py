"""
Scheduler Clock
Timer primitive backed by APScheduler's AsyncIOScheduler

The reminder and cleanup schedulers only see the small Clock surface below
(now, call_later, call_every), so tests can drive them with a fake clock.
"""

import itertools
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
import pytz

logger = logging.getLogger(__name__)

_job_ids = itertools.count(1)


class TimerHandle:
    """Cancellation handle for one APScheduler job."""

    def __init__(self, job, name: str):
        self._job = job
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        """Remove the job. Safe to call after it has fired or been removed."""
        if self.cancelled:
            return
        self.cancelled = True
        try:
            self._job.remove()
        except JobLookupError:
            # Single-shot jobs are dropped by APScheduler once they run
            pass


class SchedulerClock:
    """Wall clock and timer factory for the scheduling subsystem."""

    def __init__(self, timezone: str = "UTC", scheduler: Optional[AsyncIOScheduler] = None):
        self.tz = pytz.timezone(timezone)
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.tz)

    def start(self) -> None:
        """Start the underlying APScheduler instance (needs a running loop)."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info(f"Scheduler clock started (timezone={self.tz.zone})")

    def shutdown(self) -> None:
        """Stop the underlying scheduler without waiting for running jobs."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler clock stopped")

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def call_later(
        self,
        delay: timedelta,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "timer",
    ) -> TimerHandle:
        """
        Arm a single-shot timer.

        Args:
            delay: Time until the callback runs; zero or negative runs it now
            callback: Function or coroutine function to run
            *args: Positional arguments for callback
            name: Label used in job ids and logs

        Returns:
            TimerHandle for cancellation
        """
        run_date = self.now() + max(delay, timedelta(0))
        job = self.scheduler.add_job(
            callback,
            DateTrigger(run_date=run_date, timezone=self.tz),
            args=list(args),
            id=f"{name}:{next(_job_ids)}",
            name=name,
            misfire_grace_time=None,
        )
        return TimerHandle(job, name)

    def call_every(
        self,
        interval: timedelta,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "ticker",
        first_delay: Optional[timedelta] = None,
    ) -> TimerHandle:
        """
        Arm a repeating timer.

        Args:
            interval: Time between runs
            callback: Function or coroutine function to run
            *args: Positional arguments for callback
            name: Label used in job ids and logs
            first_delay: Delay before the first run (default: one interval)

        Returns:
            TimerHandle for cancellation
        """
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")

        first_run = self.now() + (interval if first_delay is None else max(first_delay, timedelta(0)))
        job = self.scheduler.add_job(
            callback,
            IntervalTrigger(seconds=interval.total_seconds(), timezone=self.tz),
            args=list(args),
            id=f"{name}:{next(_job_ids)}",
            name=name,
            next_run_time=first_run,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=None,
        )
        return TimerHandle(job, name)
