"""
Scheduler Supervisor
Builds the reminder and cleanup schedulers and owns their lifecycle
"""

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from .cleanup_scheduler import PeriodicCleanupScheduler
from .clock import SchedulerClock
from .errors import SchedulingError
from .registry import JobRegistry
from .reminder_scheduler import DailyReminderScheduler, RecipientSelector

logger = logging.getLogger(__name__)


class SchedulerSupervisor:
    """Composition root for the background scheduling subsystem."""

    def __init__(
        self,
        settings,
        select_eligible: RecipientSelector,
        dispatcher,
        cleanup: Callable[[], Awaitable[Any]],
        clock=None,
    ):
        """
        Args:
            settings: Settings instance (reminder_times, timezone, intervals, texts)
            select_eligible: async (slot_key) -> recipients
            dispatcher: NotificationDispatcher
            cleanup: async () -> deleted counts
            clock: Timer primitive; defaults to an APScheduler-backed clock
        """
        self.settings = settings
        self.clock = clock or SchedulerClock(settings.timezone)
        self.registry = JobRegistry()

        self.reminders = DailyReminderScheduler(
            self.clock,
            self.registry,
            select_eligible,
            dispatcher,
            title=settings.reminder_title,
            body=settings.reminder_body,
        )
        self.token_cleanup = PeriodicCleanupScheduler(
            self.clock,
            cleanup,
            interval=timedelta(hours=settings.token_cleanup_interval_hours),
        )
        self.start_error: Optional[SchedulingError] = None

    def start(self) -> Optional[SchedulingError]:
        """
        Start the clock and both schedulers.

        A bad reminder time does not stop the process: it is logged, kept in
        start_error and returned, and the remaining slots stay armed.

        Returns:
            The scheduling error, or None if every slot armed
        """
        self.clock.start()

        try:
            self.reminders.start(self.settings.reminder_times)
        except SchedulingError as e:
            self.start_error = e
            logger.warning(f"Reminder scheduler started with errors: {e}")

        self.token_cleanup.start()
        logger.info("Scheduler supervisor started")
        return self.start_error

    def stop(self) -> None:
        """Stop both schedulers, then the clock."""
        if self.token_cleanup.running:
            self.token_cleanup.stop()
        self.reminders.stop()
        self.clock.shutdown()
        logger.info("Scheduler supervisor stopped")

    def status(self) -> Dict[str, Any]:
        """Scheduler state for the health endpoint."""
        next_fires = self.reminders.next_fire_times()
        states = self.reminders.slot_states()
        cleanup = self.token_cleanup

        return {
            "reminders": {
                "running": self.reminders.running,
                "slots": {
                    key: {
                        "state": states[key].value,
                        "next_fire": fire_at.isoformat() if fire_at else None,
                    }
                    for key, fire_at in next_fires.items()
                },
                "start_error": str(self.start_error) if self.start_error else None,
            },
            "token_cleanup": {
                "running": cleanup.running,
                "interval_seconds": int(cleanup.interval.total_seconds()),
                "runs": cleanup.runs,
                "last_run": cleanup.last_run_at.isoformat() if cleanup.last_run_at else None,
                "last_error": cleanup.last_error,
            },
        }
