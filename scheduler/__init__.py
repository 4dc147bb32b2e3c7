"""
Scheduler Module
APScheduler-based background scheduling

Schedulers:
- reminder_scheduler: Daily reminder notifications at configured times
- cleanup_scheduler: Periodic sweep of expired security tokens
- supervisor: Builds both from settings and owns their lifecycle
"""

from .clock import SchedulerClock, TimerHandle
from .errors import CleanupFailure, InvalidTimeFormat, SchedulingError
from .time_slots import ReminderTimeSlot
from .registry import JobRegistry, ScheduledJob, SlotState
from .reminder_scheduler import DailyReminderScheduler
from .cleanup_scheduler import PeriodicCleanupScheduler
from .supervisor import SchedulerSupervisor

__all__ = [
    "SchedulerClock",
    "TimerHandle",
    "CleanupFailure",
    "InvalidTimeFormat",
    "SchedulingError",
    "ReminderTimeSlot",
    "JobRegistry",
    "ScheduledJob",
    "SlotState",
    "DailyReminderScheduler",
    "PeriodicCleanupScheduler",
    "SchedulerSupervisor",
]
