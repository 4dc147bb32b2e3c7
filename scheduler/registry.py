"""
Job Registry
Slot-keyed table of armed reminder timers guarded by a single lock
"""

import enum
import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .time_slots import ReminderTimeSlot


class SlotState(str, enum.Enum):
    """Lifecycle of one slot's timer."""

    UNSCHEDULED = "unscheduled"
    ARMED = "armed"
    FIRED = "fired"
    CANCELED = "canceled"


_generations = itertools.count(1)


@dataclass
class ScheduledJob:
    """An armed timer bound to one reminder slot."""

    slot: ReminderTimeSlot
    fire_at: datetime
    handle: object = None
    generation: int = field(default_factory=lambda: next(_generations))
    state: SlotState = SlotState.ARMED

    @property
    def key(self) -> str:
        return self.slot.key

    def cancel(self) -> None:
        if self.handle is not None:
            self.handle.cancel()
        self.state = SlotState.CANCELED


class JobRegistry:
    """
    Mapping of slot key to ScheduledJob.

    All mutation happens under one lock. Once closed, nothing can be
    installed until open() is called again, so a fire that races stop()
    cannot re-arm its slot.
    """

    def __init__(self):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._lock = threading.Lock()
        self._open = False

    def open(self) -> None:
        with self._lock:
            self._open = True

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._open

    def replace(
        self,
        slot: ReminderTimeSlot,
        arm: Callable[[ScheduledJob], object],
        fire_at: datetime,
    ) -> Optional[ScheduledJob]:
        """
        Cancel the slot's current job (if any) and install a new one.

        Args:
            slot: Slot being (re)armed
            arm: Called under the lock with the new job; returns its timer handle
            fire_at: Absolute time the new timer fires

        Returns:
            The installed job, or None if the registry is closed
        """
        with self._lock:
            if not self._open:
                return None

            old = self._jobs.pop(slot.key, None)
            if old is not None:
                old.cancel()

            job = ScheduledJob(slot=slot, fire_at=fire_at)
            job.handle = arm(job)
            self._jobs[slot.key] = job
            return job

    def mark_fired(self, key: str, generation: int) -> Optional[ScheduledJob]:
        """
        Move the current job for key to FIRED.

        Returns:
            The job, or None if the fire is stale (replaced, canceled, or closed)
        """
        with self._lock:
            if not self._open:
                return None
            job = self._jobs.get(key)
            if job is None or job.generation != generation or job.state != SlotState.ARMED:
                return None
            job.state = SlotState.FIRED
            return job

    def close(self) -> List[ScheduledJob]:
        """Cancel every job, empty the table and refuse further installs."""
        with self._lock:
            self._open = False
            jobs = list(self._jobs.values())
            for job in jobs:
                job.cancel()
            self._jobs.clear()
            return jobs

    def snapshot(self) -> Dict[str, ScheduledJob]:
        """Copy of the current table."""
        with self._lock:
            return dict(self._jobs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._jobs
