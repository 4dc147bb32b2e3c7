"""
Reminder Scheduler
Daily reminder timers, one per configured time of day

Each slot owns a single-shot timer. When it fires, the eligible cohort is
looked up, the reminder is dispatched, and the slot is re-armed for the next
day. Registry bookkeeping happens under the JobRegistry lock; recipient
lookup and dispatch never do.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from monitoring.metrics import record_reminder_fired, set_armed_jobs

from .errors import InvalidTimeFormat
from .registry import JobRegistry, ScheduledJob, SlotState
from .time_slots import ReminderTimeSlot

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Daily Symptom Report Reminder"
DEFAULT_BODY = "Don't forget to complete your symptom report for today!"

RecipientSelector = Callable[[str], Awaitable[List[Any]]]


class DailyReminderScheduler:
    """Arms, fires, re-arms and cancels daily reminder timers."""

    def __init__(
        self,
        clock,
        registry: JobRegistry,
        select_eligible: RecipientSelector,
        dispatcher,
        title: str = DEFAULT_TITLE,
        body: str = DEFAULT_BODY,
    ):
        """
        Args:
            clock: Timer primitive (now, call_later)
            registry: Job table owned by this scheduler
            select_eligible: async (slot_key) -> recipients
            dispatcher: Object with async dispatch(recipients, title, body)
            title: Notification title
            body: Notification body
        """
        self.clock = clock
        self.registry = registry
        self.select_eligible = select_eligible
        self.dispatcher = dispatcher
        self.title = title
        self.body = body
        self.slots: List[ReminderTimeSlot] = []

    def start(self, slot_texts: Iterable[str]) -> None:
        """
        Arm one timer per configured time of day.

        Bad entries are skipped and the rest still arm; the first parse
        error is raised once every valid slot is armed.
        Calling start again while running is ignored; stop first.

        Args:
            slot_texts: Configured HH:MM strings

        Raises:
            InvalidTimeFormat: If any entry could not be parsed
        """
        if self.registry.is_open:
            logger.warning("Reminder scheduler already started")
            return

        self.slots = []
        self.registry.open()
        errors: List[InvalidTimeFormat] = []

        for text in slot_texts:
            try:
                slot = ReminderTimeSlot.parse(text)
            except InvalidTimeFormat as e:
                logger.error(f"Skipping reminder slot: {e}")
                errors.append(e)
                continue

            if slot in self.slots:
                logger.warning(f"Duplicate reminder time {text!r} ignored (already scheduled as {slot.key})")
                continue

            self.slots.append(slot)
            self._arm(slot, strictly_after=False)

        set_armed_jobs(len(self.registry))
        logger.info(
            f"Reminder scheduler started with {len(self.registry)} slot(s): "
            f"{', '.join(s.key for s in self.slots) or 'none'}"
        )

        if errors:
            raise errors[0]

    def stop(self) -> None:
        """Cancel every armed timer. Safe to call more than once."""
        cancelled = self.registry.close()
        set_armed_jobs(0)
        if cancelled:
            logger.info(f"Reminder scheduler stopped, cancelled {len(cancelled)} timer(s)")

    @property
    def running(self) -> bool:
        return self.registry.is_open

    def _arm(self, slot: ReminderTimeSlot, strictly_after: bool) -> Optional[ScheduledJob]:
        """Compute the next fire time for slot and install its timer."""
        now = self.clock.now()
        fire_at = slot.next_occurrence(now, strictly_after=strictly_after)
        delay = max(fire_at - now, timedelta(0))

        def arm(job: ScheduledJob):
            return self.clock.call_later(
                delay, self._fire, slot.key, job.generation, name=f"reminder:{slot.key}"
            )

        job = self.registry.replace(slot, arm, fire_at)
        if job is None:
            logger.info(f"Reminder scheduler stopped, not re-arming {slot.key}")
            return None

        set_armed_jobs(len(self.registry))
        logger.info(f"Reminder {slot.key} armed for {fire_at.isoformat()} (in {delay})")
        return job

    async def _fire(self, key: str, generation: int) -> None:
        """Timer callback: dispatch to the slot's cohort, then re-arm."""
        job = self.registry.mark_fired(key, generation)
        if job is None:
            logger.debug(f"Ignoring stale fire for reminder {key}")
            return

        record_reminder_fired(key)
        logger.info(f"Reminder {key} fired")

        try:
            recipients = await self.select_eligible(key)
            logger.info(f"Reminder {key}: {len(recipients)} eligible recipient(s)")
            if recipients:
                await self.dispatcher.dispatch(recipients, self.title, self.body)
        except Exception as e:
            logger.error(f"Error sending reminders for {key}: {e}")
        finally:
            self._arm(job.slot, strictly_after=True)

    def next_fire_times(self) -> Dict[str, Optional[datetime]]:
        """Next fire time per configured slot (None if not armed)."""
        jobs = self.registry.snapshot()
        return {
            slot.key: jobs[slot.key].fire_at if slot.key in jobs else None
            for slot in self.slots
        }

    def slot_states(self) -> Dict[str, SlotState]:
        """Current state per configured slot."""
        jobs = self.registry.snapshot()
        states = {}
        for slot in self.slots:
            job = jobs.get(slot.key)
            if job is not None:
                states[slot.key] = job.state
            elif self.running:
                states[slot.key] = SlotState.UNSCHEDULED
            else:
                states[slot.key] = SlotState.CANCELED
        return states
