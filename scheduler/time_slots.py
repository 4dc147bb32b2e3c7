"""
Reminder Time Slots
Parse configured HH:MM times and compute their next wall-clock occurrence
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .errors import InvalidTimeFormat

_SLOT_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _localize(naive: datetime, tzinfo) -> datetime:
    """Attach tzinfo to a naive datetime, honouring pytz DST rules."""
    localize = getattr(tzinfo, "localize", None)
    if localize is None:
        return naive.replace(tzinfo=tzinfo)
    return tzinfo.normalize(localize(naive))


@dataclass(frozen=True)
class ReminderTimeSlot:
    """A daily time-of-day at which reminders fire."""

    hour: int
    minute: int

    @classmethod
    def parse(cls, text: str) -> "ReminderTimeSlot":
        """
        Parse a 24-hour HH:MM string.

        Args:
            text: Time string such as "20:00" or "9:30"

        Returns:
            ReminderTimeSlot

        Raises:
            InvalidTimeFormat: If text is not a valid time of day
        """
        if not isinstance(text, str):
            raise InvalidTimeFormat(repr(text), "expected a string")

        match = _SLOT_RE.match(text.strip())
        if not match:
            raise InvalidTimeFormat(text, "expected HH:MM")

        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23:
            raise InvalidTimeFormat(text, "hour must be 0-23")
        if minute > 59:
            raise InvalidTimeFormat(text, "minute must be 0-59")
        return cls(hour, minute)

    @property
    def key(self) -> str:
        """Normalized HH:MM text, used as the registry key."""
        return f"{self.hour:02d}:{self.minute:02d}"

    def next_occurrence(self, now: datetime, strictly_after: bool = False) -> datetime:
        """
        Get the next instant this slot occurs on the wall clock of `now`.

        A slot equal to `now` counts as not yet passed unless strictly_after
        is set, in which case the following day is returned.

        Args:
            now: Current timezone-aware time
            strictly_after: Skip an occurrence equal to now

        Returns:
            Timezone-aware datetime of the next occurrence
        """
        slot_time = time(self.hour, self.minute)
        candidate = _localize(datetime.combine(now.date(), slot_time), now.tzinfo)

        if candidate < now or (strictly_after and candidate <= now):
            tomorrow = now.date() + timedelta(days=1)
            candidate = _localize(datetime.combine(tomorrow, slot_time), now.tzinfo)
        return candidate

    def delay_from(self, now: datetime, strictly_after: bool = False) -> timedelta:
        """Time left until the next occurrence, never negative."""
        delay = self.next_occurrence(now, strictly_after) - now
        return max(delay, timedelta(0))

    def __str__(self) -> str:
        return self.key

