"""
Scheduler Errors
Exception types raised by the reminder and cleanup schedulers
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class InvalidTimeFormat(SchedulingError):
    """A configured reminder time could not be parsed as HH:MM."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid reminder time {text!r}: {reason}")


class CleanupFailure(Exception):
    """Token cleanup pass failed."""
