"""
Test Doubles
Deterministic clock and in-memory collaborators for scheduler tests
"""

import asyncio
import itertools
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

import pytz

UTC = pytz.utc


def at(hour: int, minute: int = 0, day: int = 1, tz=UTC) -> datetime:
    """Aware datetime on 2026-06-<day> in tz."""
    return tz.localize(datetime(2026, 6, day, hour, minute))


class FakeTimer:
    """A timer armed on FakeClock."""

    def __init__(self, clock, due: datetime, callback, args, name: str, interval: Optional[timedelta] = None):
        self.clock = clock
        self.due = due
        self.callback = callback
        self.args = args
        self.name = name
        self.interval = interval
        self.seq = next(clock._seq)
        self.cancelled = False
        self.fired = 0

    @property
    def delay(self) -> timedelta:
        """Time left until this timer is due."""
        return self.due - self.clock.now()

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """
    Manually advanced clock implementing now/call_later/call_every.

    Timers only run inside advance(), in due-time order, with now() set to
    each timer's due time while its callback runs.
    """

    def __init__(self, start: datetime):
        self._now = start
        self._tz = start.tzinfo
        self._seq = itertools.count()
        self.timers: List[FakeTimer] = []
        self.started = False

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False

    def now(self) -> datetime:
        return self._now

    def _set_now(self, value: datetime) -> None:
        normalize = getattr(self._tz, "normalize", None)
        self._now = normalize(value) if normalize else value

    def call_later(self, delay: timedelta, callback: Callable[..., Any], *args: Any, name: str = "timer") -> FakeTimer:
        timer = FakeTimer(self, self._now + max(delay, timedelta(0)), callback, args, name)
        self.timers.append(timer)
        return timer

    def call_every(
        self,
        interval: timedelta,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "ticker",
        first_delay: Optional[timedelta] = None,
    ) -> FakeTimer:
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        first = interval if first_delay is None else max(first_delay, timedelta(0))
        timer = FakeTimer(self, self._now + first, callback, args, name, interval=interval)
        self.timers.append(timer)
        return timer

    @property
    def live_timers(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and (t.interval or not t.fired)]

    def timers_named(self, name: str) -> List[FakeTimer]:
        return [t for t in self.live_timers if t.name == name]

    async def advance(self, delta: timedelta = timedelta(0)) -> None:
        """Move time forward by delta, running every timer that comes due."""
        target = self._now + delta
        while True:
            due = [t for t in self.live_timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._set_now(timer.due)
            timer.fired += 1
            if timer.interval:
                timer.due = timer.due + timer.interval
            result = timer.callback(*timer.args)
            if asyncio.iscoroutine(result):
                await result
        self._set_now(target)


class RecordingDispatcher:
    """Dispatcher double that records each cohort it is asked to notify."""

    def __init__(self, error: Optional[BaseException] = None):
        self.calls = []
        self.error = error

    async def dispatch(self, recipients, title, body):
        self.calls.append((list(recipients), title, body))
        if self.error is not None:
            raise self.error


class FakeRow(dict):
    """asyncpg Record stand-in (subscriptable by column name)."""


class FakeDatabase:
    """Database double for services: canned rows and recorded statements."""

    def __init__(self, rows=None, statuses=None, error=None, healthy=True):
        self.rows = [FakeRow(r) for r in (rows or [])]
        self.statuses = list(statuses or [])
        self.error = error
        self.healthy = healthy
        self.executed = []
        self.committed = False

    async def fetch_all(self, query, *args):
        self.executed.append(query)
        return self.rows

    async def health_check(self):
        return self.healthy

    def transaction(self):
        return _FakeTransaction(self)


class _FakeTransaction:
    def __init__(self, db):
        self.db = db

    async def __aenter__(self):
        if self.db.error is not None:
            raise self.db.error
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.db.committed = exc_type is None
        return False

    async def execute(self, query, *args):
        self.db.executed.append(query)
        return self.db.statuses.pop(0) if self.db.statuses else "DELETE 0"
