"""Tests for the scheduler composition root."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from config import Settings
from scheduler import InvalidTimeFormat, SchedulerSupervisor

from tests.fakes import at


def make_settings(**overrides):
    values = dict(
        database_url="postgresql://localhost/crapp",
        timezone="UTC",
        reminder_times=["09:00", "20:00"],
        token_cleanup_interval_hours=12,
    )
    values.update(overrides)
    return Settings(**values)


def make_supervisor(clock, dispatcher, **overrides):
    select = AsyncMock(return_value=["user@example.com"])
    cleanup = AsyncMock(return_value={"refresh_tokens": 1})
    supervisor = SchedulerSupervisor(make_settings(**overrides), select, dispatcher, cleanup, clock=clock)
    return supervisor, select, cleanup


class TestSupervisor:
    @pytest.mark.asyncio
    async def test_start_arms_reminders_and_cleanup(self, clock, dispatcher):
        supervisor, select, cleanup = make_supervisor(clock, dispatcher)

        assert supervisor.start() is None
        assert clock.started

        await clock.advance(timedelta(hours=12))

        select.assert_any_await("09:00")
        select.assert_any_await("20:00")
        # Cleanup runs at start and again twelve hours later
        assert cleanup.await_count == 2
        assert len(dispatcher.calls) == 2

    def test_bad_reminder_time_is_reported_not_raised(self, clock, dispatcher):
        supervisor, _, _ = make_supervisor(clock, dispatcher, reminder_times=["09:00", "nope"])

        error = supervisor.start()

        assert isinstance(error, InvalidTimeFormat)
        assert supervisor.token_cleanup.running
        assert "09:00" in supervisor.registry

    @pytest.mark.asyncio
    async def test_stop_silences_everything(self, clock, dispatcher):
        supervisor, select, cleanup = make_supervisor(clock, dispatcher)
        supervisor.start()
        await clock.advance()

        supervisor.stop()
        await clock.advance(timedelta(days=2))

        select.assert_not_awaited()
        assert cleanup.await_count == 1
        assert clock.live_timers == []
        assert not clock.started

    def test_stop_twice_is_safe(self, clock, dispatcher):
        supervisor, _, _ = make_supervisor(clock, dispatcher)
        supervisor.start()

        supervisor.stop()
        supervisor.stop()

    @pytest.mark.asyncio
    async def test_status(self, clock, dispatcher):
        supervisor, _, _ = make_supervisor(clock, dispatcher)
        supervisor.start()
        await clock.advance()

        status = supervisor.status()

        assert status["reminders"]["running"] is True
        assert status["reminders"]["slots"]["09:00"] == {
            "state": "armed",
            "next_fire": at(9, 0).isoformat(),
        }
        assert status["reminders"]["start_error"] is None
        assert status["token_cleanup"]["running"] is True
        assert status["token_cleanup"]["interval_seconds"] == 12 * 3600
        assert status["token_cleanup"]["runs"] == 1
        assert status["token_cleanup"]["last_run"] == at(8, 0).isoformat()

    def test_status_after_stop(self, clock, dispatcher):
        supervisor, _, _ = make_supervisor(clock, dispatcher)
        supervisor.start()
        supervisor.stop()

        status = supervisor.status()

        assert status["reminders"]["running"] is False
        assert status["reminders"]["slots"]["20:00"]["state"] == "canceled"
        assert status["token_cleanup"]["running"] is False
