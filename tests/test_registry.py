"""Tests for the slot-keyed job registry."""

from unittest.mock import MagicMock

from scheduler import JobRegistry, ReminderTimeSlot, SlotState

from tests.fakes import at

SLOT = ReminderTimeSlot(9, 0)


def test_replace_cancels_previous_job():
    registry = JobRegistry()
    registry.open()
    first_handle, second_handle = MagicMock(), MagicMock()

    first = registry.replace(SLOT, lambda job: first_handle, at(9, 0))
    second = registry.replace(SLOT, lambda job: second_handle, at(9, 0, day=2))

    first_handle.cancel.assert_called_once()
    second_handle.cancel.assert_not_called()
    assert first.state == SlotState.CANCELED
    assert registry.snapshot() == {"09:00": second}
    assert second.generation != first.generation


def test_replace_refused_when_closed():
    registry = JobRegistry()
    arm = MagicMock()

    assert registry.replace(SLOT, arm, at(9, 0)) is None
    arm.assert_not_called()
    assert len(registry) == 0


def test_mark_fired_only_once_per_generation():
    registry = JobRegistry()
    registry.open()
    job = registry.replace(SLOT, lambda job: MagicMock(), at(9, 0))

    assert registry.mark_fired("09:00", job.generation) is job
    assert job.state == SlotState.FIRED
    assert registry.mark_fired("09:00", job.generation) is None


def test_mark_fired_rejects_unknown_slot():
    registry = JobRegistry()
    registry.open()
    assert registry.mark_fired("10:00", 1) is None


def test_close_cancels_everything():
    registry = JobRegistry()
    registry.open()
    handles = [MagicMock(), MagicMock()]
    registry.replace(ReminderTimeSlot(9, 0), lambda job: handles[0], at(9, 0))
    registry.replace(ReminderTimeSlot(20, 0), lambda job: handles[1], at(20, 0))

    closed = registry.close()

    assert len(closed) == 2
    assert all(job.state == SlotState.CANCELED for job in closed)
    for handle in handles:
        handle.cancel.assert_called_once()
    assert "09:00" not in registry
    assert not registry.is_open
    assert registry.close() == []
