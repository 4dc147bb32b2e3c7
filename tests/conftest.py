"""Shared fixtures for scheduler and service tests."""

import pytest

from scheduler import JobRegistry

from tests.fakes import FakeClock, RecordingDispatcher, at


@pytest.fixture
def clock():
    return FakeClock(at(8, 0))


@pytest.fixture
def registry():
    return JobRegistry()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()

