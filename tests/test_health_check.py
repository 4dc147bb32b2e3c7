"""Tests for the health and metrics endpoints."""

import json
from unittest.mock import MagicMock

import pytest

from monitoring import HealthCheckServer, record_reminder_fired
from monitoring.metrics import get_app_name

from tests.fakes import FakeDatabase


def status(reminders_running=True, cleanup_running=True):
    return {
        "reminders": {"running": reminders_running, "slots": {}, "start_error": None},
        "token_cleanup": {"running": cleanup_running, "runs": 0},
    }


def make_server(healthy=True, **kwargs):
    supervisor = MagicMock()
    supervisor.status.return_value = status(**kwargs)
    return HealthCheckServer(FakeDatabase(healthy=healthy), supervisor, port=0)


@pytest.mark.asyncio
async def test_healthy():
    response = await make_server().health_handler(None)
    body = json.loads(response.text)

    assert response.status == 200
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["scheduler"]["reminders"]["running"] is True
    assert body["memory_mb"] > 0


@pytest.mark.asyncio
async def test_database_down_is_degraded():
    response = await make_server(healthy=False).health_handler(None)

    assert response.status == 503
    assert json.loads(response.text)["database"] == "disconnected"


@pytest.mark.asyncio
async def test_stopped_cleanup_is_degraded():
    response = await make_server(cleanup_running=False).health_handler(None)

    assert response.status == 503
    assert json.loads(response.text)["status"] == "degraded"


@pytest.mark.asyncio
async def test_metrics_endpoint():
    record_reminder_fired("20:00")

    response = await make_server().metrics_handler(None)

    assert f'reminders_fired_total{{app_name="{get_app_name()}",slot="20:00"}}' in response.text
    assert "app_uptime_seconds" in response.text
