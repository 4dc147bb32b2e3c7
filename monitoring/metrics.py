"""
Prometheus Metrics
Export scheduler metrics in Prometheus format for monitoring
"""

import os
import time
import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

logger = logging.getLogger(__name__)

_started_at = time.time()

# Custom registry so tests and multiple app instances don't collide with the default one
REGISTRY = CollectorRegistry()

APP_UPTIME = Gauge(
    'app_uptime_seconds',
    'Process uptime in seconds',
    ['app_name'],
    registry=REGISTRY
)

APP_MEMORY = Gauge(
    'app_memory_bytes',
    'Process memory usage in bytes',
    ['app_name'],
    registry=REGISTRY
)

REMINDERS_FIRED = Counter(
    'reminders_fired_total',
    'Reminder slot fires',
    ['app_name', 'slot'],
    registry=REGISTRY
)

REMINDER_DISPATCH = Counter(
    'reminder_dispatch_total',
    'Per-recipient reminder dispatch attempts by outcome',
    ['app_name', 'result'],
    registry=REGISTRY
)

REMINDER_JOBS_ARMED = Gauge(
    'reminder_jobs_armed',
    'Reminder timers currently armed',
    ['app_name'],
    registry=REGISTRY
)

TOKEN_CLEANUP_RUNS = Counter(
    'token_cleanup_runs_total',
    'Token cleanup passes by outcome',
    ['app_name', 'result'],
    registry=REGISTRY
)

TOKENS_DELETED = Counter(
    'tokens_deleted_total',
    'Expired tokens deleted by cleanup',
    ['app_name', 'table'],
    registry=REGISTRY
)


def get_app_name() -> str:
    """Get app name from environment."""
    return os.getenv('APP_NAME', 'CRAPP')


def get_metrics_text() -> str:
    """Generate metrics text in Prometheus format."""
    APP_UPTIME.labels(app_name=get_app_name()).set(time.time() - _started_at)
    return generate_latest(REGISTRY).decode('utf-8')


def record_reminder_fired(slot: str):
    """Record a reminder slot firing."""
    REMINDERS_FIRED.labels(app_name=get_app_name(), slot=slot).inc()


def record_dispatch(result: str, count: int = 1):
    """Record dispatch outcomes (sent, failed, skipped)."""
    if count:
        REMINDER_DISPATCH.labels(app_name=get_app_name(), result=result).inc(count)


def set_armed_jobs(count: int):
    """Update armed reminder timer count."""
    REMINDER_JOBS_ARMED.labels(app_name=get_app_name()).set(count)


def record_cleanup(result: str, deleted: dict = None):
    """Record a token cleanup pass and per-table deletions."""
    app_name = get_app_name()
    TOKEN_CLEANUP_RUNS.labels(app_name=app_name, result=result).inc()
    for table, count in (deleted or {}).items():
        if count:
            TOKENS_DELETED.labels(app_name=app_name, table=table).inc(count)


def update_memory(memory: float):
    """Update process memory gauge."""
    APP_MEMORY.labels(app_name=get_app_name()).set(memory)
