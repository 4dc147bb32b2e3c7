"""
Monitoring Package
Health checks and Prometheus metrics
"""

from monitoring.metrics import (
    record_reminder_fired,
    record_dispatch,
    record_cleanup,
    set_armed_jobs,
    update_memory,
    get_metrics_text,
)
from monitoring.health_check import HealthCheckServer

__all__ = [
    "HealthCheckServer",
    "record_reminder_fired",
    "record_dispatch",
    "record_cleanup",
    "set_armed_jobs",
    "update_memory",
    "get_metrics_text",
]
