"""Job tracking, event logging, metrics and the dashboard."""

from sofy_shorts.monitoring.dashboard import Dashboard, DashboardConfig
from sofy_shorts.monitoring.event_logger import (
    EventLogger,
    format_entry,
    parse_log_line,
    read_log_entries,
)
from sofy_shorts.monitoring.job_store import JobRecordStore
from sofy_shorts.monitoring.metrics import MetricsAggregator
from sofy_shorts.monitoring.service import MonitoringService

__all__ = [
    "Dashboard",
    "DashboardConfig",
    "EventLogger",
    "JobRecordStore",
    "MetricsAggregator",
    "MonitoringService",
    "format_entry",
    "parse_log_line",
    "read_log_entries",
]
