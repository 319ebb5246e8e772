"""Log entry and metrics models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogEntry(BaseModel):
    """One event log line. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    level: LogLevel
    message: str
    job_id: str | None = None
    payload: Any = None


class MetricsSnapshot(BaseModel):
    """Aggregate statistics over terminal jobs."""

    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    average_processing_time: float = Field(default=0.0, description="Milliseconds")
    success_rate: float = Field(default=0.0, description="Percentage")
    jobs_by_niche: dict[str, int] = Field(default_factory=dict)
    terminal_jobs_by_niche: dict[str, int] = Field(default_factory=dict)
    processing_time_by_niche: dict[str, float] = Field(
        default_factory=dict, description="Average milliseconds per niche"
    )
