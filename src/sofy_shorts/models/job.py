"""Job lifecycle models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Lifecycle status of a generation job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"  # TERMINAL
    FAILED = "failed"  # TERMINAL

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

# Running -> Running is a step change
VALID_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.RUNNING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def is_valid_transition(current: JobStatus, target: JobStatus) -> bool:
    """Validate a status transition. Terminal statuses cannot transition."""
    return target in VALID_TRANSITIONS[current]


class JobStep(str, Enum):
    """Pipeline steps, in execution order."""

    INIT = "initialization"
    VIDEO_GENERATION = "video_generation"
    SCRIPT_GENERATION = "script_generation"
    VOICEOVER_GENERATION = "voiceover_generation"
    MUSIC_GENERATION = "music_generation"
    VIDEO_EDITING = "video_editing"
    FINAL_RENDER = "final_render"


PIPELINE_STEPS: tuple[JobStep, ...] = tuple(JobStep)


def generate_job_id(now: datetime | None = None) -> str:
    """Build a job id from a timestamp and a random suffix."""
    now = now or _utcnow()
    return f"job_{now.strftime('%Y%m%d_%H%M%S_%f')}_{uuid.uuid4().hex[:8]}"


class Job(BaseModel):
    """Persistent record of one generation job."""

    id: str = Field(description="Unique job identifier, immutable")
    niche: str
    theme: str
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: datetime | None = Field(default=None, description="Set only once terminal")
    status: JobStatus = JobStatus.PENDING
    current_step: JobStep | None = None
    error: str | None = None
    output_path: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_ms(self) -> float | None:
        """Processing time in milliseconds, once the job is terminal."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        end = self.end_time or now or _utcnow()
        return (end - self.start_time).total_seconds()

    def to_json_dict(self) -> dict:
        """Serialize to JSON-safe dict with ISO datetime strings."""
        return self.model_dump(mode="json")

    @classmethod
    def from_json_dict(cls, data: dict) -> "Job":
        """Deserialize from JSON dict."""
        return cls.model_validate(data)
