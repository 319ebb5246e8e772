"""Data models for sofy-shorts."""

from sofy_shorts.models.job import (
    PIPELINE_STEPS,
    TERMINAL_STATUSES,
    Job,
    JobStatus,
    JobStep,
    generate_job_id,
    is_valid_transition,
)
from sofy_shorts.models.monitoring import LogEntry, LogLevel, MetricsSnapshot
from sofy_shorts.models.video_config import (
    MusicSettings,
    OutputSettings,
    PromptSettings,
    SubtitleSettings,
    VideoConfig,
    VideoSettings,
    VoiceoverSettings,
)

__all__ = [
    "Job",
    "JobStatus",
    "JobStep",
    "PIPELINE_STEPS",
    "TERMINAL_STATUSES",
    "generate_job_id",
    "is_valid_transition",
    "LogEntry",
    "LogLevel",
    "MetricsSnapshot",
    "VideoConfig",
    "PromptSettings",
    "VideoSettings",
    "VoiceoverSettings",
    "MusicSettings",
    "SubtitleSettings",
    "OutputSettings",
]
