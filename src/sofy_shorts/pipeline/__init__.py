"""Job pipeline."""

from sofy_shorts.pipeline.orchestrator import (
    PipelineOrchestrator,
    PipelineResult,
    build_orchestrator,
    clip_count,
)

__all__ = ["PipelineOrchestrator", "PipelineResult", "build_orchestrator", "clip_count"]
