"""Monitoring facade used by the pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from sofy_shorts.config.settings import Settings
from sofy_shorts.models.job import Job, JobStatus, JobStep
from sofy_shorts.models.monitoring import LogEntry, LogLevel, MetricsSnapshot
from sofy_shorts.monitoring.event_logger import EventLogger
from sofy_shorts.monitoring.job_store import ORPHANED_ERROR, JobRecordStore
from sofy_shorts.monitoring.metrics import MetricsAggregator

METRICS_FILE = "metrics.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitoringService:
    """Job records, event log and metrics behind one API.

    Construct one per process (or per test) and pass it to the orchestrator.
    """

    def __init__(
        self,
        store: JobRecordStore,
        events: EventLogger,
        metrics: MetricsAggregator,
    ):
        self.store = store
        self.events = events
        self.metrics = metrics

    @classmethod
    def create(
        cls,
        data_dir: Path,
        console: Console | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> "MonitoringService":
        """Build the standard layout: ``jobs/``, ``logs/``, ``analytics/``."""
        data_dir = Path(data_dir)
        return cls(
            store=JobRecordStore(data_dir / "jobs", clock=clock),
            events=EventLogger(data_dir / "logs", console=console, clock=clock),
            metrics=MetricsAggregator(data_dir / "analytics" / METRICS_FILE),
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, console: Console | None = None
    ) -> "MonitoringService":
        return cls(
            store=JobRecordStore(settings.jobs_dir),
            events=EventLogger(settings.logs_dir, console=console),
            metrics=MetricsAggregator(settings.analytics_dir / METRICS_FILE),
        )

    def start_job(self, niche: str, theme: str) -> str:
        """Create a job and move it straight to Running/Init."""
        job_id = self.store.create(niche, theme)
        self.events.info(f"Started job for niche: {niche}, theme: {theme}", job_id)
        self.update_status(job_id, JobStatus.RUNNING, JobStep.INIT)
        return job_id

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        step: JobStep | None = None,
        error: str | None = None,
    ) -> Job | None:
        """Forward a transition to the store, log it, record terminal jobs.

        Metrics are fed only when this call performed the terminal
        transition, so a job is counted exactly once.
        """
        job = self.store.update_status(job_id, status, step, error)
        if job is None:
            self.events.error(f"Status update to {status.value} was not applied", job_id)
            return None

        step_text = f" (step: {step.value})" if step else ""
        if error:
            self.events.error(f"Job status updated to {status.value}{step_text}: {error}", job_id)
        else:
            self.events.info(f"Job status updated to {status.value}{step_text}", job_id)

        if job.is_terminal:
            self.metrics.record(job)
            seconds = (job.duration_ms or 0) / 1000
            if status is JobStatus.COMPLETED:
                self.events.info(f"Job completed successfully in {seconds:.2f} seconds", job_id)
            else:
                self.events.error(f"Job failed after {seconds:.2f} seconds: {job.error}", job_id)
        return job

    def set_output_path(self, job_id: str, path: str | Path) -> bool:
        ok = self.store.set_output_path(job_id, path)
        if ok:
            self.events.info(f"Output path set: {path}", job_id)
        return ok

    def get_job(self, job_id: str) -> Job | None:
        return self.store.get(job_id)

    def list_all(self) -> list[Job]:
        return self.store.list_all()

    def active_jobs(self) -> list[Job]:
        return [j for j in self.store.list_all() if not j.is_terminal]

    def metrics_snapshot(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def generate_report(self) -> str:
        return self.metrics.generate_report()

    def log(
        self,
        level: LogLevel,
        message: str,
        job_id: str | None = None,
        payload: Any = None,
    ) -> LogEntry:
        return self.events.log(level, message, job_id, payload)

    def recover_orphaned(self, reason: str = ORPHANED_ERROR) -> list[Job]:
        """Fail jobs a previous process left Pending/Running and count them."""
        failed = self.store.fail_orphaned(reason)
        for job in failed:
            self.metrics.record(job)
            self.events.warning(f"Marked orphaned job as failed: {reason}", job.id)
        return failed

    def refresh(self) -> None:
        """Pick up jobs and metrics persisted by other processes."""
        self.store.refresh()
        self.metrics.refresh()

    def close(self) -> None:
        self.events.close()
