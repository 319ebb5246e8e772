"""Running aggregate statistics over terminal jobs."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from filelock import FileLock
from pydantic import ValidationError

from sofy_shorts.config.logging import get_logger
from sofy_shorts.models.job import Job, JobStatus
from sofy_shorts.models.monitoring import MetricsSnapshot
from sofy_shorts.utils.file_utils import write_atomically

logger = get_logger(__name__)


def running_mean(old_mean: float, n: int, sample: float) -> float:
    """Incremental mean after adding the n-th sample (n >= 1)."""
    return (old_mean * (n - 1) + sample) / n


class MetricsAggregator:
    """Counts, success rate and average durations, persisted after every record.

    Only terminal jobs with an end time are recorded, once each. The per-niche
    average uses its own count of terminal jobs per niche.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = Path(metrics_file)
        self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
        self._file_lock = FileLock(self.metrics_file.with_suffix(".lock"))
        self._lock = threading.Lock()
        self._metrics = self._load()

    def _read_unlocked(self) -> MetricsSnapshot:
        if not self.metrics_file.exists():
            return MetricsSnapshot()
        try:
            data = json.loads(self.metrics_file.read_text(encoding="utf-8"))
            metrics = MetricsSnapshot.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Invalid metrics file %s, starting fresh: %s", self.metrics_file, e)
            return MetricsSnapshot()
        # Files written before the terminal counter existed
        if not metrics.terminal_jobs_by_niche and metrics.jobs_by_niche:
            metrics.terminal_jobs_by_niche = dict(metrics.jobs_by_niche)
        return metrics

    def _load(self) -> MetricsSnapshot:
        with self._file_lock:
            return self._read_unlocked()

    def refresh(self) -> None:
        """Re-read the metrics file written by other processes."""
        with self._lock:
            self._metrics = self._load()

    def record(self, job: Job) -> bool:
        """Fold one terminal job into the aggregates.

        The file is re-read under its lock first so that counts recorded by
        other processes are kept.

        Returns:
            False if the job is not terminal or has no end time.
        """
        duration = job.duration_ms
        if not job.is_terminal or duration is None:
            logger.warning("Not recording job %s: status %s", job.id, job.status.value)
            return False

        with self._lock, self._file_lock:
            m = self._read_unlocked()
            m.total_jobs += 1
            m.jobs_by_niche[job.niche] = m.jobs_by_niche.get(job.niche, 0) + 1
            if job.status is JobStatus.COMPLETED:
                m.completed_jobs += 1
            else:
                m.failed_jobs += 1

            terminal = m.completed_jobs + m.failed_jobs
            m.average_processing_time = running_mean(
                m.average_processing_time, terminal, duration
            )

            niche_n = m.terminal_jobs_by_niche.get(job.niche, 0) + 1
            m.terminal_jobs_by_niche[job.niche] = niche_n
            m.processing_time_by_niche[job.niche] = running_mean(
                m.processing_time_by_niche.get(job.niche, 0.0), niche_n, duration
            )

            m.success_rate = (m.completed_jobs / m.total_jobs) * 100 if m.total_jobs else 0.0
            write_atomically(self.metrics_file, json.dumps(m.model_dump(mode="json"), indent=2))
            self._metrics = m
        return True

    def snapshot(self) -> MetricsSnapshot:
        """Independent copy of the current metrics."""
        with self._lock:
            return self._metrics.model_copy(deep=True)

    def generate_report(self) -> str:
        m = self.snapshot()
        lines = [
            "=== SOFY Analytics Report ===",
            "",
            f"Total Jobs: {m.total_jobs}",
            f"Completed Jobs: {m.completed_jobs}",
            f"Failed Jobs: {m.failed_jobs}",
            f"Success Rate: {m.success_rate:.2f}%",
            f"Average Processing Time: {m.average_processing_time / 1000:.2f} seconds",
            "",
            "=== Jobs by Niche ===",
        ]
        lines += [f"{niche}: {count} jobs" for niche, count in m.jobs_by_niche.items()]
        lines += ["", "=== Average Processing Time by Niche ==="]
        lines += [
            f"{niche}: {ms / 1000:.2f} seconds"
            for niche, ms in m.processing_time_by_niche.items()
        ]
        return "\n".join(lines) + "\n"
