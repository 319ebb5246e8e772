"""Write-through persistence of job records.

Layout: one ``<job_id>.json`` per job under the jobs directory, guarded by a
FileLock so a dashboard or another process never reads a half-written
record. The in-memory index is guarded by a threading lock.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from filelock import FileLock
from pydantic import ValidationError

from sofy_shorts.config.logging import get_logger
from sofy_shorts.models.job import (
    Job,
    JobStatus,
    JobStep,
    generate_job_id,
    is_valid_transition,
)
from sofy_shorts.utils.file_utils import write_atomically

logger = get_logger(__name__)

ORPHANED_ERROR = "Interrupted: the process exited before the job finished"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRecordStore:
    """Durable, process-local index of jobs keyed by id."""

    def __init__(self, jobs_dir: Path, clock: Callable[[], datetime] = _utcnow):
        self.jobs_dir = Path(jobs_dir)
        self.jobs_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._lock = threading.Lock()
        self._file_lock = FileLock(self.jobs_dir / ".lock")
        self._jobs: dict[str, Job] = {}
        self._load()

    def _path(self, job_id: str) -> Path:
        return self.jobs_dir / f"{job_id}.json"

    def _read_all(self) -> dict[str, Job]:
        jobs: dict[str, Job] = {}
        with self._file_lock:
            for path in sorted(self.jobs_dir.glob("*.json")):
                job = self._read_file(path)
                if job is not None:
                    jobs[job.id] = job
        return jobs

    def _read_file(self, path: Path) -> Job | None:
        try:
            return Job.from_json_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Skipping invalid job file %s: %s", path.name, e)
            return None

    def _current(self, job_id: str) -> Job | None:
        """Latest copy of one record (caller holds both locks)."""
        path = self._path(job_id)
        if path.exists():
            job = self._read_file(path)
            if job is not None:
                self._jobs[job_id] = job
        return self._jobs.get(job_id)

    def _load(self) -> None:
        self._jobs = self._read_all()
        logger.debug("Loaded %d job record(s) from %s", len(self._jobs), self.jobs_dir)

    def refresh(self) -> None:
        """Re-read records written by other processes."""
        with self._lock:
            self._jobs = self._read_all()

    def _save_unlocked(self, job: Job) -> None:
        """Persist one record (caller holds both locks)."""
        write_atomically(self._path(job.id), json.dumps(job.to_json_dict(), indent=2))

    def create(self, niche: str, theme: str) -> str:
        """Create a Pending job and return its id."""
        with self._lock, self._file_lock:
            job_id = generate_job_id(self._clock())
            while job_id in self._jobs or self._path(job_id).exists():
                job_id = generate_job_id(self._clock())
            job = Job(id=job_id, niche=niche, theme=theme, start_time=self._clock())
            self._jobs[job_id] = job
            self._save_unlocked(job)
        logger.debug("Created job %s (%s/%s)", job_id, niche, theme)
        return job_id

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        step: JobStep | None = None,
        error: str | None = None,
    ) -> Job | None:
        """Apply a status transition.

        Never raises: an unknown id or a transition out of a terminal status
        is logged and ignored.

        Returns:
            A copy of the updated job, or None if nothing changed.
        """
        with self._lock, self._file_lock:
            job = self._current(job_id)
            if job is None:
                logger.error("Cannot update unknown job %s", job_id)
                return None
            if not is_valid_transition(job.status, status):
                logger.error(
                    "Ignoring invalid transition for job %s: %s -> %s",
                    job_id,
                    job.status.value,
                    status.value,
                )
                return None

            job.status = status
            if step is not None:
                job.current_step = step
            if error is not None:
                job.error = error
            if status.is_terminal:
                job.end_time = self._clock()
                # Failed jobs keep the step they failed in
                if status is JobStatus.COMPLETED:
                    job.current_step = None
            self._save_unlocked(job)
            return job.model_copy(deep=True)

    def set_output_path(self, job_id: str, path: str | Path) -> bool:
        with self._lock, self._file_lock:
            job = self._current(job_id)
            if job is None:
                logger.error("Cannot set output path of unknown job %s", job_id)
                return False
            job.output_path = str(path)
            self._save_unlocked(job)
            return True

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def list_all(self) -> list[Job]:
        """All jobs, oldest first."""
        with self._lock:
            jobs = [job.model_copy(deep=True) for job in self._jobs.values()]
        return sorted(jobs, key=lambda j: (j.start_time, j.id))

    def fail_orphaned(self, reason: str = ORPHANED_ERROR) -> list[Job]:
        """Mark Pending/Running records left behind by a dead process as Failed.

        Only call this when no other process is running jobs against the
        same directory.
        """
        failed = []
        with self._lock, self._file_lock:
            self._jobs = self._read_all()
            for job in self._jobs.values():
                if job.is_terminal:
                    continue
                job.status = JobStatus.FAILED
                job.error = reason
                job.end_time = self._clock()
                self._save_unlocked(job)
                failed.append(job.model_copy(deep=True))
        if failed:
            logger.warning("Marked %d orphaned job(s) as failed", len(failed))
        return failed
