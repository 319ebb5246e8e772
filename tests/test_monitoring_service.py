"""Tests for the monitoring facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from sofy_shorts.models.job import JobStatus, JobStep
from sofy_shorts.models.monitoring import LogLevel
from sofy_shorts.monitoring.event_logger import read_log_entries
from sofy_shorts.monitoring.service import MonitoringService


@pytest.fixture
def service(tmp_path: Path, clock):
    svc = MonitoringService.create(tmp_path / "data", clock=clock)
    yield svc
    svc.close()


def messages(service: MonitoringService) -> list[str]:
    return [e.message for e in read_log_entries(service.events.current_log_file)]


class TestMonitoringService:
    def test_layout(self, service: MonitoringService, tmp_path: Path) -> None:
        assert service.store.jobs_dir == tmp_path / "data" / "jobs"
        assert service.events.logs_dir == tmp_path / "data" / "logs"
        assert service.metrics.metrics_file == tmp_path / "data" / "analytics" / "metrics.json"

    def test_start_job_runs_initialization(self, service: MonitoringService) -> None:
        job_id = service.start_job("motivational", "discipline")

        job = service.get_job(job_id)
        assert job.status is JobStatus.RUNNING
        assert job.current_step is JobStep.INIT
        assert "Started job for niche: motivational, theme: discipline" in messages(service)
        assert [j.id for j in service.active_jobs()] == [job_id]

    def test_completion_is_recorded_once(self, service: MonitoringService, clock) -> None:
        job_id = service.start_job("motivational", "discipline")
        clock.advance(2.5)

        assert service.update_status(job_id, JobStatus.COMPLETED) is not None
        assert service.update_status(job_id, JobStatus.COMPLETED) is None

        m = service.metrics_snapshot()
        assert m.total_jobs == 1
        assert m.completed_jobs == 1
        assert m.average_processing_time == pytest.approx(2500)
        logged = messages(service)
        assert "Job completed successfully in 2.50 seconds" in logged
        assert "Status update to completed was not applied" in logged
        assert service.active_jobs() == []

    def test_failure_is_logged_as_error(self, service: MonitoringService, clock) -> None:
        job_id = service.start_job("motivational", "discipline")
        service.update_status(job_id, JobStatus.RUNNING, JobStep.VOICEOVER_GENERATION)
        clock.advance(1)

        service.update_status(job_id, JobStatus.FAILED, error="tts down")

        errors = [
            e.message
            for e in read_log_entries(service.events.current_log_file)
            if e.level is LogLevel.ERROR
        ]
        assert "Job status updated to failed: tts down" in errors
        assert "Job failed after 1.00 seconds: tts down" in errors
        assert service.metrics_snapshot().failed_jobs == 1

    def test_step_change_is_logged(self, service: MonitoringService) -> None:
        job_id = service.start_job("motivational", "discipline")
        service.update_status(job_id, JobStatus.RUNNING, JobStep.VIDEO_GENERATION)
        assert "Job status updated to running (step: video_generation)" in messages(service)

    def test_output_path(self, service: MonitoringService, tmp_path: Path) -> None:
        job_id = service.start_job("motivational", "discipline")
        assert service.set_output_path(job_id, tmp_path / "final_video.mp4")
        assert service.get_job(job_id).output_path == str(tmp_path / "final_video.mp4")
        assert not service.set_output_path("job_missing", tmp_path / "x.mp4")

    def test_recover_orphaned_counts_failures(self, tmp_path: Path, clock) -> None:
        crashed = MonitoringService.create(tmp_path / "data", clock=clock)
        orphan = crashed.start_job("motivational", "discipline")
        crashed.close()

        clock.advance(3)
        service = MonitoringService.create(tmp_path / "data", clock=clock)
        try:
            failed = service.recover_orphaned()
            assert [j.id for j in failed] == [orphan]
            assert service.get_job(orphan).status is JobStatus.FAILED
            assert service.metrics_snapshot().failed_jobs == 1
        finally:
            service.close()

    def test_refresh_picks_up_other_processes(self, tmp_path: Path, clock) -> None:
        viewer = MonitoringService.create(tmp_path / "data", clock=clock)
        worker = MonitoringService.create(tmp_path / "data", clock=clock)
        try:
            job_id = worker.start_job("motivational", "discipline")
            worker.update_status(job_id, JobStatus.COMPLETED)
            assert viewer.list_all() == []

            viewer.refresh()

            assert [j.id for j in viewer.list_all()] == [job_id]
            assert viewer.metrics_snapshot().completed_jobs == 1
        finally:
            viewer.close()
            worker.close()

    def test_report_delegates_to_metrics(self, service: MonitoringService) -> None:
        assert service.generate_report().startswith("=== SOFY Analytics Report ===")
