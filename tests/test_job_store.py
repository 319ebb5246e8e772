"""Tests for job record persistence and status transitions."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sofy_shorts.models.job import (
    Job,
    JobStatus,
    JobStep,
    generate_job_id,
    is_valid_transition,
)
from sofy_shorts.monitoring.job_store import ORPHANED_ERROR, JobRecordStore


@pytest.fixture
def store(tmp_path: Path, clock) -> JobRecordStore:
    return JobRecordStore(tmp_path / "jobs", clock=clock)


class TestJobModel:
    def test_job_ids_are_unique_for_the_same_instant(self) -> None:
        now = datetime(2026, 1, 31, tzinfo=timezone.utc)
        ids = {generate_job_id(now) for _ in range(1000)}
        assert len(ids) == 1000
        assert all(i.startswith("job_20260131_000000_") for i in ids)

    @pytest.mark.parametrize(
        ("current", "target", "valid"),
        [
            (JobStatus.PENDING, JobStatus.RUNNING, True),
            (JobStatus.PENDING, JobStatus.COMPLETED, False),
            (JobStatus.RUNNING, JobStatus.RUNNING, True),
            (JobStatus.RUNNING, JobStatus.FAILED, True),
            (JobStatus.COMPLETED, JobStatus.FAILED, False),
            (JobStatus.FAILED, JobStatus.RUNNING, False),
        ],
    )
    def test_transitions(self, current: JobStatus, target: JobStatus, valid: bool) -> None:
        assert is_valid_transition(current, target) is valid

    def test_json_round_trip_keeps_datetimes(self) -> None:
        job = Job(id="job_1", niche="motivational", theme="discipline")
        data = json.loads(json.dumps(job.to_json_dict()))
        assert Job.from_json_dict(data) == job


class TestJobRecordStore:
    def test_create_persists_pending_job(self, store: JobRecordStore, clock) -> None:
        job_id = store.create("motivational", "discipline")

        job = store.get(job_id)
        assert job is not None
        assert job.status is JobStatus.PENDING
        assert job.start_time == clock.now
        assert job.end_time is None
        assert (store.jobs_dir / f"{job_id}.json").exists()

    def test_created_ids_are_unique(self, store: JobRecordStore) -> None:
        ids = {store.create("motivational", "discipline") for _ in range(50)}
        assert len(ids) == 50
        assert len(store.list_all()) == 50

    def test_records_survive_a_new_instance(self, store: JobRecordStore, clock) -> None:
        job_id = store.create("motivational", "discipline")
        store.update_status(job_id, JobStatus.RUNNING, JobStep.VIDEO_GENERATION)

        reloaded = JobRecordStore(store.jobs_dir, clock=clock).get(job_id)

        assert reloaded is not None
        assert reloaded.status is JobStatus.RUNNING
        assert reloaded.current_step is JobStep.VIDEO_GENERATION
        assert reloaded.start_time == clock.now

    def test_end_time_is_set_only_when_terminal(self, store: JobRecordStore, clock) -> None:
        job_id = store.create("motivational", "discipline")
        running = store.update_status(job_id, JobStatus.RUNNING, JobStep.INIT)
        assert running is not None and running.end_time is None

        clock.advance(2)
        done = store.update_status(job_id, JobStatus.COMPLETED)

        assert done is not None
        assert done.end_time == clock.now
        assert done.duration_ms == 2000
        assert done.current_step is None

    def test_failed_job_keeps_its_step(self, store: JobRecordStore) -> None:
        job_id = store.create("motivational", "discipline")
        store.update_status(job_id, JobStatus.RUNNING, JobStep.MUSIC_GENERATION)

        failed = store.update_status(job_id, JobStatus.FAILED, error="no audio")

        assert failed is not None
        assert failed.current_step is JobStep.MUSIC_GENERATION
        assert failed.error == "no audio"

    def test_terminal_jobs_are_frozen(self, store: JobRecordStore, clock) -> None:
        job_id = store.create("motivational", "discipline")
        store.update_status(job_id, JobStatus.RUNNING)
        done = store.update_status(job_id, JobStatus.COMPLETED)
        clock.advance(5)

        assert store.update_status(job_id, JobStatus.FAILED, error="late") is None
        assert store.update_status(job_id, JobStatus.RUNNING) is None

        job = store.get(job_id)
        assert job is not None
        assert job.status is JobStatus.COMPLETED
        assert job.error is None
        assert job.end_time == done.end_time

    def test_pending_cannot_jump_to_terminal(self, store: JobRecordStore) -> None:
        job_id = store.create("motivational", "discipline")
        assert store.update_status(job_id, JobStatus.COMPLETED) is None
        assert store.get(job_id).status is JobStatus.PENDING

    def test_unknown_job_is_ignored(self, store: JobRecordStore) -> None:
        assert store.update_status("job_missing", JobStatus.RUNNING) is None
        assert store.set_output_path("job_missing", "/tmp/x.mp4") is False
        assert store.get("job_missing") is None

    def test_returned_jobs_are_copies(self, store: JobRecordStore) -> None:
        job_id = store.create("motivational", "discipline")
        copy = store.get(job_id)
        copy.status = JobStatus.FAILED
        assert store.get(job_id).status is JobStatus.PENDING

    def test_set_output_path(self, store: JobRecordStore, tmp_path: Path) -> None:
        job_id = store.create("motivational", "discipline")
        assert store.set_output_path(job_id, tmp_path / "final_video.mp4")
        assert store.get(job_id).output_path == str(tmp_path / "final_video.mp4")

    def test_list_all_is_ordered_by_start_time(self, store: JobRecordStore, clock) -> None:
        first = store.create("motivational", "a")
        clock.advance(1)
        second = store.create("motivational", "b")
        assert [j.id for j in store.list_all()] == [first, second]

    def test_invalid_files_are_skipped(self, store: JobRecordStore, clock) -> None:
        job_id = store.create("motivational", "discipline")
        (store.jobs_dir / "broken.json").write_text("{not json", encoding="utf-8")
        (store.jobs_dir / "wrong.json").write_text('{"id": 1}', encoding="utf-8")

        reloaded = JobRecordStore(store.jobs_dir, clock=clock)

        assert [j.id for j in reloaded.list_all()] == [job_id]

    def test_refresh_sees_other_instances(self, store: JobRecordStore, clock) -> None:
        other = JobRecordStore(store.jobs_dir, clock=clock)
        job_id = other.create("motivational", "discipline")
        assert store.get(job_id) is None

        store.refresh()

        assert store.get(job_id) is not None

    def test_fail_orphaned_only_touches_active_jobs(self, store: JobRecordStore) -> None:
        pending = store.create("motivational", "a")
        running = store.create("motivational", "b")
        done = store.create("motivational", "c")
        store.update_status(running, JobStatus.RUNNING, JobStep.VIDEO_EDITING)
        store.update_status(done, JobStatus.RUNNING)
        store.update_status(done, JobStatus.COMPLETED)

        failed = store.fail_orphaned()

        assert {j.id for j in failed} == {pending, running}
        for job in failed:
            assert job.status is JobStatus.FAILED
            assert job.error == ORPHANED_ERROR
            assert job.end_time is not None
        assert store.get(done).status is JobStatus.COMPLETED
        assert store.fail_orphaned() == []

    def test_fail_orphaned_sees_jobs_from_other_instances(
        self, store: JobRecordStore, clock
    ) -> None:
        other = JobRecordStore(store.jobs_dir, clock=clock)
        orphan = other.create("motivational", "discipline")

        failed = store.fail_orphaned()

        assert [j.id for j in failed] == [orphan]
        on_disk = json.loads((store.jobs_dir / f"{orphan}.json").read_text(encoding="utf-8"))
        assert on_disk["status"] == JobStatus.FAILED.value

    def test_update_does_not_overwrite_a_newer_record(
        self, store: JobRecordStore, clock
    ) -> None:
        job_id = store.create("motivational", "discipline")
        store.update_status(job_id, JobStatus.RUNNING, JobStep.INIT)
        recovering = JobRecordStore(store.jobs_dir, clock=clock)
        recovering.fail_orphaned()

        assert store.update_status(job_id, JobStatus.COMPLETED) is None
        assert store.get(job_id).status is JobStatus.FAILED
        assert JobRecordStore(store.jobs_dir, clock=clock).get(job_id).error == ORPHANED_ERROR
