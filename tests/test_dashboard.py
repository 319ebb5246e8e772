"""Tests for the terminal monitoring dashboard."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from rich.console import Console

from sofy_shorts.models.job import JobStatus, JobStep
from sofy_shorts.monitoring.dashboard import Dashboard, DashboardConfig
from sofy_shorts.monitoring.service import MonitoringService


@pytest.fixture
def service(tmp_path: Path, clock):
    svc = MonitoringService.create(tmp_path / "data", clock=clock)
    yield svc
    svc.close()


def render_text(dashboard: Dashboard, **kwargs) -> str:
    console = Console(record=True, width=200)
    console.print(dashboard.render(**kwargs))
    return console.export_text()


class TestDashboard:
    def test_empty_state(self, service: MonitoringService, clock) -> None:
        text = render_text(Dashboard(service, clock=clock))

        assert "SOFY MONITORING DASHBOARD" in text
        assert "No active jobs" in text
        assert "No recent jobs" in text
        assert "Total Jobs" in text

    def test_active_and_recent_jobs(self, service: MonitoringService, clock) -> None:
        running = service.start_job("motivational", "discipline")
        service.update_status(running, JobStatus.RUNNING, JobStep.MUSIC_GENERATION)
        failed = service.start_job("motivational", "grit")
        clock.advance(4)
        service.update_status(failed, JobStatus.FAILED, error="tts down")

        text = render_text(Dashboard(service, clock=clock))

        assert running in text
        assert "RUNNING" in text
        assert "music_generation" in text
        assert failed in text
        assert "Error: tts down" in text
        assert "Success Rate" in text
        assert "0.00%" in text
        assert "motivational" in text

    def test_show_active_only_hides_recent_jobs(self, service, clock) -> None:
        done = service.start_job("motivational", "discipline")
        service.update_status(done, JobStatus.COMPLETED)

        text = render_text(
            Dashboard(service, DashboardConfig(show_active_only=True), clock=clock)
        )

        assert "Recent Jobs" not in text
        assert "COMPLETED" not in text

    def test_recent_logs_are_read_from_today_file(self, service, clock) -> None:
        service.start_job("motivational", "discipline")
        dashboard = Dashboard(service, DashboardConfig(max_log_entries=2), clock=clock)

        logs = dashboard.recent_logs()

        assert len(logs) == 2
        text = render_text(dashboard, logs=logs)
        assert "Job status updated to running (step: initialization)" in text

    @pytest.mark.asyncio
    async def test_run_stops_when_event_is_set(self, service, clock) -> None:
        console = Console(record=True, width=200)
        dashboard = Dashboard(
            service, DashboardConfig(refresh_interval=0.01), console=console, clock=clock
        )
        stop = asyncio.Event()

        async def stop_soon() -> None:
            await asyncio.sleep(0.05)
            stop.set()

        await asyncio.gather(dashboard.run(stop), stop_soon())

        assert "SOFY MONITORING DASHBOARD" in console.export_text()
