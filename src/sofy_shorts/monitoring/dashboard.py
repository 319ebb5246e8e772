"""Terminal dashboard for jobs, analytics and recent log lines."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sofy_shorts.models.job import Job, JobStatus
from sofy_shorts.models.monitoring import LogEntry
from sofy_shorts.monitoring.event_logger import format_entry, read_log_entries
from sofy_shorts.monitoring.service import MonitoringService

STATUS_STYLES = {
    JobStatus.PENDING: "yellow",
    JobStatus.RUNNING: "cyan",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}
RECENT_JOB_COUNT = 5
TOP_NICHE_COUNT = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DashboardConfig:
    refresh_interval: float = 5.0
    max_log_entries: int = 10
    show_active_only: bool = False


class Dashboard:
    """Read-only view over a MonitoringService.

    ``run`` refreshes the view every ``refresh_interval`` seconds until the
    stop event is set. Disk reads happen in a worker thread so the event
    loop (and any pipeline sharing it) is never blocked.
    """

    def __init__(
        self,
        monitoring: MonitoringService,
        config: DashboardConfig | None = None,
        console: Console | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.monitoring = monitoring
        self.config = config or DashboardConfig()
        self.console = console or Console()
        self._clock = clock

    def _jobs_table(self, jobs: list[Job], empty: str) -> Table | Text:
        if not jobs:
            return Text(empty, style="dim")
        now = self._clock()
        table = Table(show_header=True, header_style="bold")
        table.add_column("Job")
        table.add_column("Niche")
        table.add_column("Theme")
        table.add_column("Status")
        table.add_column("Step")
        table.add_column("Duration", justify="right")
        for job in jobs:
            table.add_row(
                job.id,
                job.niche,
                job.theme,
                Text(job.status.value.upper(), style=STATUS_STYLES[job.status]),
                job.current_step.value if job.current_step else "-",
                f"{job.elapsed_seconds(now):.2f}s",
            )
            if job.error:
                table.add_row("", "", "", Text(f"Error: {job.error}", style="red"), "", "")
        return table

    def _analytics(self) -> Table:
        m = self.monitoring.metrics_snapshot()
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_row("Total Jobs", str(m.total_jobs))
        table.add_row("Success Rate", f"{m.success_rate:.2f}%")
        table.add_row("Average Processing Time", f"{m.average_processing_time / 1000:.2f} seconds")
        top = sorted(m.jobs_by_niche.items(), key=lambda kv: kv[1], reverse=True)
        for niche, count in top[:TOP_NICHE_COUNT]:
            table.add_row(f"  {niche}", f"{count} jobs")
        return table

    def _logs(self, entries: list[LogEntry]) -> Text:
        if not entries:
            return Text("No recent logs", style="dim")
        lines = [format_entry(e.model_copy(update={"payload": None})) for e in entries]
        return Text("\n".join(lines))

    def recent_logs(self) -> list[LogEntry]:
        path = self.monitoring.events.current_log_file
        return read_log_entries(path, limit=self.config.max_log_entries)

    def render(self, logs: list[LogEntry] | None = None) -> Group:
        """Build one snapshot of the dashboard."""
        jobs = self.monitoring.list_all()
        active = [j for j in jobs if not j.is_terminal]
        parts = [
            Text("SOFY MONITORING DASHBOARD", style="bold"),
            Text(f"Last updated: {self._clock().isoformat(timespec='seconds')}", style="dim"),
            Panel(self._jobs_table(active, "No active jobs"), title="Active Jobs"),
        ]
        if not self.config.show_active_only:
            terminal = sorted(
                (j for j in jobs if j.is_terminal),
                key=lambda j: j.end_time or j.start_time,
                reverse=True,
            )[:RECENT_JOB_COUNT]
            parts.append(
                Panel(self._jobs_table(terminal, "No recent jobs"), title="Recent Jobs")
            )
        parts.append(Panel(self._analytics(), title="Analytics"))
        if logs is None:
            logs = self.monitoring.events.recent(self.config.max_log_entries)
        parts.append(Panel(self._logs(logs), title="Recent Logs"))
        parts.append(Text("Press Ctrl+C to exit", style="dim"))
        return Group(*parts)

    async def _snapshot(self) -> Group:
        def load() -> list[LogEntry]:
            self.monitoring.refresh()
            return self.recent_logs()

        logs = await asyncio.to_thread(load)
        return self.render(logs)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Refresh until ``stop_event`` is set (or forever)."""
        stop_event = stop_event or asyncio.Event()
        with Live(await self._snapshot(), console=self.console, auto_refresh=False) as live:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.config.refresh_interval)
                except asyncio.TimeoutError:
                    pass
                live.update(await self._snapshot(), refresh=True)
