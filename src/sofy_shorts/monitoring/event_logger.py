"""Structured job event log.

Each entry is written as one line (plus an optional JSON payload block) to
the console and to ``<logs_dir>/<YYYY-MM-DD>.log``. The file is chosen from
the entry's UTC date, so a long-lived process rolls over at midnight.

Line format::

    2026-01-31T12:00:00.000Z INFO    [Job: job_...] Message
"""

from __future__ import annotations

import itertools
import json
import logging
import re
import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from sofy_shorts.models.monitoring import LogEntry, LogLevel

LEVEL_WIDTH = 7
LOG_SUFFIX = ".log"

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}
_CONSOLE_STYLES = {
    LogLevel.DEBUG: "dim",
    LogLevel.INFO: "",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
_LINE = re.compile(
    r"^(?P<ts>\d{4}-\d{2}-\d{2}T\S+)\s+(?P<level>DEBUG|INFO|WARNING|ERROR)\s+"
    r"(?:\[Job: (?P<job>[^\]]+)\]\s)?(?P<msg>.*)$"
)
_logger_ids = itertools.count()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_entry(entry: LogEntry) -> str:
    """Render an entry as ``<ISO8601> <LEVEL> [Job: id] message`` (+ payload)."""
    level = entry.level.value.upper().ljust(LEVEL_WIDTH)
    job = f"[Job: {entry.job_id}] " if entry.job_id else ""
    line = f"{format_timestamp(entry.timestamp)} {level} {job}{entry.message}"
    if entry.payload is not None:
        line += "\n" + json.dumps(entry.payload, indent=2, default=str)
    return line


def parse_log_line(line: str) -> LogEntry | None:
    """Parse a header line back into an entry; payload lines return None."""
    match = _LINE.match(line.rstrip("\n"))
    if not match:
        return None
    try:
        timestamp = datetime.fromisoformat(match["ts"].replace("Z", "+00:00"))
    except ValueError:
        return None
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel(match["level"].lower()),
        message=match["msg"],
        job_id=match["job"],
    )


def log_file_for(logs_dir: Path, day: datetime) -> Path:
    return Path(logs_dir) / f"{day.astimezone(timezone.utc).date().isoformat()}{LOG_SUFFIX}"


def read_log_entries(path: Path, limit: int | None = None) -> list[LogEntry]:
    """Read entries from a log file, skipping payload blocks. Newest last."""
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        entries = [e for e in (parse_log_line(line) for line in f) if e is not None]
    if limit is not None:
        entries = entries[-limit:] if limit > 0 else []
    return entries


class DailyFileHandler(logging.Handler):
    """Appends records to the file named after the entry's UTC date."""

    def __init__(self, logs_dir: Path):
        super().__init__()
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.current_file: Path | None = None

    def emit(self, record: logging.LogRecord) -> None:
        entry: LogEntry = record.entry  # type: ignore[attr-defined]
        path = log_file_for(self.logs_dir, entry.timestamp)
        self.current_file = path
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(self.format(record) + "\n")
        except OSError:
            self.handleError(record)


class ConsoleLineHandler(logging.Handler):
    """Prints formatted lines through a rich console."""

    def __init__(self, console: Console):
        super().__init__()
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        entry: LogEntry = record.entry  # type: ignore[attr-defined]
        self.console.print(
            self.format(record),
            style=_CONSOLE_STYLES[entry.level],
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


class _EntryFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return format_entry(record.entry)  # type: ignore[attr-defined]


class EventLogger:
    """Appends job events to console and the per-day log file.

    Args:
        logs_dir: Directory of the daily log files.
        console: Console sink; None disables console output.
        clock: Source of entry timestamps.
        history: Size of the in-memory ring buffer served by ``recent``.
    """

    def __init__(
        self,
        logs_dir: Path,
        console: Console | None = None,
        clock: Callable[[], datetime] = _utcnow,
        history: int = 200,
    ):
        self.logs_dir = Path(logs_dir)
        self._clock = clock
        self._recent: deque[LogEntry] = deque(maxlen=history)
        self._lock = threading.Lock()

        self._logger = logging.getLogger(f"sofy_shorts.events.{next(_logger_ids)}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        formatter = _EntryFormatter()
        self._file_handler = DailyFileHandler(self.logs_dir)
        self._file_handler.setFormatter(formatter)
        self._logger.addHandler(self._file_handler)
        if console is not None:
            console_handler = ConsoleLineHandler(console)
            console_handler.setFormatter(formatter)
            self._logger.addHandler(console_handler)

    @property
    def current_log_file(self) -> Path:
        return log_file_for(self.logs_dir, self._clock())

    def log(
        self,
        level: LogLevel,
        message: str,
        job_id: str | None = None,
        payload: Any = None,
    ) -> LogEntry:
        # Entries are appended in timestamp order within this process
        with self._lock:
            entry = LogEntry(
                timestamp=self._clock(),
                level=level,
                message=message,
                job_id=job_id,
                payload=payload,
            )
            self._recent.append(entry)
            self._logger.log(_STDLIB_LEVELS[level], message, extra={"entry": entry})
        return entry

    def debug(self, message: str, job_id: str | None = None, payload: Any = None) -> LogEntry:
        return self.log(LogLevel.DEBUG, message, job_id, payload)

    def info(self, message: str, job_id: str | None = None, payload: Any = None) -> LogEntry:
        return self.log(LogLevel.INFO, message, job_id, payload)

    def warning(self, message: str, job_id: str | None = None, payload: Any = None) -> LogEntry:
        return self.log(LogLevel.WARNING, message, job_id, payload)

    def error(self, message: str, job_id: str | None = None, payload: Any = None) -> LogEntry:
        return self.log(LogLevel.ERROR, message, job_id, payload)

    def recent(self, limit: int = 10) -> list[LogEntry]:
        """Newest ``limit`` entries appended by this process, oldest first."""
        with self._lock:
            entries = list(self._recent)
        return entries[-limit:] if limit > 0 else []

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()
