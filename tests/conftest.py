"""Shared fixtures for sofy-shorts tests."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sofy_shorts.config.loader import parse_config
from sofy_shorts.config.settings import MAX_INDEXED_KEYS, clear_settings_cache
from sofy_shorts.generators.base import RetryPolicy
from sofy_shorts.models.video_config import VideoConfig
from sofy_shorts.monitoring.service import MonitoringService

CONFIG_DATA = {
    "niche": "motivational",
    "theme": "discipline",
    "language": "en",
    "duration": 24,
    "style": "cinematic",
    "prompt": {
        "type": "static",
        "topic": "consistency",
        "tone": "inspiring",
        "emotion": "determination",
    },
    "video": {"resolution": "1080x1920", "format": "mp4", "stitch_length": 8},
    "voiceover": {"model": "gemini-2.5-flash-preview-tts", "voice": "deep_male"},
    "music": {"model": "silent", "mood": "uplifting", "tempo": "medium"},
    "subtitles": {"enable": True, "style": ""},
    "output": {"path": "output", "upload": False},
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 31, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep real credentials and cached settings out of tests."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    for i in range(1, MAX_INDEXED_KEYS + 1):
        monkeypatch.delenv(f"GEMINI_API_KEY_{i}", raising=False)
    monkeypatch.delenv("YOUTUBE_CLIENT_SECRETS", raising=False)
    monkeypatch.delenv("YOUTUBE_TOKEN_FILE", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def config_data(tmp_path: Path) -> dict:
    data = copy.deepcopy(CONFIG_DATA)
    data["output"]["path"] = str(tmp_path / "output")
    return data


@pytest.fixture
def video_config(config_data: dict) -> VideoConfig:
    return parse_config(config_data)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_max=0, poll_interval=0.01, poll_timeout=1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monitoring(tmp_path: Path):
    service = MonitoringService.create(tmp_path / "data")
    yield service
    service.close()
