"""Process settings loaded from environment variables and .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_INDEXED_KEYS = 10


class Settings(BaseSettings):
    """Application settings.

    Credentials are discovered from a primary slot (GEMINI_API_KEY) and up to
    ten indexed alternates (GEMINI_API_KEY_1 ... GEMINI_API_KEY_10).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials
    gemini_api_key: str | None = None
    gemini_api_key_1: str | None = None
    gemini_api_key_2: str | None = None
    gemini_api_key_3: str | None = None
    gemini_api_key_4: str | None = None
    gemini_api_key_5: str | None = None
    gemini_api_key_6: str | None = None
    gemini_api_key_7: str | None = None
    gemini_api_key_8: str | None = None
    gemini_api_key_9: str | None = None
    gemini_api_key_10: str | None = None

    # Paths
    sofy_data_dir: Path = Path("data")
    sofy_config_dir: Path = Path("config")
    sofy_temp_dir: Path = Path("temp")
    sofy_log_level: str = "INFO"

    # Models
    sofy_text_model: str = "gemini-2.5-flash"
    sofy_tts_model: str = "gemini-2.5-flash-preview-tts"
    sofy_video_model: str = "veo-3.0-generate-001"

    # Retry and polling
    sofy_retry_max_attempts: int = Field(default=11, ge=1)
    sofy_retry_backoff_min: float = Field(default=1.0, ge=0)
    sofy_retry_backoff_max: float = Field(default=30.0, ge=0)
    sofy_poll_interval: float = Field(default=10.0, gt=0)
    sofy_poll_timeout: float = Field(default=600.0, ge=0, description="0 means unbounded")
    sofy_job_timeout: float = Field(default=0.0, ge=0, description="0 means no timeout")

    # Dashboard
    monitor_refresh_interval: float = Field(default=5.0, gt=0)
    monitor_max_log_entries: int = Field(default=10, ge=1)
    monitor_show_active_only: bool = False

    # YouTube
    youtube_client_secrets: Path | None = None
    youtube_token_file: Path | None = None
    youtube_shorts_default_title: str | None = None
    youtube_shorts_default_description: str | None = None
    youtube_default_tags: str | None = None

    def api_keys(self) -> list[str]:
        """Return configured credentials, primary first, without duplicates."""
        slots = [self.gemini_api_key] + [
            getattr(self, f"gemini_api_key_{i}") for i in range(1, MAX_INDEXED_KEYS + 1)
        ]
        keys: list[str] = []
        for value in slots:
            if value and value.strip() and value.strip() not in keys:
                keys.append(value.strip())
        return keys

    @property
    def jobs_dir(self) -> Path:
        return self.sofy_data_dir / "jobs"

    @property
    def logs_dir(self) -> Path:
        return self.sofy_data_dir / "logs"

    @property
    def analytics_dir(self) -> Path:
        return self.sofy_data_dir / "analytics"

    def is_configured(self) -> dict[str, bool]:
        """Report which required pieces of configuration are present."""
        return {
            "GEMINI_API_KEY (or GEMINI_API_KEY_1..10)": bool(self.api_keys()),
            f"config directory ({self.sofy_config_dir})": self.sofy_config_dir.is_dir(),
        }

    def default_tags(self) -> list[str]:
        if not self.youtube_default_tags:
            return []
        return [t.strip() for t in self.youtube_default_tags.split(",") if t.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (for tests and reloads)."""
    get_settings.cache_clear()
