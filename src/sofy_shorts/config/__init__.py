"""Configuration and settings management."""

from sofy_shorts.config.loader import (
    apply_upload_defaults,
    list_available_configs,
    list_available_niches,
    load_config,
    parse_config,
)
from sofy_shorts.config.logging import get_logger, setup_logging
from sofy_shorts.config.settings import Settings, clear_settings_cache, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "setup_logging",
    "get_logger",
    "load_config",
    "parse_config",
    "list_available_configs",
    "list_available_niches",
    "apply_upload_defaults",
]
