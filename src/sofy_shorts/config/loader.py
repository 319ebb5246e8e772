"""Loading and validation of niche YAML configurations."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from sofy_shorts.config.logging import get_logger
from sofy_shorts.config.settings import Settings
from sofy_shorts.exceptions import ConfigurationError
from sofy_shorts.models.video_config import REQUIRED_FIELDS, VideoConfig

logger = get_logger(__name__)

CONFIG_SUFFIXES = (".yaml", ".yml")


def _resolve_config_path(name_or_path: str | Path, config_dir: Path) -> Path:
    """Resolve a niche name, file name or path to an existing file."""
    candidate = Path(name_or_path)
    if candidate.is_file():
        return candidate
    inside = config_dir / candidate
    if inside.is_file():
        return inside
    if not candidate.suffix:
        for suffix in CONFIG_SUFFIXES:
            with_suffix = config_dir / f"{candidate.name}{suffix}"
            if with_suffix.is_file():
                return with_suffix
    raise ConfigurationError(f"Configuration file not found: {inside}")


def parse_config(data: object, source: str = "<memory>") -> VideoConfig:
    """Validate a raw mapping into a VideoConfig.

    Raises:
        ConfigurationError: If a required top-level field is missing or a
            value is invalid.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {source} must be a mapping")
    for field in REQUIRED_FIELDS:
        if field not in data:
            raise ConfigurationError(f"Missing required field in configuration: {field}")
    try:
        return VideoConfig.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(
            f"Invalid configuration value for {location}: {first['msg']}",
            details=f"{source}: {e.error_count()} validation error(s)",
        ) from e


def load_config(name_or_path: str | Path, config_dir: Path) -> VideoConfig:
    """Load a configuration from a YAML file.

    Args:
        name_or_path: Niche name (``motivational``), file name
            (``motivational.yaml``) or a path.
        config_dir: Directory searched for relative names.
    """
    path = _resolve_config_path(name_or_path, config_dir)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing configuration {path}", details=str(e)) from e
    config = parse_config(data, source=str(path))
    logger.debug("Loaded configuration %s (niche=%s)", path, config.niche)
    return config


def list_available_configs(config_dir: Path) -> list[str]:
    """Return YAML file names in the config directory, sorted."""
    if not config_dir.is_dir():
        return []
    return sorted(p.name for p in config_dir.iterdir() if p.suffix in CONFIG_SUFFIXES)


def list_available_niches(config_dir: Path) -> list[str]:
    """Return the distinct niches declared by valid configuration files."""
    niches: list[str] = []
    for name in list_available_configs(config_dir):
        try:
            config = load_config(name, config_dir)
        except ConfigurationError as e:
            logger.warning("Skipping invalid config %s: %s", name, e.message)
            continue
        if config.niche not in niches:
            niches.append(config.niche)
    return niches


def apply_upload_defaults(config: VideoConfig, settings: Settings) -> VideoConfig:
    """Fill missing YouTube metadata from settings. Returns a new config."""
    output = config.output
    updates: dict = {}
    if not output.title and settings.youtube_shorts_default_title:
        updates["title"] = settings.youtube_shorts_default_title
    if not output.description and settings.youtube_shorts_default_description:
        updates["description"] = settings.youtube_shorts_default_description
    if not output.tags and settings.default_tags():
        updates["tags"] = settings.default_tags()
    if not updates:
        return config
    return config.model_copy(update={"output": output.model_copy(update=updates)})
