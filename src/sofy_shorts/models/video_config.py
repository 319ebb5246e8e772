"""Pydantic models for niche video configuration files."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PromptType = Literal["static", "dynamic"]
PrivacyStatus = Literal["public", "unlisted", "private"]

REQUIRED_FIELDS = (
    "niche",
    "theme",
    "language",
    "duration",
    "style",
    "prompt",
    "video",
    "voiceover",
    "music",
    "subtitles",
    "output",
)


class PromptSettings(BaseModel):
    """How clip prompts are produced."""

    type: PromptType = Field(description="static uses templates, dynamic asks the text model")
    topic: str = Field(min_length=1)
    tone: str = ""
    emotion: str = ""


class VideoSettings(BaseModel):
    resolution: str = Field(min_length=1, description="e.g. 1080x1920")
    format: str = Field(min_length=1, description="Container extension, e.g. mp4")
    stitch_length: float = Field(gt=0, description="Seconds per generated clip")


class VoiceoverSettings(BaseModel):
    model: str
    voice: str


class MusicSettings(BaseModel):
    model: str
    mood: str
    tempo: str


class SubtitleSettings(BaseModel):
    enable: bool = False
    style: str = ""


class OutputSettings(BaseModel):
    path: str = Field(min_length=1)
    upload: bool
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    category_id: int | None = None
    privacy_status: PrivacyStatus | None = None


class VideoConfig(BaseModel):
    """One niche configuration (one YAML file)."""

    niche: str
    theme: str
    language: str
    duration: float = Field(gt=0, description="Total video length in seconds")
    style: str
    prompt: PromptSettings
    video: VideoSettings
    voiceover: VoiceoverSettings
    music: MusicSettings
    subtitles: SubtitleSettings
    output: OutputSettings
