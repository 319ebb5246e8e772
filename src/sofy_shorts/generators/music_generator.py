"""Background music adapter.

No hosted music model is wired in yet, so the default renderer produces a
silent WAV bed of the requested length. A real backend can be injected as
``render``; it receives the request and returns encoded WAV bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from sofy_shorts.config.logging import get_logger
from sofy_shorts.generators.base import RetryPolicy, ServiceAdapter
from sofy_shorts.generators.key_rotator import KeyRotator
from sofy_shorts.generators.speech_generator import (
    PCM_CHANNELS,
    PCM_RATE,
    PCM_SAMPLE_WIDTH,
    write_wav,
)
from sofy_shorts.utils.file_utils import unique_filename, write_atomically, write_placeholder

logger = get_logger(__name__)


@dataclass(frozen=True)
class MusicRequest:
    prompt: str
    mood: str
    tempo: str
    duration_seconds: float


MusicRenderer = Callable[[MusicRequest, str | None], Awaitable[bytes]]


class MusicGenerator(ServiceAdapter[MusicRequest, Path]):
    name = "music-generation"

    def __init__(
        self,
        rotator: KeyRotator | None,
        work_dir: Path,
        render: MusicRenderer | None = None,
        policy: RetryPolicy | None = None,
    ):
        super().__init__(rotator, policy)
        self.work_dir = Path(work_dir)
        self._render = render

    async def _invoke(self, request: MusicRequest, api_key: str | None) -> Path:
        path = self.work_dir / unique_filename("music", "wav")
        if self._render is None:
            logger.info(
                "Rendering %.0fs silent music bed (%s, %s)",
                request.duration_seconds,
                request.mood,
                request.tempo,
            )
            frames = int(request.duration_seconds * PCM_RATE)
            write_wav(path, b"\x00" * frames * PCM_SAMPLE_WIDTH * PCM_CHANNELS)
            return path
        data = await self._render(request, api_key)
        write_atomically(path, data)
        logger.info("Music saved to %s", path)
        return path

    def _fallback(self, request: MusicRequest, error: BaseException) -> Path:
        return write_placeholder(self.work_dir, "music", "wav")
