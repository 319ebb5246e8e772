"""Veo video clip generator.

Clip generation is a long-running operation: the request returns an
operation handle that is polled until done, then the clip is fetched through
the Files API of the same client, which carries the API key.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from google import genai
from google.genai.types import GenerateVideosConfig

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import StepFailure, TransientServiceError
from sofy_shorts.generators.base import RetryPolicy, ServiceAdapter, poll_until_done
from sofy_shorts.generators.key_rotator import KeyRotator
from sofy_shorts.utils.file_utils import write_placeholder

logger = get_logger(__name__)

VALID_DURATIONS = (4, 6, 8)
SHORTS_ASPECT_RATIO = "9:16"


def clip_duration(requested: float) -> int:
    """Snap a requested clip length to the closest duration Veo accepts."""
    return min(VALID_DURATIONS, key=lambda d: (abs(d - requested), -d))


@dataclass(frozen=True)
class VideoClipRequest:
    prompt: str
    index: int
    output_dir: Path
    duration_seconds: float = 8
    aspect_ratio: str = SHORTS_ASPECT_RATIO


class VideoClipGenerator(ServiceAdapter[VideoClipRequest, Path]):
    """Generates one clip per request; returns the local mp4 path."""

    name = "video-generation"

    def __init__(
        self,
        rotator: KeyRotator,
        model: str = "veo-3.0-generate-001",
        policy: RetryPolicy | None = None,
    ):
        super().__init__(rotator, policy)
        self.model = model
        self._clients: dict[str, genai.Client] = {}

    def _client(self, api_key: str | None) -> genai.Client:
        key = api_key or ""
        if key not in self._clients:
            self._clients[key] = genai.Client(api_key=api_key)
        return self._clients[key]

    async def _invoke(self, request: VideoClipRequest, api_key: str | None) -> Path:
        client = self._client(api_key)
        label = f"clip {request.index}"
        logger.info("Generating video %s", label)
        logger.debug("Video prompt: %s", request.prompt)

        operation = await client.aio.models.generate_videos(
            model=self.model,
            prompt=request.prompt,
            config=GenerateVideosConfig(
                duration_seconds=clip_duration(request.duration_seconds),
                aspect_ratio=request.aspect_ratio,
                number_of_videos=1,
            ),
        )
        operation = await poll_until_done(
            lambda: client.aio.operations.get(operation),
            lambda op: bool(op.done),
            self.policy,
            initial=operation,
            label=label,
        )

        if operation.error:
            message = str(operation.error)
            if "usage guidelines" in message:
                raise StepFailure(f"Prompt for {label} was rejected: {message}")
            raise TransientServiceError(f"Video generation failed for {label}: {message}")

        result = operation.result or operation.response
        if not result or not result.generated_videos:
            raise TransientServiceError(f"No video generated for {label}")
        video = result.generated_videos[0].video
        if video is None:
            raise TransientServiceError(f"No video data for {label}")

        request.output_dir.mkdir(parents=True, exist_ok=True)
        path = request.output_dir / f"clip_{request.index:03d}.mp4"
        logger.info("Downloading %s", label)
        await asyncio.to_thread(self._save_clip, client, video, path)
        logger.info("Video %s saved to %s", label, path)
        return path

    def _fallback(self, request: VideoClipRequest, error: BaseException) -> Path:
        path = write_placeholder(request.output_dir, f"clip_{request.index:03d}", "mp4")
        logger.warning("Created empty clip at %s due to error", path)
        return path

    @staticmethod
    def _save_clip(client: genai.Client, video, path: Path) -> None:
        """Fetch the clip unless it came back inline, then write it.

        A partially written file is removed so only the placeholder remains.
        """
        try:
            if not video.video_bytes:
                client.files.download(file=video)
            video.save(str(path))
        except Exception:
            path.unlink(missing_ok=True)
            raise
