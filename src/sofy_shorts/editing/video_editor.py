"""Per-job video editing: stitch, voiceover, music, subtitles, final render.

Every operation writes a new file into the job's output directory. When
FFmpeg is unavailable or a command fails, the operation degrades to copying
its input so the pipeline still produces an artifact.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime, timezone
from pathlib import Path

from sofy_shorts.config.logging import get_logger
from sofy_shorts.editing.ffmpeg import FFmpegAssembler, FFmpegError, ffmpeg_available
from sofy_shorts.exceptions import StepFailure
from sofy_shorts.models.video_config import VideoConfig

logger = get_logger(__name__)

SHORTS_MAX_BYTES = 256 * 1024 * 1024
MUSIC_VOLUME = 0.2
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def _srt_timestamp(seconds: float) -> str:
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def build_srt(script: str, duration: float) -> str:
    """Split a script into sentences spread evenly over the duration."""
    sentences = [s.strip() for s in _SENTENCE_END.split(script) if s.strip()]
    if not sentences:
        return ""
    span = duration / len(sentences)
    blocks = []
    for i, sentence in enumerate(sentences):
        start, end = i * span, (i + 1) * span
        blocks.append(f"{i + 1}\n{_srt_timestamp(start)} --> {_srt_timestamp(end)}\n{sentence}\n")
    return "\n".join(blocks)


class VideoEditor:
    def __init__(
        self,
        config: VideoConfig,
        output_dir: Path,
        assembler: FFmpegAssembler | None = None,
    ):
        self.config = config
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        if assembler is None and ffmpeg_available():
            assembler = FFmpegAssembler()
        if assembler is None:
            logger.warning("FFmpeg not found; editing steps will copy their input")
        self.assembler = assembler

    def _degrade(self, source: Path, target: Path, error: Exception | None = None) -> Path:
        if error is not None:
            logger.warning("Editing fell back to copying %s: %s", source.name, error)
        if source.resolve() != target.resolve():
            shutil.copyfile(source, target)
        return target

    def stitch_clips(self, clip_paths: list[Path]) -> Path:
        """Concatenate clips into ``stitched_video.<format>``.

        Raises:
            StepFailure: If there are no clips or a clip is missing.
        """
        if not clip_paths:
            raise StepFailure("No video clips to stitch")
        missing = [str(p) for p in clip_paths if not Path(p).exists()]
        if missing:
            raise StepFailure(f"Video clip not found: {', '.join(missing)}")

        logger.info("Stitching %d clips together", len(clip_paths))
        output = self.output_dir / f"stitched_video.{self.config.video.format}"
        # Empty placeholder clips cannot be decoded
        usable = [Path(p) for p in clip_paths if Path(p).stat().st_size > 0]
        usable = usable or [Path(clip_paths[0])]
        if self.assembler is None:
            return self._degrade(usable[0], output)
        try:
            return self.assembler.concatenate_clips(usable, output)
        except FFmpegError as e:
            return self._degrade(usable[0], output, e)

    def _overlay(self, video: Path, audio: Path, name: str, volume: float, mix: bool) -> Path:
        output = self.output_dir / f"{name}.{self.config.video.format}"
        if self.assembler is None or not audio.exists() or audio.stat().st_size == 0:
            return self._degrade(video, output)
        try:
            return self.assembler.overlay_audio(video, audio, output, volume=volume, mix=mix)
        except FFmpegError as e:
            return self._degrade(video, output, e)

    def add_voiceover(self, video_path: Path, voiceover_path: Path) -> Path:
        logger.info("Adding voiceover to video")
        return self._overlay(video_path, voiceover_path, "video_with_voiceover", 1.0, mix=False)

    def add_background_music(self, video_path: Path, music_path: Path) -> Path:
        logger.info("Adding background music to video")
        return self._overlay(video_path, music_path, "video_with_music", MUSIC_VOLUME, mix=True)

    def add_subtitles(self, video_path: Path, script: str) -> Path:
        """Burn subtitles when enabled; otherwise return the input unchanged."""
        if not self.config.subtitles.enable:
            logger.info("Subtitles are disabled in the configuration")
            return video_path
        srt = self.output_dir / "subtitles.srt"
        srt.write_text(build_srt(script, self.config.duration), encoding="utf-8")
        output = self.output_dir / f"video_with_subtitles.{self.config.video.format}"
        if self.assembler is None or not script.strip():
            return self._degrade(video_path, output)
        try:
            return self.assembler.burn_subtitles(
                video_path, srt, output, style=self.config.subtitles.style
            )
        except FFmpegError as e:
            return self._degrade(video_path, output, e)

    def render_final(self, video_path: Path) -> Path:
        logger.info("Rendering final video")
        output = self.output_dir / f"final_video.{self.config.video.format}"
        if self.assembler is None:
            return self._degrade(video_path, output)
        try:
            return self.assembler.scale(video_path, output, self.config.video.resolution)
        except FFmpegError as e:
            return self._degrade(video_path, output, e)

    def validate_shorts_format(self, video_path: Path) -> bool:
        """Check the file exists and fits the YouTube Shorts size limit."""
        if not video_path.exists():
            logger.warning("Video to validate does not exist: %s", video_path)
            return False
        size_mb = video_path.stat().st_size / (1024 * 1024)
        if video_path.stat().st_size > SHORTS_MAX_BYTES:
            logger.warning("Video file size (%.2fMB) exceeds the Shorts limit (256MB)", size_mb)
            return False
        logger.info("Video validation passed: %.2fMB", size_mb)
        return True

    def get_video_metadata(self, video_path: Path) -> dict:
        """Return file stats, plus ffprobe stream info when available.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        if not video_path.exists():
            raise FileNotFoundError(f"Video file not found: {video_path}")
        stats = video_path.stat()
        metadata = {
            "path": str(video_path),
            "size": stats.st_size,
            "size_mb": round(stats.st_size / (1024 * 1024), 2),
            "modified": datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
        }
        if self.assembler is not None and stats.st_size > 0:
            try:
                metadata.update(self.assembler.get_video_info(video_path))
            except FFmpegError as e:
                logger.debug("ffprobe failed for %s: %s", video_path, e)
        return metadata
