"""FFmpeg wrapper for stitching clips and mixing audio and subtitles.

Requires FFmpeg (and ffprobe) on PATH.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

from sofy_shorts.config.logging import get_logger

logger = get_logger(__name__)


class FFmpegError(Exception):
    """Exception raised for FFmpeg-related errors."""


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


class FFmpegAssembler:
    """Thin command builder around the ffmpeg and ffprobe binaries."""

    def __init__(self):
        if not ffmpeg_available():
            raise FFmpegError(
                "FFmpeg not found. Please install FFmpeg:\n"
                "  macOS: brew install ffmpeg\n"
                "  Linux: apt install ffmpeg"
            )

    def _run(self, cmd: list[str], action: str) -> subprocess.CompletedProcess:
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise FFmpegError(f"FFmpeg {action} failed: {e.stderr or e}") from e
        except OSError as e:
            raise FFmpegError(f"FFmpeg {action} failed: {e}") from e
        if result.stderr:
            logger.debug("FFmpeg stderr: %s", result.stderr[-2000:])
        return result

    def concatenate_clips(self, clip_paths: list[Path], output_path: Path) -> Path:
        """Concatenate clips in order, re-encoding to H.264/AAC."""
        if not clip_paths:
            raise FFmpegError("No video clips provided for concatenation")
        for clip in clip_paths:
            if not clip.exists():
                raise FFmpegError(f"Video clip not found: {clip}")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        concat_file = output_path.parent / f".concat_list_{output_path.stem}.txt"
        try:
            with open(concat_file, "w", encoding="utf-8") as f:
                for clip in clip_paths:
                    escaped = str(clip.absolute()).replace("'", "'\\''")
                    f.write(f"file '{escaped}'\n")
            logger.info("Concatenating %d clips into %s", len(clip_paths), output_path)
            self._run(
                [
                    "ffmpeg", "-y",
                    "-f", "concat", "-safe", "0",
                    "-i", str(concat_file),
                    "-c:v", "libx264", "-preset", "medium", "-crf", "23",
                    "-c:a", "aac", "-b:a", "128k",
                    str(output_path),
                ],
                "concatenation",
            )
        finally:
            concat_file.unlink(missing_ok=True)
        return output_path

    def overlay_audio(
        self,
        video_path: Path,
        audio_path: Path,
        output_path: Path,
        volume: float = 1.0,
        mix: bool = False,
    ) -> Path:
        """Add an audio track to a video.

        Args:
            volume: Gain applied to the new track.
            mix: Mix with the existing audio instead of replacing it.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if mix:
            audio_filter = (
                f"[1:a]volume={volume}[bg];"
                "[0:a][bg]amix=inputs=2:duration=first:dropout_transition=0[a]"
            )
        else:
            audio_filter = f"[1:a]volume={volume}[a]"
        self._run(
            [
                "ffmpeg", "-y",
                "-i", str(video_path),
                "-i", str(audio_path),
                "-filter_complex", audio_filter,
                "-map", "0:v", "-map", "[a]",
                "-c:v", "copy", "-c:a", "aac", "-shortest",
                str(output_path),
            ],
            "audio overlay",
        )
        return output_path

    def burn_subtitles(
        self, video_path: Path, srt_path: Path, output_path: Path, style: str = ""
    ) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        escaped = str(srt_path.absolute()).replace("\\", "/").replace(":", "\\:")
        subtitle_filter = f"subtitles='{escaped}'"
        if style:
            subtitle_filter += f":force_style='{style}'"
        self._run(
            [
                "ffmpeg", "-y",
                "-i", str(video_path),
                "-vf", subtitle_filter,
                "-c:a", "copy",
                str(output_path),
            ],
            "subtitle burn-in",
        )
        return output_path

    def scale(self, video_path: Path, output_path: Path, resolution: str) -> Path:
        """Re-encode to ``WIDTHxHEIGHT``, padding to keep the aspect ratio."""
        width, _, height = resolution.partition("x")
        vf = (
            f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
        )
        self._run(
            [
                "ffmpeg", "-y",
                "-i", str(video_path),
                "-vf", vf,
                "-c:v", "libx264", "-preset", "medium", "-crf", "23",
                "-c:a", "aac", "-movflags", "+faststart",
                str(output_path),
            ],
            "final render",
        )
        return output_path

    def get_video_info(self, video_path: Path) -> dict:
        """Return codec, width, height, fps and duration from ffprobe."""
        if not video_path.exists():
            raise FFmpegError(f"Video file not found: {video_path}")
        result = self._run(
            [
                "ffprobe", "-v", "error",
                "-select_streams", "v:0",
                "-show_entries", "stream=codec_name,width,height,r_frame_rate",
                "-show_entries", "format=duration,size",
                "-of", "json",
                str(video_path),
            ],
            "probe",
        )
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise FFmpegError(f"Invalid ffprobe output: {e}") from e

        info: dict = {}
        if data.get("streams"):
            stream = data["streams"][0]
            info["codec"] = stream.get("codec_name")
            info["width"] = stream.get("width")
            info["height"] = stream.get("height")
            num, _, den = (stream.get("r_frame_rate") or "").partition("/")
            if num.isdigit() and den.isdigit() and int(den) != 0:
                info["fps"] = int(num) / int(den)
        fmt = data.get("format") or {}
        if fmt.get("duration"):
            info["duration"] = float(fmt["duration"])
        return info
