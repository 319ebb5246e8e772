"""Video editing on top of FFmpeg."""

from sofy_shorts.editing.ffmpeg import FFmpegAssembler, FFmpegError, ffmpeg_available
from sofy_shorts.editing.video_editor import VideoEditor, build_srt

__all__ = ["FFmpegAssembler", "FFmpegError", "ffmpeg_available", "VideoEditor", "build_srt"]
