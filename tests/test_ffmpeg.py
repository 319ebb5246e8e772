"""Tests for FFmpeg command construction."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from sofy_shorts.editing.ffmpeg import FFmpegAssembler, FFmpegError


@pytest.fixture
def assembler():
    with patch("sofy_shorts.editing.ffmpeg.shutil.which", return_value="/usr/bin/ffmpeg"):
        yield FFmpegAssembler()


def completed(stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


class TestFFmpegAssembler:
    def test_missing_binary(self) -> None:
        with patch("sofy_shorts.editing.ffmpeg.shutil.which", return_value=None):
            with pytest.raises(FFmpegError, match="FFmpeg not found"):
                FFmpegAssembler()

    def test_concatenate_writes_and_removes_list_file(self, assembler, tmp_path: Path) -> None:
        clips = [tmp_path / "clip_001.mp4", tmp_path / "it's.mp4"]
        for clip in clips:
            clip.write_bytes(b"x")
        output = tmp_path / "out" / "stitched_video.mp4"
        listings = []

        def fake_run(cmd, **kwargs):
            listings.append(Path(cmd[cmd.index("-i") + 1]).read_text(encoding="utf-8"))
            return completed()

        with patch("sofy_shorts.editing.ffmpeg.subprocess.run", side_effect=fake_run) as run:
            assert assembler.concatenate_clips(clips, output) == output

        cmd = run.call_args.args[0]
        assert cmd[:6] == ["ffmpeg", "-y", "-f", "concat", "-safe", "0"]
        assert cmd[-1] == str(output)
        assert "it'\\''s.mp4" in listings[0]
        assert not list(output.parent.glob(".concat_list_*"))

    def test_concatenate_rejects_missing_clip(self, assembler, tmp_path: Path) -> None:
        with pytest.raises(FFmpegError, match="Video clip not found"):
            assembler.concatenate_clips([tmp_path / "missing.mp4"], tmp_path / "out.mp4")

    def test_overlay_mix_filter(self, assembler, tmp_path: Path) -> None:
        with patch("sofy_shorts.editing.ffmpeg.subprocess.run", return_value=completed()) as run:
            assembler.overlay_audio(
                tmp_path / "v.mp4", tmp_path / "m.wav", tmp_path / "o.mp4", volume=0.2, mix=True
            )
        cmd = run.call_args.args[0]
        audio_filter = cmd[cmd.index("-filter_complex") + 1]
        assert audio_filter.startswith("[1:a]volume=0.2[bg];")
        assert "amix=inputs=2" in audio_filter

    def test_command_failure_raises(self, assembler, tmp_path: Path) -> None:
        error = subprocess.CalledProcessError(1, ["ffmpeg"], stderr="Invalid data")
        with patch("sofy_shorts.editing.ffmpeg.subprocess.run", side_effect=error):
            with pytest.raises(FFmpegError, match="final render failed: Invalid data"):
                assembler.scale(tmp_path / "v.mp4", tmp_path / "o.mp4", "1080x1920")

    def test_scale_pads_to_resolution(self, assembler, tmp_path: Path) -> None:
        with patch("sofy_shorts.editing.ffmpeg.subprocess.run", return_value=completed()) as run:
            assembler.scale(tmp_path / "v.mp4", tmp_path / "o.mp4", "1080x1920")
        cmd = run.call_args.args[0]
        vf = cmd[cmd.index("-vf") + 1]
        assert vf.startswith("scale=1080:1920:force_original_aspect_ratio=decrease")
        assert "pad=1080:1920" in vf

    def test_get_video_info(self, assembler, tmp_path: Path) -> None:
        video = tmp_path / "v.mp4"
        video.write_bytes(b"x")
        probe = {
            "streams": [
                {"codec_name": "h264", "width": 1080, "height": 1920, "r_frame_rate": "30/1"}
            ],
            "format": {"duration": "8.0", "size": "1024"},
        }
        with patch(
            "sofy_shorts.editing.ffmpeg.subprocess.run",
            return_value=completed(json.dumps(probe)),
        ):
            info = assembler.get_video_info(video)

        assert info == {
            "codec": "h264",
            "width": 1080,
            "height": 1920,
            "fps": 30.0,
            "duration": 8.0,
        }
