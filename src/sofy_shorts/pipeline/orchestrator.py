"""Shorts generation pipeline.

One job runs these steps strictly in order:

1. Initialization (job directory)
2. Video generation (one clip per ``stitch_length`` seconds)
3. Script generation
4. Voiceover generation
5. Music generation
6. Video editing (stitch, voiceover, music, subtitles)
7. Final render (render, validate, optional upload)

Adapters absorb recoverable service errors and return degraded artifacts.
Anything that escapes a step (StepFailure or an unexpected error) fails the
job and skips the remaining steps. The orchestrator never retries a step.

Example:
    monitoring = MonitoringService.from_settings(settings)
    orchestrator = build_orchestrator(settings, config, monitoring)
    result = await orchestrator.run()
"""

from __future__ import annotations

import asyncio
import math
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from sofy_shorts.config.logging import get_logger
from sofy_shorts.config.settings import Settings
from sofy_shorts.editing.video_editor import VideoEditor
from sofy_shorts.exceptions import StepFailure
from sofy_shorts.generators.base import RetryPolicy
from sofy_shorts.generators.key_rotator import KeyRotator
from sofy_shorts.generators.music_generator import MusicGenerator, MusicRequest
from sofy_shorts.generators.speech_generator import SpeechGenerator, SpeechRequest
from sofy_shorts.generators.text_generator import TextGenerator, TextRequest
from sofy_shorts.generators.video_generator import VideoClipGenerator, VideoClipRequest
from sofy_shorts.models.job import JobStatus, JobStep
from sofy_shorts.models.monitoring import LogLevel
from sofy_shorts.models.video_config import VideoConfig
from sofy_shorts.monitoring.service import MonitoringService
from sofy_shorts.prompts.generator import PromptGenerator
from sofy_shorts.publishing.youtube_uploader import (
    UploadRequest,
    YouTubeUploader,
    check_upload_credentials,
)
from sofy_shorts.utils.file_utils import write_atomically

logger = get_logger(__name__)

EditorFactory = Callable[[VideoConfig, Path], VideoEditor]


@dataclass
class PipelineResult:
    """Outcome of one pipeline run.

    Attributes:
        job_id: Id of the tracked job.
        status: Final job status (Completed or Failed).
        output_path: Final video, if rendering got that far.
        video_url: Watch URL when the upload succeeded.
        clip_paths: Clips produced by the video generation step.
        script: Voiceover script text.
        error: Failure message for Failed jobs.
        steps_completed: Step values completed, in order.
    """

    job_id: str
    status: JobStatus = JobStatus.RUNNING
    output_path: Path | None = None
    video_url: str | None = None
    clip_paths: list[Path] = field(default_factory=list)
    script: str | None = None
    error: str | None = None
    steps_completed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is JobStatus.COMPLETED


def clip_count(duration: float, stitch_length: float) -> int:
    """Number of clips needed to cover ``duration`` seconds."""
    return max(1, math.ceil(duration / stitch_length))


class PipelineOrchestrator:
    def __init__(
        self,
        config: VideoConfig,
        monitoring: MonitoringService,
        *,
        text: TextGenerator,
        speech: SpeechGenerator,
        music: MusicGenerator,
        video: VideoClipGenerator,
        uploader: YouTubeUploader | None = None,
        prompts: PromptGenerator | None = None,
        editor_factory: EditorFactory = VideoEditor,
        job_timeout: float | None = None,
    ):
        self.config = config
        self.monitoring = monitoring
        self.text = text
        self.speech = speech
        self.music = music
        self.video = video
        self.uploader = uploader
        self.prompts = prompts or PromptGenerator(text)
        self.editor_factory = editor_factory
        self.job_timeout = job_timeout or None

    async def run(self) -> PipelineResult:
        """Run one job end to end. Failures are reported in the result.

        Raises:
            asyncio.CancelledError: Re-raised after the job is marked Failed.
        """
        job_id = self.monitoring.start_job(self.config.niche, self.config.theme)
        result = PipelineResult(job_id=job_id)
        logger.info("Starting pipeline run: %s", job_id)
        try:
            await asyncio.wait_for(self._run_steps(result), timeout=self.job_timeout)
        except asyncio.TimeoutError as e:
            if self.job_timeout is None:
                self._fail(result, str(e) or "Operation timed out")
            else:
                self._fail(result, f"Job timed out after {self.job_timeout:g}s")
        except asyncio.CancelledError:
            self._fail(result, "Job was cancelled")
            raise
        except Exception as e:
            logger.debug("Job %s failed", job_id, exc_info=True)
            self._fail(result, str(e) or type(e).__name__)
        else:
            self.monitoring.update_status(job_id, JobStatus.COMPLETED)
            result.status = JobStatus.COMPLETED
        return result

    def _fail(self, result: PipelineResult, error: str) -> None:
        result.status = JobStatus.FAILED
        result.error = error
        self.monitoring.update_status(result.job_id, JobStatus.FAILED, error=error)

    def _enter(self, result: PipelineResult, step: JobStep) -> None:
        self.monitoring.update_status(result.job_id, JobStatus.RUNNING, step)

    def _log(self, result: PipelineResult, level: LogLevel, message: str) -> None:
        self.monitoring.log(level, message, result.job_id)

    async def _run_steps(self, result: PipelineResult) -> None:
        job_dir = Path(self.config.output.path) / result.job_id
        job_dir.mkdir(parents=True, exist_ok=True)
        result.steps_completed.append(JobStep.INIT.value)

        self._enter(result, JobStep.VIDEO_GENERATION)
        result.clip_paths = await self._generate_clips(result, job_dir / "clips")
        result.steps_completed.append(JobStep.VIDEO_GENERATION.value)

        self._enter(result, JobStep.SCRIPT_GENERATION)
        result.script = await self._generate_script(job_dir)
        result.steps_completed.append(JobStep.SCRIPT_GENERATION.value)

        self._enter(result, JobStep.VOICEOVER_GENERATION)
        voiceover = await self._generate_voiceover(result.script, job_dir)
        result.steps_completed.append(JobStep.VOICEOVER_GENERATION.value)

        self._enter(result, JobStep.MUSIC_GENERATION)
        music = await self._generate_music(job_dir)
        result.steps_completed.append(JobStep.MUSIC_GENERATION.value)

        self._enter(result, JobStep.VIDEO_EDITING)
        editor = self.editor_factory(self.config, job_dir)
        edited = await asyncio.to_thread(
            self._edit, editor, result.clip_paths, voiceover, music, result.script
        )
        result.steps_completed.append(JobStep.VIDEO_EDITING.value)

        self._enter(result, JobStep.FINAL_RENDER)
        final = await asyncio.to_thread(editor.render_final, edited)
        result.output_path = final
        self.monitoring.set_output_path(result.job_id, final)
        if not editor.validate_shorts_format(final):
            raise StepFailure(f"Final video does not meet YouTube Shorts requirements: {final}")
        if self.config.output.upload:
            result.video_url = await self._upload(result, final)
        result.steps_completed.append(JobStep.FINAL_RENDER.value)

    async def _generate_clips(self, result: PipelineResult, clips_dir: Path) -> list[Path]:
        count = clip_count(self.config.duration, self.config.video.stitch_length)
        prompts = await self.prompts.video_prompts(self.config, count)
        clips: list[Path] = []
        for index, prompt in enumerate(prompts, start=1):
            request = VideoClipRequest(
                prompt=prompt,
                index=index,
                output_dir=clips_dir,
                duration_seconds=self.config.video.stitch_length,
            )
            try:
                outcome = await self.video.call(request)
                clip = outcome.unwrap()
            except Exception as e:
                self._log(result, LogLevel.WARNING, f"Clip {index}/{count} failed: {e}")
                continue
            if outcome.degraded:
                self._log(result, LogLevel.WARNING, f"Clip {index}/{count} is a placeholder")
            clips.append(clip)
        if not clips:
            raise StepFailure("No video clips were generated")
        self._log(result, LogLevel.INFO, f"Generated {len(clips)}/{count} video clips")
        return clips

    async def _generate_script(self, job_dir: Path) -> str:
        fallback = f"{self.config.theme}. {self.config.prompt.topic}."
        request = TextRequest(
            prompt=self.prompts.script_prompt(self.config), fallback_text=fallback
        )
        script = (await self.text.call(request)).unwrap()
        write_atomically(job_dir / "script.txt", script)
        return script

    async def _generate_voiceover(self, script: str, job_dir: Path) -> Path:
        request = SpeechRequest(text=script, voice=self.config.voiceover.voice)
        audio = (await self.speech.call(request)).unwrap()
        return await asyncio.to_thread(_move_into, audio, job_dir / "voiceover.wav")

    async def _generate_music(self, job_dir: Path) -> Path:
        request = MusicRequest(
            prompt=self.prompts.music_prompt(self.config),
            mood=self.config.music.mood,
            tempo=self.config.music.tempo,
            duration_seconds=self.config.duration,
        )
        track = (await self.music.call(request)).unwrap()
        return await asyncio.to_thread(_move_into, track, job_dir / "music.wav")

    def _edit(
        self, editor: VideoEditor, clips: list[Path], voiceover: Path, music: Path, script: str
    ) -> Path:
        stitched = editor.stitch_clips(clips)
        with_voice = editor.add_voiceover(stitched, voiceover)
        with_music = editor.add_background_music(with_voice, music)
        return editor.add_subtitles(with_music, script)

    async def _upload(self, result: PipelineResult, final: Path) -> str | None:
        if self.uploader is None:
            self._log(result, LogLevel.WARNING, "Upload requested but no uploader is configured")
            return None
        outcome = await self.uploader.call(UploadRequest.from_config(final, self.config))
        url = outcome.unwrap()
        if url:
            self._log(result, LogLevel.INFO, f"Uploaded to YouTube: {url}")
        else:
            self._log(result, LogLevel.WARNING, f"Upload failed: {outcome.error}")
        return url


def _move_into(source: Path, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(target))
    return target


def build_orchestrator(
    settings: Settings,
    config: VideoConfig,
    monitoring: MonitoringService,
) -> PipelineOrchestrator:
    """Wire adapters sharing one KeyRotator.

    Raises:
        ConfigurationError: If no API key is configured, or uploads are enabled
            without usable YouTube credentials.
    """
    rotator = KeyRotator.from_settings(settings)
    policy = RetryPolicy.from_settings(settings)
    work_dir = settings.sofy_temp_dir
    text = TextGenerator(rotator, model=settings.sofy_text_model, policy=policy)
    uploader = None
    if config.output.upload:
        token = check_upload_credentials(
            settings.youtube_client_secrets, settings.youtube_token_file
        )
        uploader = YouTubeUploader(settings.youtube_client_secrets, token, policy=policy)
    return PipelineOrchestrator(
        config,
        monitoring,
        text=text,
        speech=SpeechGenerator(
            rotator, work_dir, model=settings.sofy_tts_model, policy=policy
        ),
        music=MusicGenerator(rotator, work_dir, policy=policy),
        video=VideoClipGenerator(rotator, model=settings.sofy_video_model, policy=policy),
        uploader=uploader,
        prompts=PromptGenerator(text),
        job_timeout=settings.sofy_job_timeout,
    )
