"""Gemini text-to-speech adapters (single and multi speaker).

Audio comes back as raw 16-bit PCM at 24 kHz and is wrapped in a WAV
container. Failures produce an empty WAV placeholder so the pipeline can
continue with a silent track.
"""

from __future__ import annotations

import wave
from dataclasses import dataclass, field
from pathlib import Path

from google import genai
from google.genai import types

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import TransientServiceError
from sofy_shorts.generators.base import RetryPolicy, ServiceAdapter
from sofy_shorts.generators.key_rotator import KeyRotator
from sofy_shorts.utils.file_utils import unique_filename, write_placeholder

logger = get_logger(__name__)

PCM_RATE = 24000
PCM_SAMPLE_WIDTH = 2
PCM_CHANNELS = 1

PREBUILT_VOICES = {
    "Kore", "Puck", "Charon", "Fenrir", "Aoede", "Leda", "Orus", "Zephyr",
}
VOICE_ALIASES = {"deep_male": "Kore"}
DEFAULT_VOICE = "Puck"


def resolve_voice(voice: str) -> str:
    """Map a config voice name to a prebuilt Gemini voice."""
    if voice in PREBUILT_VOICES:
        return voice
    return VOICE_ALIASES.get(voice, DEFAULT_VOICE)


def write_wav(path: Path, pcm: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(PCM_CHANNELS)
        wf.setsampwidth(PCM_SAMPLE_WIDTH)
        wf.setframerate(PCM_RATE)
        wf.writeframes(pcm)


def _extract_audio(response: types.GenerateContentResponse) -> bytes:
    try:
        data = response.candidates[0].content.parts[0].inline_data.data
    except (AttributeError, IndexError, TypeError) as e:
        raise TransientServiceError("TTS response contained no audio") from e
    if not data:
        raise TransientServiceError("TTS response contained no audio")
    return data


@dataclass(frozen=True)
class SpeechRequest:
    text: str
    voice: str = DEFAULT_VOICE


@dataclass(frozen=True)
class MultiSpeakerRequest:
    """Text with ``Speaker: line`` labels and a speaker to voice mapping."""

    text: str
    speakers: dict[str, str] = field(default_factory=dict)


class _GeminiSpeechBase:
    def __init__(self, model: str, work_dir: Path):
        self.model = model
        self.work_dir = Path(work_dir)
        self._clients: dict[str, genai.Client] = {}

    def _client(self, api_key: str | None) -> genai.Client:
        key = api_key or ""
        if key not in self._clients:
            self._clients[key] = genai.Client(api_key=api_key)
        return self._clients[key]

    async def _synthesize(
        self, api_key: str | None, text: str, speech_config: types.SpeechConfig, prefix: str
    ) -> Path:
        response = await self._client(api_key).aio.models.generate_content(
            model=self.model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=speech_config,
            ),
        )
        path = self.work_dir / unique_filename(prefix, "wav")
        write_wav(path, _extract_audio(response))
        logger.info("Audio saved to %s", path)
        return path


class SpeechGenerator(_GeminiSpeechBase, ServiceAdapter[SpeechRequest, Path]):
    """Single-voice speech synthesis. Returns the WAV path."""

    name = "speech-generation"

    def __init__(
        self,
        rotator: KeyRotator,
        work_dir: Path,
        model: str = "gemini-2.5-flash-preview-tts",
        policy: RetryPolicy | None = None,
    ):
        ServiceAdapter.__init__(self, rotator, policy)
        _GeminiSpeechBase.__init__(self, model, work_dir)

    async def _invoke(self, request: SpeechRequest, api_key: str | None) -> Path:
        voice = resolve_voice(request.voice)
        logger.info("Generating speech (%d chars) with voice %s", len(request.text), voice)
        config = types.SpeechConfig(
            voice_config=types.VoiceConfig(
                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
            )
        )
        return await self._synthesize(api_key, request.text, config, "speech")

    def _fallback(self, request: SpeechRequest, error: BaseException) -> Path:
        path = write_placeholder(self.work_dir, "speech", "wav")
        logger.warning("Created empty audio file at %s due to error", path)
        return path


class MultiSpeakerSpeechGenerator(_GeminiSpeechBase, ServiceAdapter[MultiSpeakerRequest, Path]):
    """Dialogue synthesis with one voice per labelled speaker."""

    name = "multi-speaker-speech-generation"

    def __init__(
        self,
        rotator: KeyRotator,
        work_dir: Path,
        model: str = "gemini-2.5-flash-preview-tts",
        policy: RetryPolicy | None = None,
    ):
        ServiceAdapter.__init__(self, rotator, policy)
        _GeminiSpeechBase.__init__(self, model, work_dir)

    async def _invoke(self, request: MultiSpeakerRequest, api_key: str | None) -> Path:
        logger.info("Generating multi-speaker speech for %s", ", ".join(request.speakers))
        config = types.SpeechConfig(
            multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(
                speaker_voice_configs=[
                    types.SpeakerVoiceConfig(
                        speaker=speaker,
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(
                                voice_name=resolve_voice(voice)
                            )
                        ),
                    )
                    for speaker, voice in request.speakers.items()
                ]
            )
        )
        return await self._synthesize(api_key, request.text, config, "multi_speech")

    def _fallback(self, request: MultiSpeakerRequest, error: BaseException) -> Path:
        path = write_placeholder(self.work_dir, "multi_speech", "wav")
        logger.warning("Created empty multi-speaker audio file at %s due to error", path)
        return path
