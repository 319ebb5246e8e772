"""External generative service adapters."""

from sofy_shorts.generators.base import (
    RetryPolicy,
    ServiceAdapter,
    ServiceOutcome,
    ServiceResult,
    is_rate_limit_error,
    poll_until_done,
)
from sofy_shorts.generators.key_rotator import KeyRotator
from sofy_shorts.generators.music_generator import MusicGenerator, MusicRequest
from sofy_shorts.generators.speech_generator import (
    MultiSpeakerRequest,
    MultiSpeakerSpeechGenerator,
    SpeechGenerator,
    SpeechRequest,
)
from sofy_shorts.generators.text_generator import TextGenerator, TextRequest
from sofy_shorts.generators.video_generator import VideoClipGenerator, VideoClipRequest

__all__ = [
    "KeyRotator",
    "RetryPolicy",
    "ServiceAdapter",
    "ServiceOutcome",
    "ServiceResult",
    "is_rate_limit_error",
    "poll_until_done",
    "TextGenerator",
    "TextRequest",
    "SpeechGenerator",
    "SpeechRequest",
    "MultiSpeakerSpeechGenerator",
    "MultiSpeakerRequest",
    "MusicGenerator",
    "MusicRequest",
    "VideoClipGenerator",
    "VideoClipRequest",
]
