"""Gemini text generation adapter."""

from __future__ import annotations

from dataclasses import dataclass

from google import genai

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import TransientServiceError
from sofy_shorts.generators.base import RetryPolicy, ServiceAdapter
from sofy_shorts.generators.key_rotator import KeyRotator

logger = get_logger(__name__)


@dataclass(frozen=True)
class TextRequest:
    prompt: str
    fallback_text: str = ""


class TextGenerator(ServiceAdapter[TextRequest, str]):
    """Generates text with a Gemini model.

    The fallback result is the request's ``fallback_text`` sentinel.
    """

    name = "text-generation"

    def __init__(
        self,
        rotator: KeyRotator,
        model: str = "gemini-2.5-flash",
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

    async def _invoke(self, request: TextRequest, api_key: str | None) -> str:
        logger.debug("Generating text with %s (%d chars prompt)", self.model, len(request.prompt))
        response = await self._client(api_key).aio.models.generate_content(
            model=self.model,
            contents=request.prompt,
        )
        text = (response.text or "").strip()
        if not text:
            raise TransientServiceError("Text model returned an empty response")
        return text

    def _fallback(self, request: TextRequest, error: BaseException) -> str:
        return request.fallback_text

    async def generate(self, prompt: str, fallback_text: str = "") -> str:
        """Convenience wrapper returning the text (or the fallback)."""
        result = await self.call(TextRequest(prompt=prompt, fallback_text=fallback_text))
        return result.unwrap()
