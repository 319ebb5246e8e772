"""Clip prompt generation, static or text-model assisted."""

from __future__ import annotations

import re

from sofy_shorts.config.logging import get_logger
from sofy_shorts.generators.text_generator import TextGenerator, TextRequest
from sofy_shorts.models.video_config import VideoConfig
from sofy_shorts.prompts.templates import create_template

logger = get_logger(__name__)

_LIST_ITEM = re.compile(r"^\s*(?:\d+\.|-)\s*(.+?)\s*$")


def parse_prompt_list(text: str) -> list[str]:
    """Extract items of a numbered (``1.``) or dashed (``-``) list."""
    items = []
    for line in text.splitlines():
        match = _LIST_ITEM.match(line)
        if match and match.group(1):
            items.append(match.group(1))
    return items


class PromptGenerator:
    def __init__(self, text: TextGenerator | None = None):
        self.text = text

    async def video_prompts(self, config: VideoConfig, count: int) -> list[str]:
        """Return ``count`` clip prompts for the configuration.

        Dynamic configs ask the text model for variations of the first
        template prompt and fall back to the templates when the answer is
        unusable.
        """
        logger.info("Generating %d video prompts for %s niche", count, config.niche)
        template = create_template(config.niche)
        if config.prompt.type == "static" or self.text is None:
            return template.video_prompts(config, count)

        base = template.video_prompts(config, 1)[0]
        request = (
            f"I need {count} different video prompt variations based on this theme:\n"
            f'"{base}"\n\n'
            f"Each prompt should be unique but related to {config.theme} with a focus on "
            f"{config.prompt.topic}.\n"
            f"The tone should be {config.prompt.tone} and the emotion should be "
            f"{config.prompt.emotion}.\n"
            "Format the response as a numbered list with each prompt on a new line.\n"
            "Keep each prompt concise and specific for video generation."
        )
        result = await self.text.call(TextRequest(prompt=request))
        if result.ok:
            prompts = parse_prompt_list(result.value or "")[:count]
            if len(prompts) >= count:
                return prompts
            logger.info("Only %d prompts generated, falling back to templates", len(prompts))
        return template.video_prompts(config, count)

    def script_prompt(self, config: VideoConfig) -> str:
        return create_template(config.niche).script_prompt(config)

    def music_prompt(self, config: VideoConfig) -> str:
        return create_template(config.niche).music_prompt(config)
