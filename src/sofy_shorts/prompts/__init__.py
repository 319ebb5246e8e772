"""Prompt templates and generation."""

from sofy_shorts.prompts.generator import PromptGenerator, parse_prompt_list
from sofy_shorts.prompts.templates import (
    MotivationalPromptTemplate,
    PromptTemplate,
    create_template,
)

__all__ = [
    "PromptGenerator",
    "PromptTemplate",
    "MotivationalPromptTemplate",
    "create_template",
    "parse_prompt_list",
]
