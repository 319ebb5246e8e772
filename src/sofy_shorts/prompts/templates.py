"""Prompt templates per niche."""

from __future__ import annotations

import abc

from sofy_shorts.models.video_config import VideoConfig


class PromptTemplate(abc.ABC):
    """Builds clip, script and music prompts for one niche."""

    @abc.abstractmethod
    def video_prompts(self, config: VideoConfig, count: int) -> list[str]:
        """Return exactly ``count`` clip prompts."""

    def script_prompt(self, config: VideoConfig) -> str:
        sentences = max(1, int(config.duration // 5))
        return (
            f"Write a {config.duration:g}-second {config.niche} voiceover script about "
            f"{config.theme} with a focus on {config.prompt.topic}.\n"
            f"The tone should be {config.prompt.tone} and the emotion should be "
            f"{config.prompt.emotion}.\n"
            f"The script should be written in {config.language} and suit a "
            f"{config.niche} audience.\n"
            f"Keep it concise and impactful, with approximately {sentences} sentences.\n"
            "Do not include any timestamps or audio directions."
        )

    def music_prompt(self, config: VideoConfig) -> str:
        return (
            f"Generate a {config.music.mood} background music track with a "
            f"{config.music.tempo} tempo.\n"
            f"The music should complement a {config.niche} video about {config.theme}.\n"
            f"The duration should be approximately {config.duration:g} seconds."
        )


class MotivationalPromptTemplate(PromptTemplate):
    CLIP_PROMPTS = (
        "High-energy {style} montage: Diverse individuals consistently mastering challenging "
        "daily routines (exercise, study, craft) from dawn till dusk, showcasing discipline "
        "building momentum towards a powerful, inspirational sunrise.",
        "Visually stunning, rapid-cut {style} sequence illustrating small, consistent daily "
        "actions compounding into monumental personal growth, with dynamic transitions and an "
        "uplifting score conveying unstoppable progress.",
        "Dramatic {style} video: A high-energy journey depicting initial struggles and "
        "setbacks overcome through unwavering discipline and consistency, leading to "
        "breakthrough moments and a triumphant, inspiring conclusion.",
        "Inspirational {style} clip: Abstract representations of a growth mindset manifesting "
        "through consistent, disciplined effort, evolving from raw potential to refined "
        "strength, with dynamic light, motion graphics and powerful visuals.",
        "High-energy {style} portrayal of an athlete's intense, consistent training (morning "
        "runs, gym reps, skill practice) through all conditions, showcasing how discipline and "
        "repetition forge peak performance.",
        "Visually appealing, high-energy {style} short: A creator (artist, musician, coder) "
        "meticulously practicing their craft daily, demonstrating the quiet discipline "
        "required to transform raw talent into mastery, with progression shots.",
        "Dynamic, high-energy montage: Diverse individuals engaged in disciplined, consistent "
        "effort (learning, building, working out), visually transitioning from focused "
        "struggle to powerful, confident achievement.",
        "{style}, high-energy sequence: Characters making disciplined choices daily, pushing "
        "past comfort zones with consistent effort, culminating in a powerful, self-assured "
        "stance against a challenging backdrop.",
        "Time-lapse transformation: A seed growing into a mighty tree, intercut with a person "
        "consistently practicing a skill over months, emphasizing gradual effort yielding "
        "magnificent growth.",
        '"Small Wins Big": Rapid-fire montage of small, consistent actions (one push-up, one '
        "page read, one line of code) accumulating into massive, visually impressive results.",
    )

    def video_prompts(self, config: VideoConfig, count: int) -> list[str]:
        prompts = [p.format(style=config.style) for p in self.CLIP_PROMPTS]
        return [prompts[i % len(prompts)] for i in range(count)]


TEMPLATES: dict[str, type[PromptTemplate]] = {
    "motivational": MotivationalPromptTemplate,
}


def create_template(niche: str) -> PromptTemplate:
    """Return the template registered for a niche (motivational by default)."""
    return TEMPLATES.get(niche.lower(), MotivationalPromptTemplate)()
