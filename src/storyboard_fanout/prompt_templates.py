"""Prompt templates for the decomposition and rendering gateways."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

DEFAULT_STYLE = (
    "(Photorealistic:1.3), (8k resolution:1.2), (Cinematic lighting),\n"
    "Constraints:\n"
    "- Aspect Ratio: 16:9\n"
    "- Style: Real life photography, high quality, documentary style.\n"
    "- Negative prompt: text, watermark, signature, cartoon, anime, illustration, distorted hands, blur, text."
)

FALLBACK_DESCRIPTION = "A quiet, empty courtroom in calm daylight"


@dataclass(frozen=True)
class PromptTemplateSpec:
    """Named prompt with the variables it expects.

    `render` raises `KeyError` when a declared variable is not supplied.
    """

    template_id: str
    description: str
    prompt: str
    input_variables: Tuple[str, ...]

    def render(self, **values: Any) -> str:
        missing = [name for name in self.input_variables if name not in values]
        if missing:
            raise KeyError(f"template {self.template_id} missing variables: {', '.join(missing)}")
        return self.prompt.format(**values)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.template_id,
            "description": self.description,
            "input_variables": list(self.input_variables),
            "prompt": self.prompt,
        }


SCENE_DECOMPOSITION = PromptTemplateSpec(
    template_id="storyboard_scene_decomposition_v1",
    description="Split free-form text into a fixed number of photographable scenes.",
    prompt=(
        "You are a visual director turning written material into a storyboard.\n"
        "Analyse the text below and plan the {scene_count} scenes that best convey its content.\n\n"
        "[Text]: {text}\n\n"
        "[Requirements]:\n"
        "1. Describe exactly {scene_count} scenes, each written as a photography direction.\n"
        "2. Style: realistic, documentary.\n"
        "3. Never ask for text, captions or lettering inside the image.\n\n"
        "[Output]: a JSON object of the form {{\"scenes\": [string, ...]}}"
    ),
    input_variables=("scene_count", "text"),
)


def scene_decomposition_prompt(text: str, scene_count: int) -> str:
    return SCENE_DECOMPOSITION.render(text=text, scene_count=scene_count)


__all__ = [
    "DEFAULT_STYLE",
    "FALLBACK_DESCRIPTION",
    "PromptTemplateSpec",
    "SCENE_DECOMPOSITION",
    "scene_decomposition_prompt",
]
