"""Asset gateway contract and prompt composition."""

from __future__ import annotations

from typing import Protocol


class Renderer(Protocol):
    async def render(self, description: str, style: str) -> str:
        """Render one scene and return the image payload as base64 text."""
        ...


def compose_prompt(style: str, description: str) -> str:
    """Combine the style directive and a scene description, style first."""

    style_text = (style or "").strip()
    scene = f"[Scene]: {description.strip()}"
    if not style_text:
        return scene
    return f"{style_text}\n\n{scene}"


def failure_reason(exc: BaseException) -> str:
    """Human-readable reason recorded on a failed scene."""

    message = str(exc).strip()
    return message or type(exc).__name__


__all__ = ["Renderer", "compose_prompt", "failure_reason"]
