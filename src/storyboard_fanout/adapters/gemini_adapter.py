"""Gemini-backed decomposition and rendering gateways.

The ``google-genai`` SDK is imported lazily so unit tests and fixture mode do
not need it installed.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, List, Optional, Tuple

from ..config import DEFAULT_ASPECT_RATIO, DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL
from ..decomposition import parse_scene_payload
from ..errors import DecompositionFailure, GenerationFailure
from ..prompt_templates import scene_decomposition_prompt
from ..rendering import compose_prompt
from ..scene_registry import DEFAULT_SCENE_COUNT
from ..schemas import SceneAnalysis
from .common import GatewayConfigError, MissingDependencyError

_LOG = logging.getLogger("storyboard_fanout.adapters.gemini")


def _load_genai() -> Tuple[Any, Any]:
    try:
        from google import genai
        from google.genai import types
    except ImportError as exc:
        raise MissingDependencyError(
            "google-genai is required for the Gemini gateways (pip install google-genai)"
        ) from exc
    return genai, types


def make_client(api_key: Optional[str]) -> Any:
    if not api_key:
        raise GatewayConfigError("A Gemini API key is required (GEMINI_API_KEY, GOOGLE_API_KEY or API_KEY)")
    genai, _ = _load_genai()
    return genai.Client(api_key=api_key)


class _GeminiGateway:
    def __init__(self, *, model: str, api_key: Optional[str] = None, client: Any = None) -> None:
        self.model = model
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = make_client(self._api_key)
        return self._client


class GeminiSceneDecomposer(_GeminiGateway):
    """Ask a Gemini text model for ``{"scenes": [...]}`` as structured JSON."""

    def __init__(
        self,
        *,
        model: str = DEFAULT_TEXT_MODEL,
        scene_count: int = DEFAULT_SCENE_COUNT,
        api_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        super().__init__(model=model, api_key=api_key, client=client)
        self.scene_count = scene_count

    async def decompose(self, text: str) -> List[str]:
        _, types = _load_genai()
        prompt = scene_decomposition_prompt(text, self.scene_count)
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=SceneAnalysis,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            raise DecompositionFailure("Gemini decomposition request failed", cause=exc) from exc

        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, SceneAnalysis):
            return list(parsed.scenes)
        return parse_scene_payload(getattr(response, "text", None))


class GeminiImageRenderer(_GeminiGateway):
    """Render one scene with a Gemini image model and return base64 image data."""

    def __init__(
        self,
        *,
        model: str = DEFAULT_IMAGE_MODEL,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        api_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        super().__init__(model=model, api_key=api_key, client=client)
        self.aspect_ratio = aspect_ratio

    async def render(self, description: str, style: str) -> str:
        _, types = _load_genai()
        prompt = compose_prompt(style, description)
        config = types.GenerateContentConfig(
            image_config=types.ImageConfig(aspect_ratio=self.aspect_ratio),
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            _LOG.debug("image request failed", exc_info=exc)
            raise GenerationFailure(f"Image generation failed: {exc}", cause=exc) from exc

        data = first_inline_image(response)
        if data is None:
            raise GenerationFailure("Invalid or missing image data in response")
        return data


def first_inline_image(response: Any) -> Optional[str]:
    """Return the first inline image payload of the first candidate as base64 text."""

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None)
        if isinstance(data, (bytes, bytearray)) and data:
            return base64.b64encode(bytes(data)).decode("ascii")
        if isinstance(data, str) and data:
            return data
    return None


__all__ = [
    "GeminiImageRenderer",
    "GeminiSceneDecomposer",
    "first_inline_image",
    "make_client",
]
