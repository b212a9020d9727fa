from __future__ import annotations

import logging
from typing import Optional, Tuple

from . import telemetry
from .adapters.gemini_adapter import GeminiImageRenderer, GeminiSceneDecomposer, make_client
from .adapters.stub_adapter import StubDecomposer, StubRenderer
from .config import StoryboardConfig
from .decomposition import Decomposer
from .rendering import Renderer

_LOG = logging.getLogger("storyboard_fanout.gateways")


def get_gateways(config: Optional[StoryboardConfig] = None) -> Tuple[Decomposer, Renderer]:
    """Build the decomposition and rendering gateways for ``config``.

    Fixture mode returns the deterministic stubs; otherwise both Gemini
    gateways share one client. Raises `GatewayConfigError` when no API key is
    configured and `MissingDependencyError` when google-genai is absent.
    """

    cfg = config or StoryboardConfig.from_env()
    if cfg.use_fixture:
        _LOG.info("fixture mode: using stub gateways")
        telemetry.emit_event("gateways.created", {"backend": "fixture"})
        return StubDecomposer(), StubRenderer()

    client = make_client(cfg.api_key)
    decomposer = GeminiSceneDecomposer(model=cfg.text_model, scene_count=cfg.scene_count, client=client)
    renderer = GeminiImageRenderer(model=cfg.image_model, aspect_ratio=cfg.aspect_ratio, client=client)
    telemetry.emit_event(
        "gateways.created",
        {"backend": "gemini", "text_model": cfg.text_model, "image_model": cfg.image_model},
    )
    return decomposer, renderer


__all__ = ["get_gateways"]
