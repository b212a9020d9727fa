"""Gateway adapters for the decomposition and rendering services.

Heavy SDK imports stay inside the adapter methods so unit tests and fixture
mode run without them installed.
"""
from .gemini_adapter import GeminiImageRenderer, GeminiSceneDecomposer
from .stub_adapter import StubDecomposer, StubRenderer

__all__ = ["GeminiSceneDecomposer", "GeminiImageRenderer", "StubDecomposer", "StubRenderer"]
