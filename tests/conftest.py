"""Test configuration helpers."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

_STORYBOARD_VARS = (
    "STORYBOARD_SCENE_COUNT",
    "STORYBOARD_TEXT_MODEL",
    "STORYBOARD_IMAGE_MODEL",
    "STORYBOARD_ASPECT_RATIO",
    "STORYBOARD_FALLBACK_DESCRIPTION",
    "STORYBOARD_REGEN_ASSET_POLICY",
    "STORYBOARD_STYLE",
    "STORYBOARD_USE_FIXTURE",
    "STORYBOARD_TELEMETRY_LOG",
)


def _ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    for entry in (src, root):
        entry_str = str(entry)
        if entry_str not in sys.path:
            sys.path.insert(0, entry_str)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep host configuration and earlier telemetry out of every test."""

    from storyboard_fanout import telemetry
    from storyboard_fanout.utils.env import API_KEY_VARS

    for name in _STORYBOARD_VARS + API_KEY_VARS:
        monkeypatch.delenv(name, raising=False)
    telemetry.clear_events()
    yield
    telemetry.clear_events()


_ensure_src_on_path()
