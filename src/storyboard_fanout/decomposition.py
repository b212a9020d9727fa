"""Decomposition gateway contract and scene-list normalisation."""

from __future__ import annotations

import json
import logging
from itertools import cycle, islice
from typing import Any, Iterable, List, Mapping, Protocol, Sequence

from .errors import DecompositionFailure
from .prompt_templates import FALLBACK_DESCRIPTION
from .schemas import SceneAnalysis

_LOG = logging.getLogger("storyboard_fanout.decomposition")


class Decomposer(Protocol):
    async def decompose(self, text: str) -> Sequence[str]:
        """Return scene descriptions for ``text``; the count may differ from N."""
        ...


def normalize_scenes(
    scenes: Iterable[Any],
    scene_count: int,
    *,
    fallback: str = FALLBACK_DESCRIPTION,
) -> List[str]:
    """Coerce a raw scene list to exactly ``scene_count`` descriptions.

    Blank and non-string entries are dropped. Longer lists are truncated,
    shorter ones repeat the available entries cyclically, and an empty list
    becomes ``scene_count`` copies of ``fallback``.
    """

    if scene_count <= 0:
        raise ValueError("scene_count must be positive")
    usable = [item.strip() for item in scenes if isinstance(item, str) and item.strip()]
    if not usable:
        return [fallback] * scene_count
    return list(islice(cycle(usable), scene_count))


def parse_scene_payload(raw: Any) -> List[str]:
    """Extract the ``scenes`` list from a model response.

    Empty text and objects without a usable ``scenes`` list yield ``[]``.
    Text that is not JSON raises `DecompositionFailure`.
    """

    if raw is None:
        return []
    if isinstance(raw, SceneAnalysis):
        return list(raw.scenes)
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, Mapping):
        return _scenes_from_mapping(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    if not isinstance(raw, str):
        raise DecompositionFailure(f"Unsupported decomposition payload type: {type(raw).__name__}")

    trimmed = raw.strip()
    if not trimmed:
        return []
    last_error: Exception | None = None
    for candidate in _json_candidates(trimmed):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if isinstance(payload, (list, Mapping)):
            return parse_scene_payload(payload)
        return []
    raise DecompositionFailure("Decomposition output is not valid JSON", cause=last_error)


def _scenes_from_mapping(payload: Mapping[str, Any]) -> List[str]:
    scenes = payload.get("scenes")
    if not isinstance(scenes, list):
        return []
    return [item for item in scenes if isinstance(item, str)]


def _json_candidates(text: str) -> Iterable[str]:
    yield text
    start = text.find("{")
    end = text.rfind("}")
    if 0 <= start < end:
        yield text[start : end + 1]


async def decompose_text(
    decomposer: Decomposer,
    text: str,
    scene_count: int,
    *,
    fallback: str = FALLBACK_DESCRIPTION,
) -> List[str]:
    """Invoke the gateway once and return exactly ``scene_count`` descriptions.

    The gateway may hand back a scene list, a `SceneAnalysis`, a mapping or
    raw JSON text; any other shape raises `DecompositionFailure`.
    """

    try:
        raw = await decomposer.decompose(text)
    except DecompositionFailure:
        raise
    except Exception as exc:
        raise DecompositionFailure("Decomposition call failed", cause=exc) from exc

    received = parse_scene_payload(raw)
    scenes = normalize_scenes(received, scene_count, fallback=fallback)
    if len(received) != scene_count:
        _LOG.info("decomposition returned %s scenes; normalised to %s", len(received), scene_count)
    return scenes


__all__ = ["Decomposer", "decompose_text", "normalize_scenes", "parse_scene_payload"]
