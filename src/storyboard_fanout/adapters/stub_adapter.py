"""Deterministic stub gateways for fixture mode and unit tests."""

from __future__ import annotations

import asyncio
import re
from typing import List, Mapping, Optional, Sequence, Tuple

from ..rendering import compose_prompt

# Minimal valid 1x1 PNG, already base64 encoded as the renderer contract expects.
ONE_PIXEL_PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="

_SENT_SPLIT = re.compile(r"[.!?;]+\s+")


def split_sentences(text: str) -> List[str]:
    s = (text or "").strip().replace("\n", " ")
    if not s:
        return []
    return [p.strip(" .!?;") for p in _SENT_SPLIT.split(s) if p.strip(" .!?;")]


class StubDecomposer:
    """Return scripted scenes, or one scene per sentence of the input."""

    def __init__(self, scenes: Optional[Sequence[str]] = None, *, error: Optional[Exception] = None) -> None:
        self._scenes = list(scenes) if scenes is not None else None
        self._error = error
        self.calls: List[str] = []

    async def decompose(self, text: str) -> List[str]:
        self.calls.append(text)
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        if self._scenes is not None:
            return list(self._scenes)
        return split_sentences(text)


class StubRenderer:
    """Return a fixed PNG payload; descriptions listed in ``failures`` raise instead."""

    def __init__(
        self,
        *,
        failures: Optional[Mapping[str, Exception]] = None,
        payload: str = ONE_PIXEL_PNG_B64,
    ) -> None:
        self._failures = dict(failures or {})
        self._payload = payload
        self.calls: List[Tuple[str, str]] = []

    @property
    def prompts(self) -> List[str]:
        return [compose_prompt(style, description) for description, style in self.calls]

    async def render(self, description: str, style: str) -> str:
        self.calls.append((description, style))
        await asyncio.sleep(0)
        error = self._failures.get(description)
        if error is not None:
            raise error
        return self._payload


__all__ = ["ONE_PIXEL_PNG_B64", "StubDecomposer", "StubRenderer", "split_sentences"]
