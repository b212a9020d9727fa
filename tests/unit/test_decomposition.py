from __future__ import annotations

import asyncio
from typing import List

import pytest

from storyboard_fanout.adapters.stub_adapter import StubDecomposer, split_sentences
from storyboard_fanout.decomposition import decompose_text, normalize_scenes, parse_scene_payload
from storyboard_fanout.errors import DecompositionFailure
from storyboard_fanout.prompt_templates import FALLBACK_DESCRIPTION
from storyboard_fanout.schemas import SceneAnalysis


def test_normalize_keeps_exact_count() -> None:
    scenes = [f"s{idx}" for idx in range(8)]
    assert normalize_scenes(scenes, 8) == scenes


def test_normalize_truncates_long_lists() -> None:
    scenes = [f"s{idx}" for idx in range(12)]
    assert normalize_scenes(scenes, 8) == scenes[:8]


def test_normalize_repeats_short_lists_in_order() -> None:
    assert normalize_scenes(["a", "b", "c"], 8) == ["a", "b", "c", "a", "b", "c", "a", "b"]


def test_normalize_uses_fallback_for_empty_lists() -> None:
    assert normalize_scenes([], 8) == [FALLBACK_DESCRIPTION] * 8
    assert normalize_scenes(["", "   ", None], 4, fallback="empty room") == ["empty room"] * 4


def test_normalize_strips_entries() -> None:
    assert normalize_scenes(["  a  ", "b"], 2) == ["a", "b"]


def test_parse_structured_json() -> None:
    assert parse_scene_payload('{"scenes": ["one", "two"]}') == ["one", "two"]


def test_parse_json_wrapped_in_prose() -> None:
    raw = 'Here is the plan:\n```json\n{"scenes": ["court", "judge"]}\n```'
    assert parse_scene_payload(raw) == ["court", "judge"]


@pytest.mark.parametrize("raw", [None, "", "   ", '{"other": 1}', '{"scenes": "not a list"}', "42"])
def test_parse_missing_scenes_yields_empty(raw: object) -> None:
    assert parse_scene_payload(raw) == []


def test_parse_accepts_models_and_mappings() -> None:
    assert parse_scene_payload(SceneAnalysis(scenes=["x"])) == ["x"]
    assert parse_scene_payload({"scenes": ["y", 3]}) == ["y"]
    assert parse_scene_payload(b'{"scenes": ["z"]}') == ["z"]


def test_parse_rejects_non_json_text() -> None:
    with pytest.raises(DecompositionFailure):
        parse_scene_payload("the model refused to answer")


def test_decompose_text_normalises_count() -> None:
    decomposer = StubDecomposer(["a", "b", "c"])
    scenes = asyncio.run(decompose_text(decomposer, "some text", 8))
    assert len(scenes) == 8
    assert decomposer.calls == ["some text"]


def test_decompose_text_wraps_transport_errors() -> None:
    decomposer = StubDecomposer(error=ConnectionError("network down"))
    with pytest.raises(DecompositionFailure) as excinfo:
        asyncio.run(decompose_text(decomposer, "text", 8))
    assert "network down" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_decompose_text_keeps_decomposition_failures() -> None:
    original = DecompositionFailure("bad payload")
    decomposer = StubDecomposer(error=original)
    with pytest.raises(DecompositionFailure) as excinfo:
        asyncio.run(decompose_text(decomposer, "text", 8))
    assert excinfo.value is original


def test_split_sentences() -> None:
    parts: List[str] = split_sentences("The court opened. The judge spoke! Was it fair? Yes")
    assert parts == ["The court opened", "The judge spoke", "Was it fair", "Yes"]
    assert split_sentences("   ") == []


class _ReturningDecomposer:
    def __init__(self, payload: object) -> None:
        self.payload = payload

    async def decompose(self, text: str) -> object:
        return self.payload


@pytest.mark.parametrize(
    "payload",
    [
        SceneAnalysis(scenes=["a", "b"]),
        '{"scenes": ["a", "b"]}',
        b'{"scenes": ["a", "b"]}',
        {"scenes": ["a", "b"]},
        ("a", "b"),
        ["a", "b"],
    ],
)
def test_decompose_text_accepts_every_payload_shape(payload: object) -> None:
    scenes = asyncio.run(decompose_text(_ReturningDecomposer(payload), "text", 4))
    assert scenes == ["a", "b", "a", "b"]


@pytest.mark.parametrize("payload", [42, object(), {"a", "b"}])
def test_decompose_text_rejects_unexpected_payloads(payload: object) -> None:
    with pytest.raises(DecompositionFailure):
        asyncio.run(decompose_text(_ReturningDecomposer(payload), "text", 8))


def test_decompose_text_treats_none_as_no_scenes() -> None:
    scenes = asyncio.run(decompose_text(_ReturningDecomposer(None), "text", 2, fallback="empty room"))
    assert scenes == ["empty room", "empty room"]
