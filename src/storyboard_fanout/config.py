from __future__ import annotations

"""Configuration for the storyboard pipeline and its gateways."""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, cast

import yaml

from .prompt_templates import DEFAULT_STYLE, FALLBACK_DESCRIPTION
from .scene_registry import DEFAULT_SCENE_COUNT
from .utils.env import env_flag, fixture_mode_enabled, resolve_api_key

DEFAULT_TEXT_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_ASPECT_RATIO = "16:9"

RegenAssetPolicy = Literal["clear", "retain"]
_REGEN_POLICIES = {"clear", "retain"}


@dataclass(frozen=True)
class StoryboardConfig:
    """Resolved configuration."""

    scene_count: int = DEFAULT_SCENE_COUNT
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    fallback_description: str = FALLBACK_DESCRIPTION
    regen_asset_policy: RegenAssetPolicy = "clear"
    default_style: str = DEFAULT_STYLE
    use_fixture: bool = False
    api_key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.scene_count <= 0:
            raise ValueError("scene_count must be greater than zero")
        if self.regen_asset_policy not in _REGEN_POLICIES:
            allowed = ", ".join(sorted(_REGEN_POLICIES))
            raise ValueError(f"Unsupported regen_asset_policy '{self.regen_asset_policy}'. Expected one of: {allowed}.")
        if not self.fallback_description.strip():
            raise ValueError("fallback_description must be non-empty")

    @property
    def clear_asset_on_regenerate(self) -> bool:
        return self.regen_asset_policy == "clear"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> StoryboardConfig:
        data = os.environ if env is None else env
        return cls(
            scene_count=_coerce_int(data.get("STORYBOARD_SCENE_COUNT"), default=DEFAULT_SCENE_COUNT),
            text_model=data.get("STORYBOARD_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
            image_model=data.get("STORYBOARD_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            aspect_ratio=data.get("STORYBOARD_ASPECT_RATIO") or DEFAULT_ASPECT_RATIO,
            fallback_description=data.get("STORYBOARD_FALLBACK_DESCRIPTION") or FALLBACK_DESCRIPTION,
            regen_asset_policy=_coerce_policy(data.get("STORYBOARD_REGEN_ASSET_POLICY")),
            default_style=data.get("STORYBOARD_STYLE") or DEFAULT_STYLE,
            use_fixture=fixture_mode_enabled(data),
            api_key=resolve_api_key(data),
        )

    @classmethod
    def from_yaml(cls, path: Path | str, env: Mapping[str, str] | None = None) -> StoryboardConfig:
        """Load ``path`` on top of the environment; file values win."""

        base = cls.from_env(env)
        with Path(path).open("r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh) or {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"Config file {path} must contain a mapping")
        return base.with_overrides(payload)

    def with_overrides(self, overrides: Mapping[str, Any]) -> StoryboardConfig:
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        values = {key: value for key, value in overrides.items() if value is not None}
        if "scene_count" in values:
            values["scene_count"] = _coerce_int(str(values["scene_count"]), default=DEFAULT_SCENE_COUNT)
        if "use_fixture" in values and not isinstance(values["use_fixture"], bool):
            values["use_fixture"] = env_flag(str(values["use_fixture"]))
        if "regen_asset_policy" in values:
            values["regen_asset_policy"] = _coerce_policy(str(values["regen_asset_policy"]))
        return replace(self, **values)


def _coerce_int(value: str | None, *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value: {value!r}") from exc


def _coerce_policy(value: str | None) -> RegenAssetPolicy:
    token = (value or "clear").strip().lower()
    if token not in _REGEN_POLICIES:
        allowed = ", ".join(sorted(_REGEN_POLICIES))
        raise ValueError(f"Unsupported STORYBOARD_REGEN_ASSET_POLICY '{token}'. Expected one of: {allowed}.")
    return cast(RegenAssetPolicy, token)


__all__ = [
    "DEFAULT_ASPECT_RATIO",
    "DEFAULT_IMAGE_MODEL",
    "DEFAULT_TEXT_MODEL",
    "RegenAssetPolicy",
    "StoryboardConfig",
]
