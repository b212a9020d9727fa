"""Environment helpers shared across runtime modules."""

from __future__ import annotations

from typing import Mapping, MutableMapping, Optional
import os

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}
API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def env_flag(value: str | None, *, default: bool = False) -> bool:
    token = _normalize(value)
    if not token:
        return default
    if token in TRUTHY:
        return True
    if token in FALSY:
        return False
    return default


def fixture_mode_enabled(
    env: Mapping[str, str] | MutableMapping[str, str] | None = None,
    *,
    default: bool = False,
) -> bool:
    data = os.environ if env is None else env
    return env_flag(data.get("STORYBOARD_USE_FIXTURE"), default=default)


def resolve_api_key(
    env: Mapping[str, str] | MutableMapping[str, str] | None = None,
) -> Optional[str]:
    """Return the first non-empty API key among the supported variables."""

    data = os.environ if env is None else env
    for name in API_KEY_VARS:
        value = (data.get(name) or "").strip()
        if value:
            return value
    return None


__all__ = [
    "API_KEY_VARS",
    "TRUTHY",
    "FALSY",
    "env_flag",
    "fixture_mode_enabled",
    "resolve_api_key",
]
