"""Error taxonomy for the storyboard pipeline.

Run-scoped failures (`ValidationFailure`, `DecompositionFailure`) escalate to
the caller. Record-scoped failures (`GenerationFailure`) are absorbed into the
scene record's `failure_reason`. `UnknownRecord` flags a caller bug.
"""

from __future__ import annotations

from typing import Optional


class StoryboardError(RuntimeError):
    """Base error for storyboard helpers."""


class ValidationFailure(StoryboardError, ValueError):
    """Input rejected before any state change."""


class DecompositionFailure(StoryboardError):
    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        detail = f"{message}: {cause}" if cause else message
        super().__init__(detail)
        if cause is not None:
            self.__cause__ = cause


class GenerationFailure(StoryboardError):
    def __init__(self, message: str, *, scene_id: Optional[int] = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.scene_id = scene_id
        if cause is not None:
            self.__cause__ = cause


class UnknownRecord(StoryboardError, LookupError):
    def __init__(self, scene_id: int) -> None:
        super().__init__(f"No scene record with id {scene_id}")
        self.scene_id = scene_id


__all__ = [
    "StoryboardError",
    "ValidationFailure",
    "DecompositionFailure",
    "GenerationFailure",
    "UnknownRecord",
]
