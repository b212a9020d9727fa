from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ScenePhase = Literal["pending", "loading", "ready", "failed"]
RunPhase = Literal["idle", "decomposing", "generating", "complete"]


class SceneRecord(BaseModel):
    """One positional slot of the storyboard.

    Records are frozen; every transition produces a replacement via
    ``model_copy`` so observers never see a half-applied update.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    description: str
    phase: ScenePhase = "pending"
    asset: Optional[str] = None
    failure_reason: Optional[str] = None

    @model_validator(mode="after")
    def _check_phase_consistency(self) -> "SceneRecord":
        if self.phase == "ready" and (self.asset is None or self.failure_reason is not None):
            raise ValueError("ready scenes require an asset and no failure_reason")
        if self.phase != "failed" and self.failure_reason is not None:
            raise ValueError("failure_reason is only allowed on failed scenes")
        return self


class StoryboardSnapshot(BaseModel):
    """Ordered view of the registry handed to observers and HTTP clients."""

    run_id: Optional[str] = None
    phase: RunPhase = "idle"
    scene_count: int = Field(..., ge=1)
    settled: int = Field(default=0, ge=0)
    error: Optional[str] = None
    scenes: List[SceneRecord] = Field(default_factory=list)


class SceneAnalysis(BaseModel):
    """Structured response requested from the decomposition model."""

    scenes: List[str] = Field(default_factory=list)


class RunRequest(BaseModel):
    text: str
    style: Optional[str] = None


class RegenerationRequest(BaseModel):
    description: Optional[str] = None


class StyleUpdate(BaseModel):
    style: str


__all__ = [
    "ScenePhase",
    "RunPhase",
    "SceneRecord",
    "StoryboardSnapshot",
    "SceneAnalysis",
    "RunRequest",
    "RegenerationRequest",
    "StyleUpdate",
]
