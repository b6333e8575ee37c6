"""Build pipeline state machine models (linear, no retries)."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BuildStage(str, Enum):
    """States a single build passes through."""

    PENDING = "pending"
    RESOLVED = "resolved"
    COMPILED = "compiled"
    TRANSFORMED = "transformed"
    FINGERPRINTED = "fingerprinted"
    ARTIFACTS_GENERATED = "artifacts_generated"
    DONE = "done"
    FAILED = "failed"


# Enforced by the orchestrator.  DONE and FAILED are terminal.
VALID_BUILD_TRANSITIONS: dict[BuildStage, set[BuildStage]] = {
    BuildStage.PENDING: {BuildStage.RESOLVED, BuildStage.FAILED},
    BuildStage.RESOLVED: {BuildStage.COMPILED, BuildStage.FAILED},
    BuildStage.COMPILED: {BuildStage.TRANSFORMED, BuildStage.FAILED},
    BuildStage.TRANSFORMED: {BuildStage.FINGERPRINTED, BuildStage.FAILED},
    BuildStage.FINGERPRINTED: {BuildStage.ARTIFACTS_GENERATED, BuildStage.FAILED},
    BuildStage.ARTIFACTS_GENERATED: {BuildStage.DONE, BuildStage.FAILED},
    BuildStage.DONE: set(),
    BuildStage.FAILED: set(),
}


class StageTransition(BaseModel):
    """Records entry into a build stage, for the audit trail."""

    model_config = ConfigDict(frozen=True)

    from_stage: BuildStage
    to_stage: BuildStage
    entered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    detail: str = ""
