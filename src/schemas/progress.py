"""
Progress & Progression Models

Append-only progress events and the derived per-step state of a ritual.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.schemas.base import (
    GatingMode,
    LevelState,
    NonEmptyStr,
    ProgressOutcome,
    StepState,
)


class QuizAnswer(BaseModel):
    question_id: str | None = None
    selected_index: int | None = None
    correct: bool | None = None


class ProgressEvent(BaseModel):
    """
    Immutable, append-only record of one learner attempt.
    """
    id: NonEmptyStr
    ritual_id: NonEmptyStr
    mission_id: NonEmptyStr
    step_id: NonEmptyStr
    created_at: datetime
    outcome: ProgressOutcome
    score: float | None = Field(default=None, ge=0.0, le=1.0)
    time_spent_minutes: float | None = Field(default=None, ge=0.0, le=60.0)
    notes: str | None = Field(default=None, max_length=280)
    quiz: QuizAnswer | None = None

    model_config = {"frozen": True}


class RemediationPlan(BaseModel):
    """Offered after a fail/partial outcome."""
    eligible_at: datetime
    options: list[str] = Field(default_factory=lambda: ["retry", "remedial_mission"])
    reason: ProgressOutcome


class StepProgress(BaseModel):
    step_id: NonEmptyStr
    level_id: NonEmptyStr
    mission_id: NonEmptyStr
    state: StepState = StepState.LOCKED
    attempts: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_outcome: ProgressOutcome | None = None
    remediation: RemediationPlan | None = None


class ProgressionState(BaseModel):
    """
    Per-ritual step lifecycle.

    Only the progression machine produces new instances of this model;
    callers never patch step states directly.
    """
    ritual_id: NonEmptyStr
    gating_mode: GatingMode
    steps: dict[str, StepProgress] = Field(default_factory=dict)
    levels: dict[str, LevelState] = Field(default_factory=dict)
    current_step_id: str | None = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def state_of(self, step_id: str) -> StepState:
        return self.steps[step_id].state

    @property
    def is_complete(self) -> bool:
        return all(
            progress.state in (StepState.COMPLETED, StepState.SKIPPED)
            for progress in self.steps.values()
        )
