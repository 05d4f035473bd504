"""
Intent & Decision Models

Contracts for the decision pipeline: the request-scoped intent, the
immutable verdict each gate produces, the trace that explains a branch,
and the orchestrator's terminal decision.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.schemas.base import (
    DayCount,
    DecisionBranch,
    DomainSource,
    GateStatus,
    LocaleTag,
    NonEmptyStr,
    TraceOutcome,
    ValidationMode,
)


class Intent(BaseModel):
    """
    Raw learner goal. Request-scoped; never persisted as-is.
    """
    text: str = Field(description="Raw free-text goal")
    days: DayCount = Field(description="Declared ritual duration")
    locale: LocaleTag = Field(default="en", description="UI locale")


class GateChoice(BaseModel):
    """A selectable reformulation or quick choice surfaced to the learner."""
    id: NonEmptyStr
    label_key: NonEmptyStr = Field(description="Localized copy key")
    intention: str = Field(default="", description="Intent to resubmit if chosen")
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class GateVerdict(BaseModel):
    """Immutable result of one gate invocation."""
    gate: NonEmptyStr
    status: GateStatus
    reason_code: NonEmptyStr
    cleaned_text: str | None = None
    choices: list[GateChoice] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        """True when the pipeline must stop at this verdict."""
        return self.status != GateStatus.OK


class TraceEvent(BaseModel):
    """
    One entry of the decision trace.

    Appended in pipeline order. Observability only: downstream consumers
    never branch on it.
    """
    gate_name: NonEmptyStr
    outcome: TraceOutcome
    reason_code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    at: datetime = Field(default_factory=datetime.utcnow)

    model_config = {"frozen": True}


class DomainContext(BaseModel):
    """
    Domain lock copied verbatim into the generated learning path.
    """
    domain_id: NonEmptyStr
    domain_profile: NonEmptyStr
    domain_version: NonEmptyStr
    source: DomainSource = DomainSource.HEURISTIC

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "domain_id": "language",
                    "domain_profile": "Language acquisition",
                    "domain_version": "1",
                    "source": "heuristic",
                }
            ]
        }
    }


class IntentHints(BaseModel):
    """Enrichment hints forwarded to plan generation."""
    goal_hint: str = "personal_productivity"
    context_hint: str = "needs_daily_routine"
    validation_preference: ValidationMode = ValidationMode.SELF_REPORT
    tone: str = "default"


class DecisionResult(BaseModel):
    """
    Terminal output of the decision orchestrator.

    branch:
    - proceed: every gate returned ok; domain + hints are set
    - clarify: a gate asked for clarification; choices may be set
    - blocked: terminal for this intent text
    """
    branch: DecisionBranch
    reason_code: str
    gate: str | None = Field(default=None, description="Gate that decided a terminal branch")
    cleaned_text: str | None = None
    choices: list[GateChoice] = Field(default_factory=list)
    domain: DomainContext | None = None
    hints: IntentHints | None = None
    days: int | None = None
    locale: str = "en"
    payload: dict[str, Any] = Field(default_factory=dict)
    trace: list[TraceEvent] = Field(default_factory=list)

    @property
    def should_proceed(self) -> bool:
        return self.branch == DecisionBranch.PROCEED
