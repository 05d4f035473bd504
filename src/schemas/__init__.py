"""
Ritual Engine Schemas Package

Contains all Pydantic models for the decision pipeline, plan generation,
progression and the clarify-chips contract.

Schemas are law. If data does not match these schemas, fail fast.
"""

from src.schemas.intent import (
    DecisionResult,
    DomainContext,
    GateChoice,
    GateVerdict,
    Intent,
    IntentHints,
    TraceEvent,
)
from src.schemas.playbook import DomainPlaybook, PlaybookOverrideSet
from src.schemas.path import (
    Competency,
    GeneratedPlan,
    LearningPath,
    Level,
    MissionFull,
    MissionStub,
    Step,
)
from src.schemas.progress import ProgressEvent, ProgressionState, StepProgress
from src.schemas.ritual import RitualRecord, RitualStatusRecord
from src.schemas.clarify import ClarifyChips

__all__ = [
    "Intent",
    "GateChoice",
    "GateVerdict",
    "TraceEvent",
    "DomainContext",
    "IntentHints",
    "DecisionResult",
    "DomainPlaybook",
    "PlaybookOverrideSet",
    "Competency",
    "Step",
    "Level",
    "LearningPath",
    "MissionStub",
    "MissionFull",
    "GeneratedPlan",
    "ProgressEvent",
    "ProgressionState",
    "StepProgress",
    "RitualRecord",
    "RitualStatusRecord",
    "ClarifyChips",
]
