"""
Base types and constants used across all schemas.

This module defines shared enums, types, and configuration
that ensure consistency across the decision pipeline, the plan
generator and the progression state machine.
"""

from enum import Enum
from typing import Annotated

from pydantic import Field


# =============================================================================
# MARKERS & VERSIONS
# =============================================================================

class PlanMarkers:
    """
    Machine-readable markers embedded in generated content.

    The plan marker must appear in the generated path summary; a missing
    marker means a truncated or hallucinated regeneration.
    """
    PLAN_WATERMARK: str = "[[WM_PLAN_V1]]"
    PLAN_PROMPT_VERSION: str = "plan_v1.1"
    MISSION_PROMPT_VERSION: str = "mission_full_v1.1"
    CLARIFY_CHIPS_PROMPT_VERSION: str = "clarify_chips_v1"


# =============================================================================
# DECISION ENUMS
# =============================================================================

class GateStatus(str, Enum):
    """Verdict status produced by a single gate."""
    OK = "ok"
    NEEDS_CLARIFICATION = "needs_clarification"
    BLOCKED = "blocked"


class TraceOutcome(str, Enum):
    """Outcome recorded in the decision trace."""
    OK = "ok"
    NEEDS_CLARIFICATION = "needs_clarification"
    BLOCKED = "blocked"
    SKIPPED = "skipped"  # Gate not invoked; still recorded


class DecisionBranch(str, Enum):
    """Terminal branch of the decision orchestrator."""
    PROCEED = "proceed"
    CLARIFY = "clarify"
    BLOCKED = "blocked"


class ActionabilityAction(str, Enum):
    """Heuristic actionability classification."""
    ACTIONABLE = "actionable"
    NOT_ACTIONABLE_INLINE = "not_actionable_inline"
    BORDERLINE = "borderline"


class RealismStatus(str, Enum):
    """Realism gate status."""
    OK = "ok"
    NEEDS_REFORMULATION = "needs_reformulation"


class ControllabilityLevel(str, Enum):
    """Whether the goal's outcome is under the learner's control."""
    CONTROLLED = "controlled"
    PARTIALLY_EXTERNAL = "partially_external"
    EXTERNAL = "external"


class DomainSource(str, Enum):
    """How the domain of an intent was decided."""
    HEURISTIC = "heuristic"
    HINT = "hint"
    LLM = "llm"
    FALLBACK = "fallback"


# =============================================================================
# LEARNING PATH ENUMS
# =============================================================================

class RitualMode(str, Enum):
    PROGRESSION = "progression"
    PRACTICE = "practice"
    MAINTENANCE = "maintenance"


class ValidationMode(str, Enum):
    """How step completion is validated."""
    AUTOMATIC = "automatic"  # Scored (quiz)
    SELF_REPORT = "self_report"  # Checklist
    PRESENCE = "presence"  # Showing up is enough; no scoring


class GatingMode(str, Enum):
    """Which steps the UI may open."""
    STRICT = "strict"
    SOFT = "soft"
    NONE = "none"


class Axis(str, Enum):
    UNDERSTAND = "understand"
    DO = "do"
    PERCEIVE = "perceive"
    CONSOLIDATE = "consolidate"


class EffortType(str, Enum):
    QUIZ = "quiz"
    LISTEN = "listen"
    SPEAK = "speak"
    READ = "read"
    WRITE = "write"
    DRILL = "drill"
    SIMULATION = "simulation"
    CHECKLIST = "checklist"
    REFLECTION = "reflection"
    WATCH = "watch"
    PRACTICE = "practice"
    REVIEW = "review"


class ResourceProvider(str, Enum):
    LOECSEN = "loecsen"
    YOUTUBE = "youtube"
    WEB = "web"
    USER_PROVIDED = "user_provided"


# =============================================================================
# PROGRESSION & RITUAL ENUMS
# =============================================================================

class StepState(str, Enum):
    """Lifecycle state of a single step."""
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Terminal but non-blocking


class LevelState(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProgressOutcome(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    PARTIAL = "partial"
    SKIPPED = "skipped"


class RitualStatus(str, Enum):
    """Generation status exposed to polling clients."""
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class CacheTrace(str, Enum):
    HIT = "hit"
    MISS = "miss"
    BYPASS = "bypass"


class PrivacyRisk(str, Enum):
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# ANNOTATED TYPES
# =============================================================================

# Confidence score must be between 0.0 and 1.0
ConfidenceScore = Annotated[float, Field(ge=0.0, le=1.0)]

# Non-empty string
NonEmptyStr = Annotated[str, Field(min_length=1)]

# Ritual duration in days
DayCount = Annotated[int, Field(ge=1, le=365)]

# Step / mission duration in minutes
DurationMinutes = Annotated[int, Field(ge=5, le=10)]

# Locale tag (e.g. "en", "fr-FR")
LocaleTag = Annotated[str, Field(min_length=2, max_length=8)]
