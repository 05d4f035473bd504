"""
Learning Path Data Model

The structured plan produced by the plan generator: a path of levels,
each an ordered list of steps, each step bound to exactly one mission
stub. Mission content blocks are filled in lazily.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator

from src.schemas.base import (
    Axis,
    DurationMinutes,
    EffortType,
    GatingMode,
    NonEmptyStr,
    ResourceProvider,
    RitualMode,
    ValidationMode,
)


class Competency(BaseModel):
    """A skill the path develops; steps reference it by id."""
    id: NonEmptyStr
    title: NonEmptyStr
    description: NonEmptyStr
    success_criteria: list[NonEmptyStr] = Field(default_factory=list)


class ResourceLink(BaseModel):
    provider: ResourceProvider
    title: NonEmptyStr
    url: str = ""
    reason: str = ""


class Step(BaseModel):
    """
    A single curriculum unit. Maps to exactly one mission.
    """
    id: NonEmptyStr
    title: NonEmptyStr
    competency_id: NonEmptyStr
    axis: Axis
    effort_type: EffortType
    duration_minutes: DurationMinutes
    required: bool = True
    mission_id: NonEmptyStr


class Level(BaseModel):
    id: NonEmptyStr
    title: NonEmptyStr
    steps: list[Step] = Field(min_length=1)


class LearningPath(BaseModel):
    """
    Canonical learning path.

    Invariants:
    - every step's mission_id is unique across the path
    - every step's competency_id references a declared competency
    """
    id: NonEmptyStr
    title: NonEmptyStr
    summary: NonEmptyStr
    description: str = ""
    feasibility_note: str = ""

    # Domain lock (copied verbatim from the decision)
    domain_id: NonEmptyStr
    domain_profile: NonEmptyStr
    domain_version: NonEmptyStr

    ritual_mode: RitualMode
    validation_mode: ValidationMode
    gating_mode: GatingMode

    competencies: list[Competency] = Field(min_length=1)
    levels: list[Level] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_references(self) -> "LearningPath":
        competency_ids = {competency.id for competency in self.competencies}
        mission_ids: set[str] = set()
        for step in self.iter_steps():
            if step.competency_id not in competency_ids:
                raise ValueError(
                    f"step {step.id} references unknown competency {step.competency_id}"
                )
            if step.mission_id in mission_ids:
                raise ValueError(f"duplicate mission_id {step.mission_id}")
            mission_ids.add(step.mission_id)
        return self

    def iter_steps(self):
        """Yield steps in path order (level by level)."""
        for level in self.levels:
            yield from level.steps

    def step_count(self) -> int:
        return sum(len(level.steps) for level in self.levels)

    def find_step(self, step_id: str) -> Step | None:
        for step in self.iter_steps():
            if step.id == step_id:
                return step
        return None

    def find_step_by_mission(self, mission_id: str) -> Step | None:
        for step in self.iter_steps():
            if step.mission_id == mission_id:
                return step
        return None


class MissionStub(BaseModel):
    """
    Lightweight description of one step's mission.
    """
    id: NonEmptyStr
    step_id: NonEmptyStr
    level_index: int = Field(ge=1)
    step_index: int = Field(ge=1)
    day_index: int = Field(ge=1)
    order: int = Field(ge=1)
    title: NonEmptyStr
    summary: NonEmptyStr
    unique_angle: NonEmptyStr = Field(description="Clause that makes this mission distinct")
    action_verb: NonEmptyStr
    effort_type: EffortType
    competency_id: NonEmptyStr
    axis: Axis
    duration_minutes: DurationMinutes
    resources: list[ResourceLink] = Field(default_factory=list, max_length=3)
    image_subject: str | None = None


# =============================================================================
# MISSION CONTENT BLOCKS
# =============================================================================

class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: NonEmptyStr


class ChecklistBlock(BaseModel):
    type: Literal["checklist"] = "checklist"
    items: list[NonEmptyStr] = Field(min_length=1)


class QuizBlock(BaseModel):
    type: Literal["quiz"] = "quiz"
    question: NonEmptyStr
    choices: list[NonEmptyStr] = Field(min_length=2)
    correct_index: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "QuizBlock":
        if self.correct_index is not None and self.correct_index >= len(self.choices):
            raise ValueError("correct_index out of range")
        return self


MissionBlock = Annotated[
    Union[TextBlock, ChecklistBlock, QuizBlock],
    Field(discriminator="type"),
]


class MissionFull(MissionStub):
    """A mission stub plus its renderable content."""
    blocks: list[MissionBlock] = Field(min_length=1, max_length=4)


class NormalizationDiagnostic(BaseModel):
    """Non-fatal repair applied to generator output before validation."""
    code: NonEmptyStr
    location: str
    original: Any = None
    repaired: Any = None


class GeneratedPlan(BaseModel):
    """Validated output of the plan generator."""
    path: LearningPath
    stubs: list[MissionStub]
    diagnostics: list[NormalizationDiagnostic] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    attempts: int = Field(default=1, ge=1)
    prompt_version: str = ""

    def stub_for_mission(self, mission_id: str) -> MissionStub | None:
        for stub in self.stubs:
            if stub.id == mission_id:
                return stub
        return None
