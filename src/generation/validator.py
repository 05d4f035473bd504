"""
Plan Validator

Layered validation of a normalized plan payload. Layers run in order and
the first failing layer decides the reason code; its errors become the
corrective feedback for the next attempt.

1. schema conformance                     → schema_invalid
2. summary marker, no quotes / filler     → invalid_summary
3. sentence bounds                        → invalid_sentence_count
4. duplicate stub summaries / angles      → duplicate_content
5. declared competencies                  → unknown_competency
6. mission id ↔ stub id correspondence    → invalid_mission_stubs
7. level / step counts, gating rules      → invalid_structure

Effort types outside the playbook are warnings, never failures.
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from src.gates.patterns import normalize_for_comparison
from src.schemas.base import GatingMode, PlanMarkers, RitualMode, ValidationMode
from src.schemas.path import LearningPath, MissionStub
from src.schemas.playbook import DomainPlaybook
from src.utils.validation import SchemaValidationError, format_validation_errors, validate_schema

logger = logging.getLogger(__name__)

SUMMARY_QUOTES = ('"', "“", "”", "«", "»")
SUMMARY_FILLER = ["rituel doux", "gentle ritual", "to move forward", "avancer vers"]

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_STUBS_ADAPTER = TypeAdapter(list[MissionStub])


class PlanValidationResult(BaseModel):
    ok: bool
    reason_code: str | None = None
    errors: list[str] = Field(default_factory=list)
    path: LearningPath | None = None
    stubs: list[MissionStub] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def sentence_count(value: str | None) -> int:
    if not value:
        return 0
    return len([part for part in _SENTENCE_SPLIT_RE.split(value.strip()) if part.strip()])


def strip_marker(summary: str) -> str:
    return " ".join(summary.replace(PlanMarkers.PLAN_WATERMARK, " ").split())


def _fail(reason_code: str, errors: list[str], **kwargs: Any) -> PlanValidationResult:
    logger.info(f"Plan validation failed: {reason_code} ({len(errors)} errors)")
    return PlanValidationResult(ok=False, reason_code=reason_code, errors=errors, **kwargs)


# =============================================================================
# LAYERS
# =============================================================================

def _check_schema(payload: dict[str, Any]) -> tuple[LearningPath | None, list[MissionStub], list[str]]:
    path_data = payload.get("path")
    stubs_data = payload.get("mission_stubs")
    errors: list[str] = []
    if not isinstance(path_data, dict):
        return None, [], ["path: missing"]
    if not isinstance(stubs_data, list) or not stubs_data:
        return None, [], ["mission_stubs: missing"]

    path = None
    try:
        path = validate_schema(LearningPath, path_data)
    except SchemaValidationError as e:
        errors.extend(f"path.{line}" for line in e.messages())

    stubs: list[MissionStub] = []
    try:
        stubs = _STUBS_ADAPTER.validate_python(stubs_data)
    except ValidationError as e:
        errors.extend(
            f"mission_stubs.{line}"
            for line in format_validation_errors(e.errors(include_url=False, include_input=False))
        )
    return path, stubs, errors


def _check_summary(path: LearningPath) -> list[str]:
    errors = []
    if PlanMarkers.PLAN_WATERMARK not in path.summary:
        errors.append(f"summary: missing marker {PlanMarkers.PLAN_WATERMARK}")
    if any(quote in path.summary for quote in SUMMARY_QUOTES):
        errors.append("summary: must not contain quotes")
    lower = path.summary.lower()
    filler = [phrase for phrase in SUMMARY_FILLER if phrase in lower]
    if filler:
        errors.append(f"summary: vague filler ({', '.join(filler)})")
    return errors


def _check_sentences(path: LearningPath, targets: dict[str, Any]) -> list[str]:
    errors = []
    low, high = targets.get("description_sentences", (2, 4))
    count = sentence_count(path.description)
    if not low <= count <= high:
        errors.append(f"description: {count} sentences, expected {low}-{high}")
    low, high = targets.get("feasibility_sentences", (2, 2))
    count = sentence_count(path.feasibility_note)
    if not low <= count <= high:
        errors.append(f"feasibility_note: {count} sentences, expected {low}" + (f"-{high}" if high != low else ""))
    return errors


def _check_duplicates(path: LearningPath, stubs: list[MissionStub]) -> list[str]:
    errors = []
    path_summary = normalize_for_comparison(strip_marker(path.summary))
    seen_summaries: dict[str, str] = {}
    seen_angles: dict[str, str] = {}
    for stub in stubs:
        summary = normalize_for_comparison(stub.summary)
        angle = normalize_for_comparison(stub.unique_angle)
        if summary == path_summary:
            errors.append(f"{stub.id}: summary repeats the path summary")
        if summary in seen_summaries:
            errors.append(f"{stub.id}: summary duplicates {seen_summaries[summary]}")
        else:
            seen_summaries[summary] = stub.id
        if angle in seen_angles:
            errors.append(f"{stub.id}: unique_angle duplicates {seen_angles[angle]}")
        else:
            seen_angles[angle] = stub.id
    return errors


def _check_competencies(path: LearningPath, stubs: list[MissionStub]) -> list[str]:
    declared = {competency.id for competency in path.competencies}
    return [
        f"{stub.id}: unknown competency {stub.competency_id}"
        for stub in stubs
        if stub.competency_id not in declared
    ]


def _check_mission_ids(path: LearningPath, stubs: list[MissionStub]) -> list[str]:
    steps = list(path.iter_steps())
    if len(steps) != len(stubs):
        return [f"count mismatch: {len(steps)} steps, {len(stubs)} mission stubs"]

    errors = []
    stub_ids = [stub.id for stub in stubs]
    duplicated = sorted({stub_id for stub_id in stub_ids if stub_ids.count(stub_id) > 1})
    if duplicated:
        errors.append(f"duplicate stub ids: {', '.join(duplicated)}")
    by_id = {stub.id: stub for stub in stubs}
    for step in steps:
        stub = by_id.get(step.mission_id)
        if stub is None:
            errors.append(f"{step.id}: no stub for mission {step.mission_id}")
        elif stub.step_id != step.id:
            errors.append(f"{stub.id}: step_id {stub.step_id} does not match step {step.id}")
    mission_ids = {step.mission_id for step in steps}
    errors.extend(f"{stub_id}: stub has no step" for stub_id in stub_ids if stub_id not in mission_ids)
    return errors


def _check_structure(path: LearningPath, targets: dict[str, Any]) -> list[str]:
    errors = []
    expected_levels = targets.get("levels")
    if expected_levels is not None and len(path.levels) != expected_levels:
        errors.append(f"levels: {len(path.levels)}, expected {expected_levels}")
    low = targets.get("min_steps_per_level", 4)
    high = targets.get("max_steps_per_level", 5)
    for level in path.levels:
        if not low <= len(level.steps) <= high:
            errors.append(f"{level.id}: {len(level.steps)} steps, expected {low}-{high}")
    if path.validation_mode == ValidationMode.PRESENCE and path.gating_mode != GatingMode.NONE:
        errors.append("gating_mode: presence validation requires gating none")
    if path.ritual_mode == RitualMode.PRACTICE and path.gating_mode == GatingMode.STRICT:
        errors.append("gating_mode: practice rituals cannot use strict gating")
    return errors


def _effort_warnings(path: LearningPath, stubs: list[MissionStub], playbook: DomainPlaybook | None) -> list[str]:
    if playbook is None:
        return []
    allowed = set(playbook.allowed_effort_types)
    warnings = [
        f"{step.id}: effort_type {step.effort_type.value} outside playbook {playbook.id}"
        for step in path.iter_steps()
        if step.effort_type not in allowed
    ]
    warnings.extend(
        f"{stub.id}: effort_type {stub.effort_type.value} outside playbook {playbook.id}"
        for stub in stubs
        if stub.effort_type not in allowed
    )
    return warnings


# =============================================================================
# ENTRY POINT
# =============================================================================

def validate_plan(
    payload: dict[str, Any],
    targets: dict[str, Any],
    playbook: DomainPlaybook | None = None,
) -> PlanValidationResult:
    """
    Validate a normalized plan payload.

    Returns:
        PlanValidationResult: ok with the parsed path and stubs, or the
        first failing layer's reason code and errors
    """
    path, stubs, errors = _check_schema(payload)
    if errors or path is None:
        return _fail("schema_invalid", errors or ["path: invalid"])

    layers = [
        ("invalid_summary", lambda: _check_summary(path)),
        ("invalid_sentence_count", lambda: _check_sentences(path, targets)),
        ("duplicate_content", lambda: _check_duplicates(path, stubs)),
        ("unknown_competency", lambda: _check_competencies(path, stubs)),
        ("invalid_mission_stubs", lambda: _check_mission_ids(path, stubs)),
        ("invalid_structure", lambda: _check_structure(path, targets)),
    ]
    for reason_code, check in layers:
        errors = check()
        if errors:
            return _fail(reason_code, errors, path=path, stubs=stubs)

    warnings = _effort_warnings(path, stubs, playbook)
    if warnings:
        logger.warning(f"Plan has {len(warnings)} effort types outside the playbook")
    return PlanValidationResult(ok=True, path=path, stubs=stubs, warnings=warnings)
