"""
Progression State Machine

Pure functions over (ProgressionState, LearningPath). Every mutation
returns a new state produced by recompute(); step states are never
patched in place by callers.

Step lifecycle:
    locked → available → in_progress → completed | skipped | failed

- A step is available once every required predecessor in its level and
  every required step of earlier levels is completed or skipped.
- fail / partial keep the step in_progress with a remediation plan;
  the configured number of failures makes it failed.
- Transitions are monotonic. The only reset is initialize() on a fresh
  path.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from config.pipeline_thresholds import PROGRESSION
from src.schemas.base import GatingMode, LevelState, ProgressOutcome, StepState
from src.schemas.path import LearningPath
from src.schemas.progress import ProgressEvent, ProgressionState, RemediationPlan, StepProgress
from src.utils.errors import StepNotSelectableError

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset({StepState.COMPLETED, StepState.SKIPPED, StepState.FAILED})
RESOLVED_STATES = frozenset({StepState.COMPLETED, StepState.SKIPPED})
STRICT_SELECTABLE = frozenset({StepState.AVAILABLE, StepState.IN_PROGRESS, StepState.COMPLETED})


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.utcnow()


# =============================================================================
# CONSTRUCTION & RECOMPUTE
# =============================================================================

def initialize(path: LearningPath, ritual_id: str, now: Optional[datetime] = None) -> ProgressionState:
    """Fresh state for a path: everything locked, then recomputed."""
    steps = {
        step.id: StepProgress(step_id=step.id, level_id=level.id, mission_id=step.mission_id)
        for level in path.levels
        for step in level.steps
    }
    state = ProgressionState(
        ritual_id=ritual_id,
        gating_mode=path.gating_mode,
        steps=steps,
        updated_at=_now(now),
    )
    return recompute(state, path, now)


def _level_state(progress: list[StepProgress]) -> LevelState:
    states = [entry.state for entry in progress]
    if states and all(state in RESOLVED_STATES for state in states):
        return LevelState.COMPLETED
    if any(state == StepState.IN_PROGRESS or state in TERMINAL_STATES for state in states):
        return LevelState.IN_PROGRESS
    if any(state == StepState.AVAILABLE for state in states):
        return LevelState.AVAILABLE
    return LevelState.LOCKED


def recompute(state: ProgressionState, path: LearningPath, now: Optional[datetime] = None) -> ProgressionState:
    """
    Derive availability, level states and the current step.

    Pure: returns a new state. Steps that are in_progress or terminal
    keep their state; locked steps whose prerequisites are resolved
    become available.
    """
    new_state = state.model_copy(deep=True)
    earlier_levels_resolved = True

    for level in path.levels:
        predecessors_resolved = earlier_levels_resolved
        for step in level.steps:
            progress = new_state.steps.get(step.id)
            if progress is None:
                progress = StepProgress(step_id=step.id, level_id=level.id, mission_id=step.mission_id)
                new_state.steps[step.id] = progress
            if progress.state == StepState.LOCKED and predecessors_resolved:
                progress.state = StepState.AVAILABLE
            if step.required and progress.state not in RESOLVED_STATES:
                predecessors_resolved = False
        earlier_levels_resolved = predecessors_resolved

    new_state.levels = {
        level.id: _level_state([new_state.steps[step.id] for step in level.steps])
        for level in path.levels
    }
    new_state.current_step_id = _current_step(new_state, path)
    new_state.updated_at = _now(now)
    return new_state


def _current_step(state: ProgressionState, path: LearningPath) -> str | None:
    for wanted in (StepState.IN_PROGRESS, StepState.AVAILABLE):
        for step in path.iter_steps():
            if state.steps[step.id].state == wanted:
                return step.id
    return None


# =============================================================================
# SELECTION
# =============================================================================

def can_open_step(state: ProgressionState, path: LearningPath, step_id: str) -> bool:
    """
    Gating policy. strict: available, in_progress and completed steps;
    soft / none: any step of the path.
    """
    progress = state.steps.get(step_id)
    if progress is None or path.find_step(step_id) is None:
        return False
    if state.gating_mode == GatingMode.STRICT:
        return progress.state in STRICT_SELECTABLE
    return True


def selectable_steps(state: ProgressionState, path: LearningPath) -> list[str]:
    return [step.id for step in path.iter_steps() if can_open_step(state, path, step.id)]


def next_available_step(state: ProgressionState, path: LearningPath) -> str | None:
    """First in_progress step, else first available step, in path order."""
    return _current_step(state, path)


def level_states(state: ProgressionState) -> dict[str, LevelState]:
    return dict(state.levels)


# =============================================================================
# TRANSITIONS
# =============================================================================

def _require_selectable(state: ProgressionState, path: LearningPath, step_id: str) -> StepProgress:
    progress = state.steps.get(step_id)
    if progress is None or path.find_step(step_id) is None:
        raise StepNotSelectableError(step_id, "unknown", state.gating_mode.value)
    if not can_open_step(state, path, step_id):
        raise StepNotSelectableError(step_id, progress.state.value, state.gating_mode.value)
    return progress


def open_step(
    state: ProgressionState,
    path: LearningPath,
    step_id: str,
    now: Optional[datetime] = None,
) -> ProgressionState:
    """
    Move a step to in_progress.

    Idempotent for in_progress steps; opening a terminal step (review)
    leaves its state unchanged.

    Raises:
        StepNotSelectableError: the gating mode forbids this step
    """
    progress = _require_selectable(state, path, step_id)
    if progress.state == StepState.IN_PROGRESS or progress.state in TERMINAL_STATES:
        return state

    new_state = state.model_copy(deep=True)
    opened = new_state.steps[step_id]
    opened.state = StepState.IN_PROGRESS
    opened.started_at = _now(now)
    opened.attempts += 1
    logger.info(f"Step {step_id} opened (attempt {opened.attempts})")
    return recompute(new_state, path, now)


def record_outcome(
    state: ProgressionState,
    path: LearningPath,
    event: ProgressEvent,
    now: Optional[datetime] = None,
) -> ProgressionState:
    """
    Apply one progress event.

    - success → completed
    - skipped → skipped (terminal, non-blocking)
    - fail / partial → in_progress with a remediation plan; failed once
      the failure limit is reached

    Events for a step that is already terminal are kept in the log but
    do not change its state.
    """
    progress = _require_selectable(state, path, event.step_id)
    if progress.state in TERMINAL_STATES:
        logger.info(f"Step {event.step_id} already {progress.state.value}; outcome {event.outcome.value} ignored")
        return recompute(state, path, now)

    new_state = state.model_copy(deep=True)
    step = new_state.steps[event.step_id]
    if step.state != StepState.IN_PROGRESS:
        step.attempts += 1
        step.started_at = step.started_at or event.created_at
    step.last_outcome = event.outcome

    if event.outcome == ProgressOutcome.SUCCESS:
        step.state = StepState.COMPLETED
        step.completed_at = event.created_at
        step.remediation = None
    elif event.outcome == ProgressOutcome.SKIPPED:
        step.state = StepState.SKIPPED
        step.completed_at = event.created_at
        step.remediation = None
    else:
        step.failures += 1
        if step.failures >= PROGRESSION["max_failures_before_failed"]:
            step.state = StepState.FAILED
            step.completed_at = event.created_at
            step.remediation = None
        else:
            step.state = StepState.IN_PROGRESS
            step.remediation = RemediationPlan(
                eligible_at=event.created_at + timedelta(days=PROGRESSION["remediation_delay_days"]),
                reason=event.outcome,
            )

    logger.info(f"Step {event.step_id}: {event.outcome.value} → {step.state.value}")
    return recompute(new_state, path, now)


def needs_remediation(state: ProgressionState, step_id: str) -> bool:
    progress = state.steps.get(step_id)
    return bool(progress and progress.state == StepState.IN_PROGRESS and progress.remediation is not None)
