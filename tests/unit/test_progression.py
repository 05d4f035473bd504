"""
Unit tests for the progression state machine.

Tests verify:
1. Initial availability and level states
2. Gating policy (strict vs soft)
3. Outcome transitions, remediation and the failure limit
4. Monotonic transitions
"""

from datetime import datetime, timedelta

import pytest

from src.progression import machine
from src.progression.events import build_progress_event
from src.schemas.base import GatingMode, LevelState, StepState
from src.utils.errors import StepNotSelectableError

NOW = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def path(generated_plan):
    return generated_plan.path


@pytest.fixture
def strict_path(generated_plan):
    return generated_plan.path.model_copy(update={"gating_mode": GatingMode.STRICT})


def _event(step_id: str, outcome: str, created_at: datetime = NOW):
    return build_progress_event(
        ritual_id="r1",
        mission_id=f"m{step_id[1]}_{step_id[3]}",
        step_id=step_id,
        outcome=outcome,
        created_at=created_at,
    )


def _apply(state, path, *outcomes):
    for step_id, outcome in outcomes:
        state = machine.record_outcome(state, path, _event(step_id, outcome))
    return state


class TestInitialize:
    """Tests for the fresh state."""

    def test_only_first_step_available(self, path) -> None:
        state = machine.initialize(path, "r1", NOW)
        assert state.state_of("l1s1") == StepState.AVAILABLE
        assert state.state_of("l1s2") == StepState.LOCKED
        assert state.state_of("l2s1") == StepState.LOCKED
        assert state.levels == {"l1": LevelState.AVAILABLE, "l2": LevelState.LOCKED}
        assert state.current_step_id == "l1s1"
        assert state.gating_mode == GatingMode.SOFT

    def test_recompute_is_pure(self, path) -> None:
        state = machine.initialize(path, "r1", NOW)
        recomputed = machine.recompute(state, path, NOW)
        assert recomputed is not state
        assert recomputed.steps == state.steps


class TestGating:
    """Tests for the selection policy."""

    def test_strict_only_unlocked_steps(self, strict_path) -> None:
        state = machine.initialize(strict_path, "r1", NOW)
        assert machine.selectable_steps(state, strict_path) == ["l1s1"]
        with pytest.raises(StepNotSelectableError) as exc_info:
            machine.open_step(state, strict_path, "l1s3")
        assert exc_info.value.state == "locked"

    def test_soft_any_step(self, path) -> None:
        state = machine.initialize(path, "r1", NOW)
        assert len(machine.selectable_steps(state, path)) == path.step_count()
        opened = machine.open_step(state, path, "l2s3", NOW)
        assert opened.state_of("l2s3") == StepState.IN_PROGRESS
        assert opened.steps["l2s3"].attempts == 1

    def test_unknown_step(self, path) -> None:
        state = machine.initialize(path, "r1", NOW)
        assert not machine.can_open_step(state, path, "l9s9")
        with pytest.raises(StepNotSelectableError):
            machine.record_outcome(state, path, _event("l9s9", "success"))

    def test_strict_completed_step_stays_selectable(self, strict_path) -> None:
        state = _apply(machine.initialize(strict_path, "r1", NOW), strict_path, ("l1s1", "success"))
        assert machine.selectable_steps(state, strict_path) == ["l1s1", "l1s2"]


class TestOutcomes:
    """Tests for outcome transitions."""

    def test_success_unlocks_next(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "success"))
        assert state.state_of("l1s1") == StepState.COMPLETED
        assert state.state_of("l1s2") == StepState.AVAILABLE
        assert state.current_step_id == "l1s2"

    def test_skip_is_non_blocking(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "skipped"))
        assert state.state_of("l1s1") == StepState.SKIPPED
        assert state.state_of("l1s2") == StepState.AVAILABLE

    def test_level_completion_unlocks_next_level(self, path) -> None:
        outcomes = [(f"l1s{index}", "success") for index in range(1, 5)]
        state = _apply(machine.initialize(path, "r1", NOW), path, *outcomes)
        assert state.levels["l1"] == LevelState.COMPLETED
        assert state.state_of("l2s1") == StepState.AVAILABLE
        assert state.levels["l2"] == LevelState.AVAILABLE

    def test_fail_offers_remediation(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "fail"))
        progress = state.steps["l1s1"]
        assert progress.state == StepState.IN_PROGRESS
        assert progress.failures == 1
        assert progress.remediation.eligible_at == NOW + timedelta(days=1)
        assert progress.remediation.options == ["retry", "remedial_mission"]
        assert machine.needs_remediation(state, "l1s1")
        assert state.state_of("l1s2") == StepState.LOCKED

    def test_partial_counts_as_failure(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "partial"), ("l1s1", "fail"))
        assert state.steps["l1s1"].failures == 2
        assert state.steps["l1s1"].attempts == 1

    def test_failure_limit(self, path) -> None:
        state = _apply(
            machine.initialize(path, "r1", NOW), path,
            ("l1s1", "fail"), ("l1s1", "partial"), ("l1s1", "fail"),
        )
        assert state.state_of("l1s1") == StepState.FAILED
        assert not machine.needs_remediation(state, "l1s1")
        # A failed step never unlocks its successors
        assert state.state_of("l1s2") == StepState.LOCKED

    def test_success_after_fail_clears_remediation(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "fail"), ("l1s1", "success"))
        assert state.state_of("l1s1") == StepState.COMPLETED
        assert state.steps["l1s1"].remediation is None


class TestMonotonicity:
    """Terminal states never regress."""

    def test_outcome_on_terminal_step_ignored(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "success"), ("l1s1", "fail"))
        assert state.state_of("l1s1") == StepState.COMPLETED
        assert state.steps["l1s1"].failures == 0

    def test_open_terminal_step_is_noop(self, path) -> None:
        state = _apply(machine.initialize(path, "r1", NOW), path, ("l1s1", "success"))
        assert machine.open_step(state, path, "l1s1") is state

    def test_open_is_idempotent(self, path) -> None:
        opened = machine.open_step(machine.initialize(path, "r1", NOW), path, "l1s1", NOW)
        assert machine.open_step(opened, path, "l1s1") is opened

    def test_complete_run(self, path) -> None:
        outcomes = [(step.id, "success") for step in path.iter_steps()]
        state = _apply(machine.initialize(path, "r1", NOW), path, *outcomes)
        assert state.is_complete
        assert state.current_step_id is None
        assert machine.next_available_step(state, path) is None
