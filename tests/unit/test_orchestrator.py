"""
Unit tests for the Decision Orchestrator.

Tests verify:
1. Request validation before any gate runs
2. Proceed / clarify / blocked branches end to end
3. Full trace: every gate appears once, in pipeline order
"""

import pytest

from src.gates.lexicon_guard import LexiconGuard
from src.orchestrator.decision import DecisionOrchestrator, run_decision, validate_request
from src.orchestrator.state import GATE_ORDER
from src.schemas.base import DecisionBranch, DomainSource, TraceOutcome, ValidationMode
from src.utils.errors import InputError


class BrokenGuard(LexiconGuard):
    def check(self, text: str, locale: str = "en"):
        raise RuntimeError("ruleset exploded")


@pytest.fixture
def orchestrator(registry) -> DecisionOrchestrator:
    return DecisionOrchestrator(registry=registry)


class TestValidateRequest:
    """Tests for request validation."""

    def test_defaults_locale(self) -> None:
        assert validate_request("Learn Python", 14, "") == ("Learn Python", 14, "en")

    def test_days_optional(self) -> None:
        assert validate_request("Learn Python", None, "fr-FR")[1] is None

    @pytest.mark.parametrize("days", [0, 366, "14", True, 2.5])
    def test_invalid_days(self, days) -> None:
        with pytest.raises(InputError) as exc_info:
            validate_request("Learn Python", days, "en")
        assert exc_info.value.field == "days"

    def test_invalid_text(self) -> None:
        with pytest.raises(InputError):
            validate_request(None, 14, "en")

    def test_invalid_locale(self) -> None:
        with pytest.raises(InputError):
            validate_request("Learn Python", 14, "not a locale")


class TestResolve:
    """End-to-end runs through the compiled graph."""

    def test_scenario_c_spanish_vocabulary_proceeds(self, orchestrator) -> None:
        result = orchestrator.resolve("Improve my Spanish vocabulary", days=14)

        assert result.branch == DecisionBranch.PROCEED
        assert result.domain.domain_id == "language"
        assert result.domain.source == DomainSource.HINT
        assert result.hints.validation_preference == ValidationMode.AUTOMATIC
        assert result.payload["goal"] == "Improve my Spanish vocabulary"
        assert result.payload["domain_lock"]["domain_id"] == "language"

    def test_trace_is_complete_and_ordered(self, orchestrator) -> None:
        result = orchestrator.resolve("Improve my Spanish vocabulary", days=14)
        assert [event.gate_name for event in result.trace] == list(GATE_ORDER)
        controllability = result.trace[GATE_ORDER.index("controllability")]
        assert controllability.outcome == TraceOutcome.SKIPPED
        assert controllability.reason_code == "not_required"

    def test_blocked(self, orchestrator) -> None:
        result = orchestrator.resolve("learn to shoot someone", days=14)

        assert result.branch == DecisionBranch.BLOCKED
        assert result.reason_code == "violence"
        assert result.gate == "safety_lexicon"
        assert [event.gate_name for event in result.trace] == list(GATE_ORDER)
        assert result.trace[-1].metadata["halted_by"] == "safety_lexicon"

    def test_too_long_traces_every_gate_as_skipped(self, orchestrator) -> None:
        result = orchestrator.resolve("learn " * 70, days=14)

        assert result.branch == DecisionBranch.CLARIFY
        assert result.reason_code == "too_long"
        assert result.gate == "input"
        assert len(result.trace) == len(GATE_ORDER)
        assert all(event.outcome == TraceOutcome.SKIPPED for event in result.trace)
        assert all(event.metadata["halted_by"] == "input" for event in result.trace)

    def test_realism_clarifies(self, orchestrator) -> None:
        result = orchestrator.resolve("Learn guitar basics → become world-famous in 7 days", days=14)
        # A refined choice is actionable; realism evaluates the refined part
        assert result.branch == DecisionBranch.CLARIFY
        assert result.gate == "realism"
        assert len(result.choices) == 3

    def test_controllability_clarifies(self, orchestrator) -> None:
        result = orchestrator.resolve("Learn to make my ex love me again", days=30)
        assert result.branch == DecisionBranch.CLARIFY
        assert result.reason_code == "external_outcome"

    def test_forced_controllability_check_is_traced(self, orchestrator) -> None:
        result = orchestrator.resolve("Learn Python", days=14, check_controllability=True)
        controllability = result.trace[GATE_ORDER.index("controllability")]
        assert controllability.outcome == TraceOutcome.OK
        assert controllability.reason_code == "controlled"

    def test_guard_failure_does_not_block(self, registry) -> None:
        orchestrator = DecisionOrchestrator(registry=registry, guard=BrokenGuard())
        result = orchestrator.resolve("Improve my Spanish vocabulary", days=14)

        assert result.branch == DecisionBranch.PROCEED
        assisted = result.trace[GATE_ORDER.index("safety_assisted")]
        assert assisted.reason_code == "degraded"

    def test_invalid_request_raises_before_gates(self, orchestrator) -> None:
        with pytest.raises(InputError):
            orchestrator.resolve("Learn Python", days=0)


class TestRunDecision:
    """Tests for the async entry point."""

    @pytest.mark.asyncio
    async def test_run_decision(self, orchestrator) -> None:
        result = await run_decision(orchestrator, "Improve my Spanish vocabulary", 14)
        assert result.should_proceed
