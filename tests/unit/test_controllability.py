"""
Unit tests for the Controllability Check.

Tests verify:
1. Heuristic markers (external, partially external)
2. Generator consultation on outcome-dependency words
3. Degraded verdicts on generator failure
"""

from src.gates.controllability import ControllabilityChecker, detect_marker, has_outcome_dependency
from src.schemas.base import ControllabilityLevel, GateStatus
from src.utils.errors import ContentGeneratorError
from src.utils.llm_client import ContentTask


class TestMarkers:
    """Tests for heuristic detection."""

    def test_external_marker(self) -> None:
        level, marker = detect_marker("make my ex love me again")
        assert level == ControllabilityLevel.EXTERNAL
        assert marker == "make someone"

    def test_partially_external_marker(self) -> None:
        level, marker = detect_marker("get hired at a big company")
        assert level == ControllabilityLevel.PARTIALLY_EXTERNAL
        assert marker == "get hired"

    def test_controlled(self) -> None:
        assert detect_marker("Learn Python") == (ControllabilityLevel.CONTROLLED, None)
        assert not ControllabilityChecker.is_required("Learn Python")

    def test_outcome_dependency_requires_check(self) -> None:
        text = "get accepted into a master program"
        assert detect_marker(text)[0] == ControllabilityLevel.CONTROLLED
        assert has_outcome_dependency(text)
        assert ControllabilityChecker.is_required(text)


class TestHeuristicVerdicts:
    """Tests for verdicts decided without the generator."""

    def test_external_needs_reframe(self) -> None:
        verdict = ControllabilityChecker().check("force my boss to promote me")
        assert verdict.status == GateStatus.NEEDS_CLARIFICATION
        assert verdict.reason_code == "external_outcome"
        assert [choice.id for choice in verdict.choices] == ["reframe_own_actions", "reframe_wellbeing"]

    def test_partially_external_is_supportive(self) -> None:
        verdict = ControllabilityChecker().check("get hired as a designer")
        assert verdict.status == GateStatus.OK
        assert verdict.reason_code == "partially_external"
        assert verdict.metadata["tone"] == "supportive"

    def test_no_generator_means_controlled(self) -> None:
        verdict = ControllabilityChecker().check("get accepted into a master program")
        assert verdict.reason_code == "controlled"


class TestGeneratorVerdicts:
    """Tests for the generator-backed path."""

    def test_low_level_reframes_with_generator_angles(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CONTROLLABILITY, {
            "level": "low",
            "reason_code": "depends_on_committee",
            "confidence": 0.8,
            "rewritten_intent": "Prepare a strong application in 30 days",
            "angles": [{"label": "Portfolio", "intent": "Build a portfolio", "days": 30}, "not an angle"],
        })
        verdict = ControllabilityChecker(scripted_provider).check("get accepted into a master program", days=30)
        assert verdict.status == GateStatus.NEEDS_CLARIFICATION
        assert [choice.intention for choice in verdict.choices] == [
            "Prepare a strong application in 30 days",
            "Build a portfolio",
        ]
        assert verdict.metadata["source"] == "llm"

    def test_medium_level_is_supportive(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CONTROLLABILITY, {"level": "medium", "reason_code": "mixed", "confidence": 0.5})
        verdict = ControllabilityChecker(scripted_provider).check("get a promotion this year")
        assert verdict.reason_code == "partially_external"

    def test_generator_error_degrades(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CONTROLLABILITY, ContentGeneratorError("scripted", "timeout"))
        verdict = ControllabilityChecker(scripted_provider).check("get accepted into a master program")
        assert verdict.status == GateStatus.OK
        assert verdict.reason_code == "controllability_degraded"
        assert verdict.metadata["degraded"] is True

    def test_malformed_response_degrades(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CONTROLLABILITY, {"level": "maybe"})
        verdict = ControllabilityChecker(scripted_provider).check("get accepted into a master program")
        assert verdict.reason_code == "controllability_degraded"

    def test_controlled_text_skips_generator(self, scripted_provider) -> None:
        ControllabilityChecker(scripted_provider).check("Learn Python")
        assert scripted_provider.calls == []
