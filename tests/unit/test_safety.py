"""
Unit tests for the Safety Gate (lexicon layer).

Tests verify:
1. Block categories (self-harm, violence, illegal, sexual, weapons)
2. Clarification routing (not a goal, vague, insults, too long)
3. Insult stripping on safe goals
"""

from src.gates.safety import build_quick_choices, check_safety_lexicon
from src.schemas.base import GateStatus


class TestBlocked:
    """Tests for terminal blocks."""

    def test_self_harm(self) -> None:
        verdict = check_safety_lexicon("I want to kill myself")
        assert verdict.status == GateStatus.BLOCKED
        assert verdict.reason_code == "self_harm"

    def test_violence(self) -> None:
        verdict = check_safety_lexicon("learn to shoot someone")
        assert verdict.status == GateStatus.BLOCKED
        assert verdict.reason_code == "violence"

    def test_weapons_alone_are_violence(self) -> None:
        assert check_safety_lexicon("learn about guns").reason_code == "violence"

    def test_illegal(self) -> None:
        verdict = check_safety_lexicon("how to hack my neighbour's wifi")
        assert verdict.reason_code == "illegal_wrongdoing"

    def test_hackathon_is_not_hacking(self) -> None:
        verdict = check_safety_lexicon("Organize a hackathon")
        assert verdict.status == GateStatus.OK

    def test_sexual_content(self) -> None:
        verdict = check_safety_lexicon("watch porn every day")
        assert verdict.status == GateStatus.BLOCKED
        assert verdict.reason_code == "sexual_non_goal"
        assert verdict.metadata["minor"] is False


class TestClarification:
    """Tests for clarification verdicts."""

    def test_scenario_a_vague_french_goal(self) -> None:
        """'réussir ma vie' asks for clarification with the four quick choices."""
        verdict = check_safety_lexicon("réussir ma vie", locale="fr")
        assert verdict.status == GateStatus.NEEDS_CLARIFICATION
        assert verdict.reason_code == "vague"
        assert len(verdict.choices) == 4
        assert [choice.id for choice in verdict.choices] == [choice.id for choice in build_quick_choices()]

    def test_greeting_is_not_a_goal(self) -> None:
        verdict = check_safety_lexicon("hello")
        assert verdict.reason_code == "not_a_goal"
        assert len(verdict.choices) == 4

    def test_no_verb_is_not_a_goal(self) -> None:
        assert check_safety_lexicon("blue sky tomorrow").reason_code == "not_a_goal"

    def test_insult_without_goal(self) -> None:
        verdict = check_safety_lexicon("you idiot")
        assert verdict.status == GateStatus.NEEDS_CLARIFICATION
        assert verdict.reason_code == "insult_or_abuse"

    def test_too_long_has_no_choices(self) -> None:
        verdict = check_safety_lexicon("learn " * 70)
        assert verdict.reason_code == "too_long"
        assert verdict.choices == []


class TestSafeGoal:
    """Tests for ok verdicts."""

    def test_safe_goal(self) -> None:
        verdict = check_safety_lexicon("Learn Python")
        assert verdict.status == GateStatus.OK
        assert verdict.reason_code == "safe_goal"
        assert verdict.cleaned_text == "Learn Python"

    def test_insults_are_stripped(self) -> None:
        verdict = check_safety_lexicon("learn piano you idiot")
        assert verdict.status == GateStatus.OK
        assert verdict.cleaned_text == "learn piano you"
        assert verdict.metadata["insults_stripped"] == 1

    def test_spanish_con_is_kept(self) -> None:
        verdict = check_safety_lexicon("Practicar español con amigos", locale="es")
        assert verdict.status == GateStatus.OK
        assert verdict.cleaned_text == "Practicar español con amigos"
        assert verdict.metadata == {}

    def test_actionable_goal_property(self) -> None:
        """Short goals with an action verb and no flagged pattern pass."""
        for text in ("Learn Spanish vocabulary", "Improve my focus at work", "Practice piano scales", "Write a short story"):
            assert check_safety_lexicon(text).status == GateStatus.OK, text
