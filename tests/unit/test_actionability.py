"""
Unit tests for the Actionability Gate.

Tests verify:
1. Rule order (arrow, noise, vague, concrete signals)
2. CJK/Hangul length rules and Latin word rules
3. Verdict mapping with corrective hints
"""

from src.gates.actionability import check_actionability, run_actionability_gate
from src.schemas.base import ActionabilityAction, GateStatus


class TestCheckActionability:
    """Tests for heuristic classification."""

    def test_action_verb_is_actionable(self) -> None:
        result = check_actionability("Learn Spanish vocabulary")
        assert result.action == ActionabilityAction.ACTIONABLE
        assert result.features["has_action_verb"] is True

    def test_refined_choice_is_never_reevaluated(self) -> None:
        result = check_actionability("be happy → 10 min of journaling a day")
        assert result.action == ActionabilityAction.ACTIONABLE
        assert result.reason_code == "refined_choice"

    def test_noise(self) -> None:
        for text in ("", "   ", "🎸🎸", "?!?"):
            result = check_actionability(text)
            assert result.action == ActionabilityAction.NOT_ACTIONABLE_INLINE
            assert result.reason_code == "noise"

    def test_vague_without_verb_is_borderline(self) -> None:
        result = check_actionability("be happy")
        assert result.action == ActionabilityAction.BORDERLINE
        assert result.reason_code == "vague"

    def test_digit_is_concrete(self) -> None:
        assert check_actionability("guitar 15 min").action == ActionabilityAction.ACTIONABLE

    def test_single_term(self) -> None:
        result = check_actionability("piano")
        assert result.action == ActionabilityAction.NOT_ACTIONABLE_INLINE
        assert result.reason_code == "single_term"

    def test_two_words_without_signal_is_borderline(self) -> None:
        result = check_actionability("guitar songs")
        assert result.action == ActionabilityAction.BORDERLINE
        assert result.reason_code == "borderline_actionable"

    def test_skill_keyword_with_three_words(self) -> None:
        assert check_actionability("guitar songs every evening").action == ActionabilityAction.ACTIONABLE


class TestCjkRules:
    """Tests for CJK/Hangul effective-length rules."""

    def test_long_cjk_is_actionable(self) -> None:
        assert check_actionability("我想学习中文口语").action == ActionabilityAction.ACTIONABLE

    def test_medium_cjk_is_borderline(self) -> None:
        assert check_actionability("学中文").action == ActionabilityAction.BORDERLINE

    def test_short_cjk(self) -> None:
        result = check_actionability("学")
        assert result.action == ActionabilityAction.NOT_ACTIONABLE_INLINE
        assert result.reason_code == "too_short_cjk"


class TestVerdict:
    """Tests for verdict mapping."""

    def test_actionable_verdict_carries_cleaned_text(self) -> None:
        verdict = run_actionability_gate("  Learn   Spanish  ")
        assert verdict.status == GateStatus.OK
        assert verdict.cleaned_text == "Learn Spanish"

    def test_inline_verdict_has_single_localized_hint(self) -> None:
        verdict = run_actionability_gate("piano", locale="fr")
        assert verdict.status == GateStatus.NEEDS_CLARIFICATION
        assert len(verdict.choices) == 1
        assert verdict.choices[0].intention == "piano en 14 jours"

    def test_borderline_verdict_adds_suggestions(self) -> None:
        verdict = run_actionability_gate("guitar songs")
        assert verdict.choices[0].id == "hint"
        assert len(verdict.choices) == 4

    def test_noise_has_no_hint(self) -> None:
        verdict = run_actionability_gate("?!")
        assert verdict.choices == []
