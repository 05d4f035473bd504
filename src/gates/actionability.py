"""
Actionability Gate

Heuristic-only check that a goal is concrete enough to plan from. No
model call is ever made here. Rules are evaluated in a fixed order; the
first that applies decides.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from src.domains.suggestions import build_clarification_suggestions
from src.gates import patterns
from src.schemas.base import ActionabilityAction, GateStatus
from src.schemas.intent import GateChoice, GateVerdict

logger = logging.getLogger(__name__)

GATE_NAME = "actionability"

_SUGGESTION_TEMPLATES = {
    "en": "{intent} in 14 days",
    "fr": "{intent} en 14 jours",
    "es": "{intent} en 14 días",
    "de": "{intent} in 14 Tagen",
    "it": "{intent} in 14 giorni",
}


class ActionabilityResult(BaseModel):
    action: ActionabilityAction
    reason_code: str
    features: dict[str, Any] = Field(default_factory=dict)

    def to_verdict(self, text: str, locale: str = "en") -> GateVerdict:
        """
        Map to a gate verdict.

        not_actionable_inline carries one corrective hint; borderline
        carries an explanatory hint plus the reformulation paths.
        """
        if self.action == ActionabilityAction.ACTIONABLE:
            return GateVerdict(
                gate=GATE_NAME,
                status=GateStatus.OK,
                reason_code=self.reason_code,
                cleaned_text=patterns.normalize_whitespace(text),
                metadata={"features": self.features},
            )
        hint = _corrective_hint(text, locale)
        choices = [hint] if hint else []
        if self.action == ActionabilityAction.BORDERLINE:
            choices.extend(build_clarification_suggestions(text)[:3])
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.NEEDS_CLARIFICATION,
            reason_code=self.reason_code,
            choices=choices,
            metadata={"action": self.action.value, "features": self.features},
        )


def _corrective_hint(text: str, locale: str) -> GateChoice | None:
    intent = patterns.normalize_whitespace(text)
    if not intent or patterns.is_only_punctuation(intent):
        return None
    lang = (locale or "en").split("-")[0].lower()
    template = _SUGGESTION_TEMPLATES.get(lang, _SUGGESTION_TEMPLATES["en"])
    return GateChoice(
        id="hint",
        label_key="actionabilityHintExample",
        intention=template.format(intent=intent),
        params={"lang": lang},
    )


def _features(text: str) -> dict[str, Any]:
    stats = patterns.script_stats(text)
    return {
        "char_count_effective": len(patterns.effective_chars(text)),
        "has_digit": any(ch.isdigit() for ch in text),
        "has_cefr": patterns.has_language_level(text),
        "has_structure": patterns.has_structure(text),
        "has_action_verb": patterns.has_action_verb(text),
        "word_count": patterns.word_count(text),
        "dominant_script": stats["dominant_script"],
    }


def check_actionability(text: str) -> ActionabilityResult:
    """
    Classify a goal as actionable, borderline or not actionable.

    Order: arrow, noise, vague-without-verb, concrete signals,
    CJK/Hangul length rules, Latin word rules.
    """
    normalized = patterns.normalize_whitespace(text)

    # A refined choice was already accepted upstream; never re-evaluate the base part.
    if patterns.has_arrow(normalized):
        return ActionabilityResult(action=ActionabilityAction.ACTIONABLE, reason_code="refined_choice")

    if not normalized or patterns.is_only_emoji(normalized) or patterns.is_only_punctuation(normalized):
        return ActionabilityResult(action=ActionabilityAction.NOT_ACTIONABLE_INLINE, reason_code="noise")

    features = _features(normalized)

    if patterns.has_vague_pattern(normalized) and not features["has_action_verb"]:
        return ActionabilityResult(action=ActionabilityAction.BORDERLINE, reason_code="vague", features=features)

    if features["has_action_verb"] or features["has_digit"] or features["has_cefr"] or features["has_structure"]:
        return ActionabilityResult(action=ActionabilityAction.ACTIONABLE, reason_code="actionable", features=features)

    effective = features["char_count_effective"]
    if features["dominant_script"] in ("cjk", "hangul"):
        if effective >= 6:
            return ActionabilityResult(action=ActionabilityAction.ACTIONABLE, reason_code="actionable", features=features)
        if effective <= 2:
            return ActionabilityResult(
                action=ActionabilityAction.NOT_ACTIONABLE_INLINE, reason_code="too_short_cjk", features=features
            )
        return ActionabilityResult(
            action=ActionabilityAction.BORDERLINE, reason_code="borderline_actionable", features=features
        )

    words = features["word_count"]
    if words <= 1:
        return ActionabilityResult(
            action=ActionabilityAction.NOT_ACTIONABLE_INLINE, reason_code="single_term", features=features
        )
    if (words >= 3 and patterns.has_skill_keyword(normalized)) or effective >= 24:
        return ActionabilityResult(action=ActionabilityAction.ACTIONABLE, reason_code="actionable", features=features)
    return ActionabilityResult(
        action=ActionabilityAction.BORDERLINE, reason_code="borderline_actionable", features=features
    )


def run_actionability_gate(text: str, locale: str = "en") -> GateVerdict:
    result = check_actionability(text)
    logger.info(f"Actionability: {result.action.value} ({result.reason_code})")
    return result.to_verdict(text, locale)
