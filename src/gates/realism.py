"""
Realism Gate

Flags goals whose level claim, scope or timeframe is implausible for the
declared duration, and offers exactly three deterministic reformulations
(recommended, mini, ambitious). Reformulations are always built from
fixed templates; no free-form rewrite is ever produced.
"""

import logging
import re

from pydantic import BaseModel, Field

from config.pipeline_thresholds import REALISM_THRESHOLDS
from src.gates import patterns
from src.schemas.base import GateStatus, RealismStatus
from src.schemas.intent import GateChoice, GateVerdict

logger = logging.getLogger(__name__)

GATE_NAME = "realism"

# (variant, label_key, days key, template) per language. {base} and {days} are filled in.
CHOICE_TEMPLATES = {
    "en": [
        ("recommended", "realismChoiceRecommended", "recommended_days",
         "{base} → solid foundations + practical usage (10 min/day, {days} days)"),
        ("mini", "realismChoiceMini", "mini_days",
         "{base} → concrete start and a simple routine ({days} days)"),
        ("ambitious", "realismChoiceAmbitious", "ambitious_days",
         "{base} → strong routine + measurable goals (10 min/day, {days} days)"),
    ],
    "fr": [
        ("recommended", "realismChoiceRecommended", "recommended_days",
         "{base} → bases solides + usage concret (10 min/jour, {days} jours)"),
        ("mini", "realismChoiceMini", "mini_days",
         "{base} → démarrage concret et routine simple ({days} jours)"),
        ("ambitious", "realismChoiceAmbitious", "ambitious_days",
         "{base} → routine solide + objectifs mesurables (10 min/jour, {days} jours)"),
    ],
}


def _template_matcher(template: str) -> re.Pattern[str]:
    refined = template.split("→", 1)[1].strip()
    escaped = re.escape(refined).replace(re.escape("{days}"), r"\d{1,3}")
    return re.compile(rf"^{escaped}$", re.IGNORECASE)


_OWN_REFINEMENTS = [
    _template_matcher(template)
    for variants in CHOICE_TEMPLATES.values()
    for _, _, _, template in variants
]


class RealismResult(BaseModel):
    status: RealismStatus
    reason_code: str | None = None
    choices: list[GateChoice] = Field(default_factory=list)
    cleaned_text: str | None = None
    days_used: int | None = None

    def to_verdict(self) -> GateVerdict:
        if self.status == RealismStatus.OK:
            return GateVerdict(
                gate=GATE_NAME,
                status=GateStatus.OK,
                reason_code="realistic",
                cleaned_text=self.cleaned_text,
                metadata={"days_used": self.days_used},
            )
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.NEEDS_CLARIFICATION,
            reason_code=self.reason_code or "unrealistic_unknown",
            choices=self.choices,
            metadata={"realism_status": self.status.value, "days_used": self.days_used},
        )


def is_own_refinement(refined: str) -> bool:
    """True when the refined part is one of our reformulation templates."""
    return any(matcher.match(refined.strip()) for matcher in _OWN_REFINEMENTS)


def build_choices(base_goal: str, locale: str = "en") -> list[GateChoice]:
    """Exactly three template reformulations: recommended, mini, ambitious."""
    lang = "fr" if (locale or "").lower().startswith("fr") else "en"
    choices = []
    for variant, label_key, days_key, template in CHOICE_TEMPLATES[lang]:
        days = REALISM_THRESHOLDS[days_key]
        choices.append(
            GateChoice(
                id=f"realism_{variant}",
                label_key=label_key,
                intention=template.format(base=base_goal, days=days),
                params={"days": days, "variant": variant},
            )
        )
    return choices


def _evaluate(claim: str, days: int | None) -> str | None:
    """Reason code for the first rule that fires, or None."""
    lower = claim.lower()
    window = REALISM_THRESHOLDS["short_window_days"]
    level_claim = patterns.has_level_claim(lower)

    if days and days <= window and level_claim:
        return "unrealistic_level_claim"
    if days and days <= window and patterns.has_extreme_scope(lower):
        return "unrealistic_scope"

    connectors = patterns.count_connectors(lower)
    goal_verb = patterns.has_goal_verb(lower)
    if connectors >= 2 and goal_verb:
        return "unrealistic_scope"
    if connectors >= 1 and goal_verb and days and days <= window:
        return "unrealistic_scope"

    if days:
        if (
            patterns.mentions_any(lower, patterns.LANGUAGE_KEYWORDS)
            and level_claim
            and days < REALISM_THRESHOLDS["language_claim_min_days"]
        ):
            return "unrealistic_timeframe"
        if (
            patterns.mentions_any(lower, patterns.INSTRUMENT_KEYWORDS)
            and level_claim
            and days < REALISM_THRESHOLDS["instrument_claim_min_days"]
        ):
            return "unrealistic_level_claim"
        if (
            patterns.mentions_any(lower, patterns.ENDURANCE_SPORT_KEYWORDS)
            and days < REALISM_THRESHOLDS["endurance_sport_min_days"]
        ):
            return "unrealistic_timeframe"
    return None


def check_realism(text: str, days: int | None = None, locale: str = "en") -> RealismResult:
    """
    Evaluate the realism of a goal.

    For 'base → refined' input, a refined part built from our own
    templates passes through unchanged; any other refined part is
    evaluated on its own, with the pre-arrow part as the base goal.
    A timeframe written in the claim itself ("in 7 days") takes
    precedence over the declared duration.
    """
    raw = patterns.normalize_whitespace(text)
    if not raw:
        return RealismResult(status=RealismStatus.OK, cleaned_text=raw)

    base_goal, refined = patterns.split_arrow(raw)
    if refined and is_own_refinement(refined):
        return RealismResult(status=RealismStatus.OK, cleaned_text=raw, days_used=days)

    claim = refined or raw
    base_goal = base_goal or raw
    effective_days = patterns.extract_timeframe_days(claim) or days

    reason = _evaluate(claim, effective_days)
    if reason is None:
        return RealismResult(status=RealismStatus.OK, cleaned_text=raw, days_used=effective_days)

    logger.info(f"Realism: {reason} (days={effective_days})")
    return RealismResult(
        status=RealismStatus.NEEDS_REFORMULATION,
        reason_code=reason,
        choices=build_choices(base_goal, locale),
        days_used=effective_days,
    )


def run_realism_gate(text: str, days: int | None = None, locale: str = "en") -> GateVerdict:
    return check_realism(text, days, locale).to_verdict()
