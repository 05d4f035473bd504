"""
Safety Gate (lexicon layer)

Fast keyword/pattern check run on every intent. Blocks disallowed content,
routes non-goals and vague wishes to clarification, and returns a cleaned
intent (insult tokens stripped) when the goal is safe.

The assisted layer (src/gates/lexicon_guard.py) only runs when this layer
returns ok.
"""

import logging
import re

from config.pipeline_thresholds import INPUT_LIMITS
from src.gates import patterns
from src.schemas.base import GateStatus
from src.schemas.intent import GateChoice, GateVerdict

logger = logging.getLogger(__name__)

GATE_NAME = "safety_lexicon"

# =============================================================================
# BLOCK PATTERNS
# =============================================================================

_I = re.IGNORECASE

SELF_HARM_PATTERNS = [
    re.compile(r"suicid", _I),
    re.compile(r"self[-\s]?harm", _I),
    re.compile(r"kill myself", _I),
    re.compile(r"me tuer\b|me suicider", _I),
]

VIOLENCE_PATTERNS = [
    re.compile(rf"\b{word}\b", _I)
    for word in (
        "tuer", "assassiner", "massacrer", "buter", "égorger", "poignarder", "abattre",
        "exterminer", "faire exploser", "attentat", "kill", "murder", "shoot", "stab",
        "massacre", "explosion", "assassinate",
    )
]

VIOLENCE_TARGET_PATTERNS = [
    re.compile(rf"\b{phrase}\b", _I)
    for phrase in (
        "tout le monde", "tous", "des gens", "une personne",
        "everyone", "all people", "someone", "a person",
    )
]

ILLEGAL_PATTERNS = [
    re.compile(r"how to hack", _I),
    re.compile(r"\bhack(?!athon)", _I),
    re.compile(r"phish", _I),
    re.compile(r"\bscam", _I),
    re.compile(r"\bsteal", _I),
    re.compile(r"\bfraud", _I),
]

WEAPON_PATTERNS = [
    re.compile(r"weapon", _I),
    re.compile(r"\bguns?\b", _I),
    re.compile(r"\bbombs?\b", _I),
    re.compile(r"\bexplosi", _I),
]

SEXUAL_EXPLICIT_PATTERNS = [
    re.compile(r"porn", _I),
    re.compile(r"\bxxx\b", _I),
    re.compile(r"\bnudes?\b", _I),
]

MINOR_PATTERNS = [
    re.compile(r"\bminors?\b", _I),
    re.compile(r"\bchild", _I),
    re.compile(r"\bkids?\b", _I),
    re.compile(r"\bteens?\b", _I),
]

OTHER_BLOCKED_PATTERNS = [
    re.compile(r"doxx", _I),
    re.compile(r"blackmail", _I),
    re.compile(r"extort", _I),
    re.compile(r"terror", _I),
]

QUICK_CHOICE_LABELS = {
    "organize": "safetyChoiceOrganize",
    "learn_skill": "safetyChoiceGuitar",
    "learn_language": "safetyChoiceEnglish",
    "focus_mind": "safetyChoiceFocus",
}


def _matches(text: str, compiled: list[re.Pattern[str]]) -> bool:
    return any(pattern.search(text) for pattern in compiled)


def build_quick_choices() -> list[GateChoice]:
    """The four fixed quick choices shown with clarification verdicts."""
    return [
        GateChoice(id=choice_id, label_key=label_key, intention="")
        for choice_id, label_key in QUICK_CHOICE_LABELS.items()
    ]


def _clarify(reason_code: str, with_choices: bool = True, **metadata) -> GateVerdict:
    return GateVerdict(
        gate=GATE_NAME,
        status=GateStatus.NEEDS_CLARIFICATION,
        reason_code=reason_code,
        choices=build_quick_choices() if with_choices else [],
        metadata=metadata,
    )


def _blocked(reason_code: str) -> GateVerdict:
    return GateVerdict(gate=GATE_NAME, status=GateStatus.BLOCKED, reason_code=reason_code)


def check_safety_lexicon(text: str, locale: str = "en") -> GateVerdict:
    """
    Run the ordered lexicon rules.

    Returns:
        GateVerdict: blocked (terminal for this text), needs_clarification
        (with quick choices where relevant) or ok/safe_goal with the
        insult-stripped cleaned text.
    """
    raw = patterns.normalize_whitespace(text)
    lower = raw.lower()

    if (
        not raw
        or patterns.is_only_emoji(raw)
        or patterns.is_only_punctuation(raw)
        or patterns.is_greeting_only(raw)
    ):
        return _clarify("not_a_goal")

    if len(raw) > INPUT_LIMITS["max_chars"]:
        return _clarify("too_long", with_choices=False, length=len(raw))

    if _matches(lower, SELF_HARM_PATTERNS):
        return _blocked("self_harm")

    violent = _matches(lower, VIOLENCE_PATTERNS)
    armed = _matches(lower, WEAPON_PATTERNS)
    if violent or (_matches(lower, VIOLENCE_TARGET_PATTERNS) and armed):
        return _blocked("violence")

    if _matches(lower, ILLEGAL_PATTERNS):
        return _blocked("illegal_wrongdoing")

    if _matches(lower, SEXUAL_EXPLICIT_PATTERNS):
        involves_minor = _matches(lower, MINOR_PATTERNS)
        logger.warning(f"Safety: sexual content blocked (minor={involves_minor})")
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.BLOCKED,
            reason_code="sexual_non_goal",
            metadata={"minor": involves_minor},
        )

    if armed:
        return _blocked("violence")

    if _matches(lower, OTHER_BLOCKED_PATTERNS):
        return _blocked("other_blocked")

    has_verb = patterns.has_action_verb(lower)
    insults = patterns.find_insults(raw, locale)
    if insults and not has_verb:
        return _clarify("insult_or_abuse")

    if patterns.has_vague_pattern(lower):
        return _clarify("vague")

    if not has_verb:
        return _clarify("not_a_goal")

    cleaned = patterns.strip_insults(raw, locale) if insults else raw
    return GateVerdict(
        gate=GATE_NAME,
        status=GateStatus.OK,
        reason_code="safe_goal",
        cleaned_text=cleaned or raw,
        metadata={"insults_stripped": len(insults)} if insults else {},
    )
