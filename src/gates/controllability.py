"""
Controllability Check

Decides whether a goal's outcome is under the learner's control.
Heuristic markers decide directly; the content generator is consulted
only when outcome-dependency words appear but no marker matched.
"""

import logging
import re
from typing import Any, Optional

from src.gates.patterns import normalize_whitespace
from src.schemas.base import ControllabilityLevel, GateStatus
from src.schemas.intent import GateChoice, GateVerdict
from src.utils import settings
from src.utils.errors import ContentGeneratorError
from src.utils.llm_client import ContentRequest, ContentTask, LLMProviderInterface

logger = logging.getLogger(__name__)

GATE_NAME = "controllability"

_I = re.IGNORECASE

EXTERNAL_MARKERS = [
    (re.compile(
        r"\b(make|forcer|forçar|hacer\s+que|make\s+someone)\s+(my\s+ex|him|her|them|someone)\s+"
        r"(love|come\s+back|return)\b", _I), "make someone"),
    (re.compile(r"\b(force|forcer|obliger)\b", _I), "force"),
    (re.compile(r"\b(faire\s+en\s+sorte\s+que|pour\s+qu['’]il|pour\s+qu['’]elle)\b", _I), "faire en sorte"),
]

PARTIALLY_EXTERNAL_MARKERS = [
    (re.compile(r"\b(get|récupérer|recover|reconquérir)\s+(my\s+ex|him|her|back)\b", _I), "get ex back"),
    (re.compile(r"\b(get\s+hired|être\s+embauché|être\s+recruté)\b", _I), "get hired"),
    (re.compile(r"\b(become\s+famous|devenir\s+célèbre|devenir\s+connu)\b", _I), "become famous"),
    (re.compile(r"\b(become\s+president|devenir\s+président|win\s+the\s+election)\b", _I), "become president"),
    (re.compile(r"\bwin\s+(a\s+)?(nobel|oscar|prize)\b", _I), "win prize"),
    (re.compile(r"\bobtenir\s+(un\s+)?(prix|poste|job)\b", _I), "obtenir"),
    (re.compile(r"\b(ex\s+copine|ex\s+copain|mon\s+ex|my\s+ex)\b", _I), "ex partner"),
    (re.compile(r"\b(triste|sad|récupérer|recover)\b.*\b(ex|back|récupérer)\b", _I), "sad/recover ex"),
]

# Words hinting that the outcome depends on others, luck or institutions.
OUTCOME_DEPENDENCY_WORDS = [
    "hired", "embauch", "recrut", "accepted", "accepté", "admitted", "admis", "selected",
    "visa", "citizenship", "nationalité", "election", "élection", "promotion", "promoted",
    "lottery", "loto", "billionaire", "milliardaire", "famous", "célèbre", "win ", "gagner ",
    "love me", "m'aime", "girlfriend", "boyfriend", "copine", "copain", "my boss", "mon patron",
]

CONTROLLABILITY_INSTRUCTIONS = (
    "You are a strict classifier for whether a short user intent depends on outcomes the user "
    "cannot fully control (other people, institutions, luck). Return ONLY valid JSON: "
    '{"level": "high" | "medium" | "low", "reason_code": string, "confidence": number, '
    '"rewritten_intent": string | null, "angles": [{"label": string, "intent": string, "days": number | null}]}. '
    "high = mostly under user control; low = depends on others or luck; medium = unclear. "
    "rewritten_intent frames the goal as improving chances through controllable actions, "
    "in the same language as the intent."
)


def detect_marker(text: str) -> tuple[ControllabilityLevel, str | None]:
    """Heuristic level and the marker that decided it."""
    trimmed = normalize_whitespace(text)
    if not trimmed:
        return ControllabilityLevel.CONTROLLED, None
    for regex, marker in EXTERNAL_MARKERS:
        if regex.search(trimmed):
            return ControllabilityLevel.EXTERNAL, marker
    for regex, marker in PARTIALLY_EXTERNAL_MARKERS:
        if regex.search(trimmed):
            return ControllabilityLevel.PARTIALLY_EXTERNAL, marker
    return ControllabilityLevel.CONTROLLED, None


def has_outcome_dependency(text: str) -> bool:
    lowered = f"{(text or '').lower()} "
    return any(word in lowered for word in OUTCOME_DEPENDENCY_WORDS)


def reframe_choices(text: str, rewritten: str | None = None, angles: list[dict] | None = None) -> list[GateChoice]:
    """Choices that reframe the goal toward actions the learner controls."""
    base = normalize_whitespace(text)
    choices: list[GateChoice] = []
    if rewritten:
        choices.append(GateChoice(id="reframe_rewritten", label_key="controllabilityRewrite", intention=rewritten))
    for index, angle in enumerate((angles or [])[:3]):
        choices.append(
            GateChoice(
                id=f"reframe_angle_{index + 1}",
                label_key="controllabilityAngle",
                intention=str(angle.get("intent", "")),
                params={"label": str(angle.get("label", "")), "days": angle.get("days")},
            )
        )
    if not choices:
        choices = [
            GateChoice(
                id="reframe_own_actions",
                label_key="controllabilityOwnActions",
                intention=f"{base} → focus on what I can do myself (10 min/day)",
            ),
            GateChoice(
                id="reframe_wellbeing",
                label_key="controllabilityWellbeing",
                intention="Feel calmer and more confident in 10 minutes a day",
            ),
        ]
    return choices


class ControllabilityChecker:
    """
    Optional gate. Callers decide whether it runs; is_required() is the
    heuristic used when they do not.
    """

    def __init__(self, generator: Optional[LLMProviderInterface] = None, timeout_seconds: float | None = None):
        self.generator = generator
        self.timeout_seconds = timeout_seconds or settings.LLM_TIMEOUT_SECONDS

    @staticmethod
    def is_required(text: str) -> bool:
        level, _ = detect_marker(text)
        return level != ControllabilityLevel.CONTROLLED or has_outcome_dependency(text)

    def check(self, text: str, days: int | None = None, locale: str = "en") -> GateVerdict:
        level, marker = detect_marker(text)

        if level == ControllabilityLevel.EXTERNAL:
            return self._external(text, {"marker": marker, "source": "heuristic"})
        if level == ControllabilityLevel.PARTIALLY_EXTERNAL:
            return self._supportive({"marker": marker, "source": "heuristic"})

        if not has_outcome_dependency(text) or self.generator is None:
            return GateVerdict(
                gate=GATE_NAME,
                status=GateStatus.OK,
                reason_code="controlled",
                metadata={"level": ControllabilityLevel.CONTROLLED.value, "tone": "default", "source": "heuristic"},
            )

        parsed = self._ask_generator(text, days, locale)
        if parsed is None:
            return self._neutral()

        meta = {"source": "llm", "reason": parsed.get("reason_code"), "confidence": parsed.get("confidence")}
        if parsed["level"] == "low":
            return self._external(text, meta, parsed.get("rewritten_intent"), parsed.get("angles"))
        if parsed["level"] == "medium":
            return self._supportive(meta)
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.OK,
            reason_code="controlled",
            metadata={**meta, "level": ControllabilityLevel.CONTROLLED.value, "tone": "default"},
        )

    def _ask_generator(self, text: str, days: int | None, locale: str) -> dict[str, Any] | None:
        request = ContentRequest(
            task=ContentTask.CONTROLLABILITY,
            system_instructions=CONTROLLABILITY_INSTRUCTIONS,
            user_payload={"intent": text, "timeframe_days": days, "locale": locale},
            max_tokens=300,
            timeout_seconds=self.timeout_seconds,
        )
        try:
            response = self.generator.request(request)
        except ContentGeneratorError as e:
            logger.warning(f"Controllability check degraded: {e}")
            return None
        parsed = response.parsed
        if not response.ok or not isinstance(parsed, dict) or parsed.get("level") not in ("high", "medium", "low"):
            logger.warning("Controllability check degraded: malformed response")
            return None
        angles = parsed.get("angles")
        parsed["angles"] = [
            angle for angle in (angles if isinstance(angles, list) else [])
            if isinstance(angle, dict) and isinstance(angle.get("intent"), str)
        ]
        return parsed

    def _external(self, text: str, meta: dict, rewritten: str | None = None, angles: list | None = None) -> GateVerdict:
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.NEEDS_CLARIFICATION,
            reason_code="external_outcome",
            choices=reframe_choices(text, rewritten, angles),
            metadata={**meta, "level": ControllabilityLevel.EXTERNAL.value},
        )

    def _supportive(self, meta: dict) -> GateVerdict:
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.OK,
            reason_code="partially_external",
            metadata={**meta, "level": ControllabilityLevel.PARTIALLY_EXTERNAL.value, "tone": "supportive"},
        )

    def _neutral(self) -> GateVerdict:
        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.OK,
            reason_code="controllability_degraded",
            metadata={"confidence": "medium", "tone": "default", "degraded": True},
        )
