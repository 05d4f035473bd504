"""
Domain Classifier & Intent Enrichment

Picks the playbook an intent is planned under. Keyword scoring decides
first; the content generator is asked for a single label only when the
heuristic is weak (no hint, or the catch-all productivity domain).
"""

import logging
import re
from typing import Optional

from src.domains.overrides import PlaybookRegistry
from src.domains.registry import DEFAULT_DOMAIN_ID
from src.schemas.base import DomainSource, ValidationMode
from src.schemas.intent import DomainContext, IntentHints
from src.utils.errors import ContentGeneratorError
from src.utils.llm_client import ContentRequest, ContentTask, LLMProviderInterface

logger = logging.getLogger(__name__)

# Declaration order breaks ties: the earlier domain wins.
DOMAIN_KEYWORDS: dict[str, list[str]] = {
    "language": [
        "language", "langue", "spanish", "french", "english", "german", "italian", "portuguese",
        "japanese", "korean", "chinese", "mandarin", "arabic", "greek", "vocab", "vocabulary",
        "grammar", "pronunciation", "tones", "débutant", "intermédiaire",
    ],
    "fitness_sport": [
        "tennis", "serve", "crawl", "swimming", "nager", "run", "running", "jog", "gym",
        "workout", "training", "fitness", "sport", "yoga", "pilates", "marathon",
    ],
    "wellbeing_meditation": [
        "meditation", "méditation", "mindfulness", "breathing", "respiration", "breath",
        "stress", "calm", "calme", "anxiety", "anxiété", "sommeil", "sleep", "énergie", "energy",
    ],
    "tech_coding": ["code", "coding", "programming", "javascript", "python", "react", "typescript"],
    "music_practice": ["guitare", "guitar", "piano", "violin", "drums", "music", "singing"],
    "craft_cooking_diy": [
        "cooking", "cuisine", "recipe", "recette", "pizza", "pâte", "pate", "four", "diy",
        "bricolage", "craft", "échecs", "chess", "dessin", "drawing",
    ],
    "academics_exam": ["exam", "examen", "math", "history", "biology", "physics", "revision", "révision"],
    "professional_skills": ["presentation", "email", "pitch", "meeting", "leadership"],
    "business_growth": ["growth", "marketing", "sales", "startup", "business", "acquisition"],
    "personal_productivity": ["focus", "productivity", "routine", "habits", "organisation"],
}

_CEFR_RE = re.compile(r"\b(a1|a2|b1|b2|c1|c2)\b")

# (domain, goal hint, context hint)
_GOAL_HINTS = [
    ("language", "language_learning", "needs_level_timeframe"),
    ("fitness_sport", "fitness_skill", "needs_sport_technique"),
    ("wellbeing_meditation", "wellbeing_meditation", "needs_calm_breathing"),
    ("tech_coding", "coding_skill", "needs_coding_project"),
    ("music_practice", "music_skill", "needs_creative_project"),
    ("business_growth", "business_growth", "needs_creative_project"),
    ("professional_skills", "professional_skill", "needs_workplace_scenario"),
    ("academics_exam", "academic_exam", "needs_exam_focus"),
    ("craft_cooking_diy", "craft_cooking_diy", "needs_cooking_steps"),
]

GOAL_HINT_TO_DOMAIN = {goal_hint: domain_id for domain_id, goal_hint, _ in _GOAL_HINTS}
GOAL_HINT_TO_DOMAIN.update({"personal_confidence": DEFAULT_DOMAIN_ID, "personal_productivity": DEFAULT_DOMAIN_ID})

DOMAIN_INSTRUCTIONS = (
    "You are a strict classifier. Return JSON only: {\"domain_id\": <one of the allowed ids>}."
)


def infer_domain_id(text: str) -> str:
    """Keyword-scored domain id. A CEFR token forces language."""
    lowered = (text or "").lower()
    best_id, best_score = DEFAULT_DOMAIN_ID, 0
    for domain_id, keywords in DOMAIN_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in lowered)
        if score > best_score:
            best_id, best_score = domain_id, score
    if _CEFR_RE.search(lowered):
        return "language"
    return best_id


def enrich_intention(text: str) -> IntentHints:
    """
    Goal/context hints and the validation preference for plan generation.
    Language and coding goals are quizzable; wellbeing is presence-based.
    """
    lowered = (text or "").lower().strip()
    goal_hint, context_hint = "personal_productivity", "needs_daily_routine"
    for domain_id, hint, context in _GOAL_HINTS:
        if any(keyword in lowered for keyword in DOMAIN_KEYWORDS[domain_id]):
            goal_hint, context_hint = hint, context
            break
    else:
        if "confiance" in lowered or "self-confidence" in lowered:
            goal_hint = "personal_confidence"

    if goal_hint == "language_learning" and ("tone" in lowered or " ton " in f" {lowered} "):
        context_hint = "needs_pronunciation_tones"

    if goal_hint in ("language_learning", "coding_skill"):
        preference = ValidationMode.AUTOMATIC
    elif goal_hint == "wellbeing_meditation":
        preference = ValidationMode.PRESENCE
    else:
        preference = ValidationMode.SELF_REPORT

    return IntentHints(goal_hint=goal_hint, context_hint=context_hint, validation_preference=preference)


class DomainClassifier:
    """
    Resolves the domain lock for an intent against the current registry
    snapshot.
    """

    def __init__(self, registry: PlaybookRegistry, generator: Optional[LLMProviderInterface] = None):
        self.registry = registry
        self.generator = generator

    def classify(self, text: str, locale: str = "en", hints: IntentHints | None = None) -> DomainContext:
        snapshot = self.registry.snapshot()
        heuristic = infer_domain_id(text)
        hinted = GOAL_HINT_TO_DOMAIN.get(hints.goal_hint) if hints else None
        domain_id = hinted or heuristic
        source = DomainSource.HINT if hinted else DomainSource.HEURISTIC

        if self.generator is not None and (hinted is None or domain_id == DEFAULT_DOMAIN_ID):
            asked = self._ask_generator(text, locale, snapshot.ids(), domain_id)
            if asked is None:
                source = DomainSource.FALLBACK if domain_id == DEFAULT_DOMAIN_ID else source
            elif asked in snapshot.by_id:
                domain_id, source = asked, DomainSource.LLM

        playbook = snapshot.get(domain_id)
        logger.info(f"Domain resolved: {playbook.id} ({source.value})")
        return DomainContext(
            domain_id=playbook.id,
            domain_profile=playbook.profile.label,
            domain_version=str(playbook.version),
            source=source,
        )

    def _ask_generator(self, text: str, locale: str, allowed_ids: list[str], fallback_id: str) -> str | None:
        request = ContentRequest(
            task=ContentTask.DOMAIN,
            system_instructions=DOMAIN_INSTRUCTIONS,
            user_payload={"goal": text, "locale": locale, "allowed_ids": allowed_ids, "fallback_id": fallback_id},
            max_tokens=32,
        )
        try:
            response = self.generator.request(request)
        except ContentGeneratorError as e:
            logger.warning(f"Domain classification degraded to heuristic: {e}")
            return None
        parsed = response.parsed if isinstance(response.parsed, dict) else {}
        domain_id = parsed.get("domain_id")
        if not response.ok or domain_id not in allowed_ids:
            logger.warning("Domain classification returned no usable label")
            return None
        return domain_id
