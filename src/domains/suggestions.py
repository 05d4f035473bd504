"""
Clarification Suggestions

Decides whether a goal is too thin to plan from, and offers three fixed
reformulation paths (calm mind, organize, learn a skill).
"""

from src.gates.patterns import has_arrow, normalize_whitespace, word_count
from src.schemas.intent import GateChoice

_VAGUE_PATTERNS = [
    "réussir ma vie", "reussir ma vie", "être heureux", "etre heureux",
    "être heureuse", "etre heureuse", "aller mieux", "me sentir bien",
    "changer de vie", "devenir meilleur", "devenir meilleure",
    "être meilleur", "etre meilleur", "être meilleure", "etre meilleure", "mieux",
    "be happy", "be better", "feel better", "change my life",
]

_ACTION_VERBS = [
    "apprendre", "maitriser", "maîtriser", "pratiquer", "améliorer", "ameliorer",
    "développer", "developper", "réduire", "reduire", "dormir", "méditer", "mediter",
    "respirer", "organiser", "gagner", "perdre", "jouer", "dessiner", "coder", "programmer",
    "learn", "master", "practice", "improve", "develop", "reduce", "sleep", "meditate",
    "breathe", "organize", "play", "draw", "code", "study", "train", "build", "write",
]

_SKILL_KEYWORDS = [
    "guitare", "guitar", "piano", "échecs", "chess", "dessin", "drawing", "code", "coding",
    "méditation", "meditation", "stress", "sommeil", "sleep", "respiration",
    "langue", "language", "swimming", "tennis",
]

_WELLBEING_WORDS = ["stress", "calme", "calm", "sommeil", "sleep"]
_MUSIC_WORDS = ["guitare", "guitar", "piano"]
_CRAFT_WORDS = ["échecs", "chess", "dessin", "drawing"]
_WORK_WORDS = ["travail", "boulot", "pro", "carrière", "carriere", "work", "job", "career"]


def needs_clarification(text: str) -> bool:
    """
    True when the goal is too short, vague, or lacks both a verb and a
    skill keyword. A refined 'base → refined' goal never needs it.
    """
    raw = normalize_whitespace(text).lower()
    if not raw:
        return True
    if has_arrow(raw):
        return False
    if word_count(raw) < 5:
        return True
    if any(pattern in raw for pattern in _VAGUE_PATTERNS):
        return True
    has_verb = any(verb in raw for verb in _ACTION_VERBS)
    has_skill = any(keyword in raw for keyword in _SKILL_KEYWORDS)
    return not has_verb and not has_skill


def build_clarification_suggestions(text: str) -> list[GateChoice]:
    """Three reformulation paths, lightly tailored by keywords in the text."""
    raw = normalize_whitespace(text)
    lower = raw.lower()
    wellbeing = any(word in lower for word in _WELLBEING_WORDS)
    work = any(word in lower for word in _WORK_WORDS)
    music = any(word in lower for word in _MUSIC_WORDS)
    craft = any(word in lower for word in _CRAFT_WORDS)

    calm = GateChoice(
        id="clarify-a",
        label_key="clarifyChoiceCalmMind",
        intention="Calmer mon mental en 10 minutes par jour",
        params={
            "title": "Calmer mon mental (10 min/jour)",
            "subtitle": (
                "Respirer, relâcher la tension, mieux dormir."
                if wellbeing
                else "Un rituel court pour se recentrer chaque jour."
            ),
            "domain_hint": "wellbeing_meditation",
        },
    )
    organize = GateChoice(
        id="clarify-b",
        label_key="clarifyChoiceOrganize",
        intention="Mieux m’organiser en 10 minutes par jour",
        params={
            "title": "Mieux m’organiser (10 min/jour)",
            "subtitle": (
                "Priorités claires, plan simple, moins de stress."
                if work
                else "Clarifier mes priorités et routines chaque jour."
            ),
            "domain_hint": "personal_productivity",
        },
    )
    if music or craft:
        skill_intention = f"Apprendre les bases de {raw} en 10 minutes par jour"
        skill_domain = "music_practice" if music else "craft_cooking_diy"
    else:
        skill_intention = "Apprendre une compétence concrète en 10 minutes par jour"
        skill_domain = "professional_skills"
    skill = GateChoice(
        id="clarify-c",
        label_key="clarifyChoiceLearnSkill",
        intention=skill_intention,
        params={
            "title": "Apprendre une compétence (10 min/jour)",
            "subtitle": "Une compétence concrète, pas à pas.",
            "domain_hint": skill_domain,
        },
    )
    return [calm, organize, skill]
