"""
Pattern Matcher

Stateless keyword and regex helpers shared by every gate. No I/O, no
model calls: each function takes text and returns a boolean, a count or
a small dict.
"""

import re
import unicodedata

# =============================================================================
# TOKEN TABLES
# =============================================================================

INSULT_TOKENS = [
    "idiot", "stupid", "moron", "jerk", "asshole", "bitch",
    "merde", "connard", "connasse", "puta", "idiota", "imbécile",
]

# Tokens that are ordinary words in other languages ("con" is "with" in es/it).
LOCALE_INSULT_TOKENS = {
    "fr": ["con"],
}

GREETING_TOKENS = {
    "hi", "hello", "hey", "salut", "bonjour", "hola", "ciao", "hallo", "lol", "mdr", "yo",
}

VAGUE_PATTERNS = [
    "réussir ma vie", "reussir ma vie",
    "être heureux", "etre heureux", "être heureuse", "etre heureuse",
    "be happy", "be happier", "be better",
    "get rich", "be rich", "be successful",
]

# Stems matched as substrings (EN, FR, ES, DE, IT)
GOAL_STEMS = [
    "learn", "improv", "practic", "train", "build", "organ", "focus", "plan",
    "prepare", "study", "write", "speak", "read", "code", "cook", "draw",
    "apprendre", "amelior", "amélior", "maitr", "maîtr", "pratiq", "entrain",
    "organis", "creer", "créer", "etud", "étud", "prepar", "prépar",
    "aprender", "mejor", "lernen", "üb", "impar",
]

SKILL_KEYWORDS = [
    "language", "langue", "english", "anglais", "spanish", "espagnol", "german", "allemand",
    "italian", "italien", "japanese", "japonais", "chinese", "chinois", "vocabulary", "grammar",
    "guitar", "guitare", "piano", "violin", "drums", "music", "musique", "sing", "chant",
    "python", "javascript", "code", "coding", "programming", "sql", "excel",
    "run", "course", "yoga", "fitness", "swim", "workout", "muscu",
    "meditation", "méditation", "breathing", "respiration", "sleep", "sommeil",
    "cooking", "cuisine", "drawing", "dessin", "painting", "chess", "échecs",
    "exam", "examen", "math", "history", "physics", "budget", "public speaking",
]

LEVEL_CLAIM_PATTERNS = [
    re.compile(r"fluent", re.IGNORECASE),
    re.compile(r"bilingu", re.IGNORECASE),
    re.compile(r"native", re.IGNORECASE),
    re.compile(r"ma[iî]triser parfaitement", re.IGNORECASE),
    re.compile(r"\bexpert\b", re.IGNORECASE),
    re.compile(r"\bpro\b", re.IGNORECASE),
    re.compile(r"champion", re.IGNORECASE),
    re.compile(r"world[- ]famous|world[- ]class", re.IGNORECASE),
]

LANGUAGE_KEYWORDS = [
    "language", "langue", "anglais", "english", "espagnol", "spanish", "chinois",
    "japonais", "japanese", "italien", "italian", "allemand", "german",
]

INSTRUMENT_KEYWORDS = ["guitare", "guitar", "piano", "violin", "violon", "drums", "batterie"]

ENDURANCE_SPORT_KEYWORDS = ["marathon", "triathlon", "ironman", "ultra", "trail"]

# Only checked when the declared duration is within the short window.
EXTREME_SCOPE_PATTERNS = [
    re.compile(r"\b\d+\s?kg\b", re.IGNORECASE),
    re.compile(r"\b\d+\s?(days?|jours?)\b", re.IGNORECASE),
    re.compile(r"\b\d+\s?(weeks?|semaines?)\b", re.IGNORECASE),
]

GOAL_CONNECTORS = [" et ", " and ", " & "]
GOAL_VERBS = ["apprendre", "learn", "devenir", "become", "master", "maitriser", "maîtriser"]

_ARROW_RE = re.compile(r"->|→")
_CEFR_RE = re.compile(r"\b(A1|A2|B1|B2|C1|C2)\b", re.IGNORECASE)
_TIMEFRAME_RE = re.compile(
    r"\b(\d{1,3})\s?(days?|jours?|d[ií]as?|tage?n?|giorni|weeks?|semaines?|semanas?|wochen?|settimane?|months?|mois|mes(?:es)?|monate?|mesi)\b",
    re.IGNORECASE,
)
_BULLET_RE = re.compile(r"^\s*[-•]\s+", re.MULTILINE)


def _compile_words(tokens: list[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(token) for token in tokens)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


_INSULT_RE = _compile_words(INSULT_TOKENS)
_LOCALE_INSULT_RES = {
    lang: _compile_words(INSULT_TOKENS + tokens) for lang, tokens in LOCALE_INSULT_TOKENS.items()
}


# =============================================================================
# BASIC NORMALIZATION
# =============================================================================

def normalize_whitespace(text: str | None) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join((text or "").split())


def normalize_for_comparison(text: str) -> str:
    """Lowercase, drop quotes and punctuation, keep letters and digits."""
    lowered = (text or "").lower()
    kept = "".join(ch if ch.isalnum() else " " for ch in lowered)
    return " ".join(kept.split())


def word_count(text: str) -> int:
    """Count letter/digit words, ignoring punctuation and emoji."""
    return len(normalize_for_comparison(text).split())


def effective_chars(text: str) -> str:
    """Letters and digits only."""
    return "".join(ch for ch in (text or "") if ch.isalnum())


# =============================================================================
# ARROW (REFINED INTENT)
# =============================================================================

def has_arrow(text: str) -> bool:
    return bool(_ARROW_RE.search(text or ""))


def split_arrow(text: str) -> tuple[str, str]:
    """Split 'base → refined' into (base, refined). No arrow: (text, '')."""
    parts = _ARROW_RE.split(text or "", maxsplit=1)
    if len(parts) == 1:
        return normalize_whitespace(parts[0]), ""
    return normalize_whitespace(parts[0]), normalize_whitespace(parts[1])


# =============================================================================
# NOISE DETECTION
# =============================================================================

def _is_emoji_char(ch: str) -> bool:
    if ch in ("\u200d", "\ufe0f"):
        return True
    category = unicodedata.category(ch)
    return category == "So" or 0x1F000 <= ord(ch) <= 0x1FAFF


def is_only_emoji(text: str) -> bool:
    stripped = "".join((text or "").split())
    return bool(stripped) and all(_is_emoji_char(ch) for ch in stripped)


def is_only_punctuation(text: str) -> bool:
    """True when the text holds no letters or digits at all."""
    return not effective_chars(text)


def is_greeting_only(text: str) -> bool:
    tokens = normalize_for_comparison(text).split()
    return bool(tokens) and all(token in GREETING_TOKENS for token in tokens)


# =============================================================================
# KEYWORD CHECKS
# =============================================================================

def has_action_verb(text: str) -> bool:
    lowered = (text or "").lower()
    return any(stem in lowered for stem in GOAL_STEMS)


def has_vague_pattern(text: str) -> bool:
    lowered = normalize_whitespace(text).lower()
    return any(pattern in lowered for pattern in VAGUE_PATTERNS)


def _insult_re(locale: str) -> re.Pattern[str]:
    lang = (locale or "en").split("-")[0].lower()
    return _LOCALE_INSULT_RES.get(lang, _INSULT_RE)


def find_insults(text: str, locale: str = "en") -> list[str]:
    """Insult tokens matched on word boundaries, plus the locale's own tokens."""
    return [match.group(0) for match in _insult_re(locale).finditer(text or "")]


def strip_insults(text: str, locale: str = "en") -> str:
    return normalize_whitespace(_insult_re(locale).sub("", text or ""))


def has_skill_keyword(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in SKILL_KEYWORDS)


def has_level_claim(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in LEVEL_CLAIM_PATTERNS)


def has_extreme_scope(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in EXTREME_SCOPE_PATTERNS)


def count_connectors(text: str) -> int:
    lowered = f" {(text or '').lower()} "
    return sum(1 for connector in GOAL_CONNECTORS if connector in lowered)


def has_goal_verb(text: str) -> bool:
    lowered = (text or "").lower()
    return any(verb in lowered for verb in GOAL_VERBS)


def has_language_level(text: str) -> bool:
    """CEFR token (A1..C2)."""
    return bool(_CEFR_RE.search(text or ""))


def mentions_any(text: str, keywords: list[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def has_structure(text: str) -> bool:
    """Colon, slash, newline, two or more commas, or bullet lines."""
    raw = text or ""
    if re.search(r"[:/\n]", raw):
        return True
    if raw.count(",") >= 2:
        return True
    return bool(_BULLET_RE.search(raw))


def extract_timeframe_days(text: str) -> int | None:
    """
    First explicit timeframe in the text, in days.

    "in 7 days" -> 7, "3 weeks" -> 21, "2 mois" -> 60.
    """
    match = _TIMEFRAME_RE.search(text or "")
    if not match:
        return None
    amount = int(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith(("week", "semaine", "semana", "woche", "settiman")):
        return amount * 7
    if unit.startswith(("month", "mois", "mes", "monat")):
        return amount * 30
    return amount


# =============================================================================
# SCRIPT DETECTION
# =============================================================================

def _script_of(ch: str) -> str | None:
    code = ord(ch)
    if 0xAC00 <= code <= 0xD7AF:
        return "hangul"
    if (
        0x4E00 <= code <= 0x9FFF
        or 0x3400 <= code <= 0x4DBF
        or 0x3040 <= code <= 0x309F
        or 0x30A0 <= code <= 0x30FF
    ):
        return "cjk"
    if 0x41 <= code <= 0x5A or 0x61 <= code <= 0x7A or 0xC0 <= code <= 0x24F:
        return "latin"
    if ch.isalnum():
        return "other"
    return None


def script_stats(text: str) -> dict:
    """
    Per-script letter counts and the dominant script.

    Ties resolve in order cjk, hangul, latin, other.
    """
    counts = {"cjk": 0, "hangul": 0, "latin": 0, "other": 0}
    for ch in text or "":
        script = _script_of(ch)
        if script:
            counts[script] += 1
    total = sum(counts.values())
    dominant = "other"
    if total:
        top = max(counts.values())
        dominant = next(name for name in ("cjk", "hangul", "latin", "other") if counts[name] == top)
    ratios = {name: (count / total if total else 0.0) for name, count in counts.items()}
    return {"counts": counts, "total": total, "dominant_script": dominant, "ratios": ratios}
