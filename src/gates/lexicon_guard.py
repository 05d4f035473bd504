"""
Assisted Safety Layer

Versioned, admin-editable regex ruleset checked against several
normalized forms of the intent. Runs only when the lexicon layer
returned ok.

Ruleset shape:
    {"version": str,
     "global": [rule, ...],
     "locales": {"fr": [rule, ...], ...}}
    rule = {"id", "reason_code", "pattern", "flags"}

If the ruleset cannot be loaded or compiled the guard reports ok with
metadata.unavailable=True; the lexicon verdict stands on its own.
"""

import json
import logging
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from src.gates.patterns import normalize_whitespace
from src.schemas.base import GateStatus
from src.schemas.intent import GateVerdict
from src.utils import settings
from src.utils.errors import ContentGeneratorError, LexiconLoadError
from src.utils.llm_client import ContentRequest, ContentTask, LLMProviderInterface

logger = logging.getLogger(__name__)

GATE_NAME = "safety_assisted"
DEFAULT_LEXICON_PATH = Path(__file__).parent / "data" / "safety_lexicon.v1.json"

_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "u": 0, "g": 0}

MODERATION_INSTRUCTIONS = (
    "You are a strict content safety classifier for short personal-goal texts. "
    'Return ONLY JSON: {"flagged": boolean, "reason_code": string | null}. '
    "Flag sexual content, self-harm, violence, illegal wrongdoing and harassment."
)


@dataclass
class CompiledRule:
    id: str
    reason_code: str
    regex: re.Pattern[str]


# =============================================================================
# NORMALIZATION
# =============================================================================

def _remove_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _punct_to_space(value: str) -> str:
    replaced = "".join(
        " " if unicodedata.category(ch)[0] in ("P", "S") else ch for ch in value
    )
    return normalize_whitespace(replaced)


def normalize_for_safety(text: str) -> dict[str, str]:
    """Haystacks checked by every rule, in order."""
    raw = text or ""
    nfkc = unicodedata.normalize("NFKC", raw)
    return {
        "raw": raw,
        "nfkc": nfkc,
        "collapsed": normalize_whitespace(nfkc),
        "no_diacritics": normalize_whitespace(_remove_diacritics(nfkc)),
        "punct_to_space": _punct_to_space(nfkc),
    }


# =============================================================================
# RULESET LOADING
# =============================================================================

def _compile_flags(flags: str | None) -> int:
    value = 0
    for flag in flags if flags is not None else "i":
        if flag not in _FLAG_MAP:
            raise ValueError(f"unsupported flag '{flag}'")
        value |= _FLAG_MAP[flag]
    return value


def _compile_rules(rules: Any, scope: str, errors: list[str]) -> list[CompiledRule]:
    if not isinstance(rules, list):
        errors.append(f"{scope} rules must be a list")
        return []
    compiled: list[CompiledRule] = []
    for index, rule in enumerate(rules):
        if not isinstance(rule, dict):
            errors.append(f"{scope}[{index}] must be an object")
            continue
        rule_id = rule.get("id") or f"{scope}[{index}]"
        if not rule.get("reason_code") or not rule.get("pattern"):
            errors.append(f'Rule "{rule_id}" needs reason_code and pattern')
            continue
        try:
            regex = re.compile(rule["pattern"], _compile_flags(rule.get("flags")))
        except (re.error, ValueError) as e:
            errors.append(f'Rule "{rule_id}" invalid regex: {e}')
            continue
        compiled.append(CompiledRule(id=rule_id, reason_code=rule["reason_code"], regex=regex))
    return compiled


def validate_lexicon(ruleset: dict[str, Any]) -> list[str]:
    """
    Check an admin-edited ruleset before it is saved.

    Returns:
        List of error strings (empty when valid)
    """
    errors: list[str] = []
    if not isinstance(ruleset, dict):
        return ["Ruleset must be an object"]
    if not ruleset.get("version"):
        errors.append("Missing lexicon version")
    if "global" not in ruleset:
        errors.append("Missing global rules")
    _compile_rules(ruleset.get("global", []), "global", errors)
    locales = ruleset.get("locales") or {}
    if not isinstance(locales, dict):
        errors.append("locales must be an object")
        locales = {}
    for locale, rules in locales.items():
        _compile_rules(rules, f"locales.{locale}", errors)
    return errors


def load_lexicon(path: str | Path) -> tuple[str, list[CompiledRule], dict[str, list[CompiledRule]]]:
    """
    Load and compile a ruleset file.

    Raises:
        LexiconLoadError: unreadable file, bad JSON or any invalid rule
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            ruleset = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LexiconLoadError(str(path), str(e)) from e

    errors = validate_lexicon(ruleset)
    if errors:
        raise LexiconLoadError(str(path), " | ".join(errors))

    global_rules = _compile_rules(ruleset["global"], "global", [])
    locale_rules = {
        locale.lower(): _compile_rules(rules, f"locales.{locale}", [])
        for locale, rules in (ruleset.get("locales") or {}).items()
    }
    return ruleset["version"], global_rules, locale_rules


# =============================================================================
# GUARD
# =============================================================================

class LexiconGuard:
    """
    Assisted safety check.

    The compiled ruleset is loaded lazily and cached; call reload() after
    an admin edit.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        generator: Optional[LLMProviderInterface] = None,
        moderation_enabled: bool | None = None,
    ):
        self.path = Path(path or settings.SAFETY_LEXICON_PATH or DEFAULT_LEXICON_PATH)
        self.generator = generator
        self.moderation_enabled = (
            settings.SAFETY_MODERATION_ENABLED if moderation_enabled is None else moderation_enabled
        )
        self._loaded: tuple[str, list[CompiledRule], dict[str, list[CompiledRule]]] | None = None
        self._load_error: str | None = None

    def reload(self) -> None:
        self._loaded = None
        self._load_error = None

    def _ruleset(self):
        if self._loaded is None and self._load_error is None:
            try:
                self._loaded = load_lexicon(self.path)
                logger.info(f"Safety lexicon {self._loaded[0]} loaded from {self.path}")
            except LexiconLoadError as e:
                self._load_error = e.message
                logger.warning(f"Safety lexicon unavailable: {e}")
        return self._loaded

    def find_match(self, text: str, locale: str = "en") -> dict[str, str] | None:
        """First matching rule as {rule_id, reason_code, haystack}, or None."""
        loaded = self._ruleset()
        if loaded is None:
            return None
        _, global_rules, locale_rules = loaded
        lang = (locale or "").split("-")[0].lower()
        rules = global_rules + locale_rules.get(lang, [])
        haystacks = normalize_for_safety(text)
        for rule in rules:
            for name, value in haystacks.items():
                if value and rule.regex.search(value):
                    return {"rule_id": rule.id, "reason_code": rule.reason_code, "haystack": name}
        return None

    def check(self, text: str, locale: str = "en") -> GateVerdict:
        loaded = self._ruleset()
        if loaded is None:
            return GateVerdict(
                gate=GATE_NAME,
                status=GateStatus.OK,
                reason_code="lexicon_unavailable",
                metadata={"unavailable": True, "error": self._load_error},
            )

        match = self.find_match(text, locale)
        if match:
            logger.warning(f"Safety lexicon blocked: rule={match['rule_id']} haystack={match['haystack']}")
            return GateVerdict(
                gate=GATE_NAME,
                status=GateStatus.BLOCKED,
                reason_code=match["reason_code"],
                metadata={"rule_id": match["rule_id"], "haystack": match["haystack"], "version": loaded[0]},
            )

        if self.moderation_enabled and self.generator is not None:
            flagged = self._moderate(text, locale)
            if flagged:
                return GateVerdict(
                    gate=GATE_NAME,
                    status=GateStatus.BLOCKED,
                    reason_code=flagged,
                    metadata={"source": "moderation"},
                )

        return GateVerdict(
            gate=GATE_NAME,
            status=GateStatus.OK,
            reason_code="no_match",
            metadata={"version": loaded[0]},
        )

    def _moderate(self, text: str, locale: str) -> str | None:
        """Reason code when the generator flags the text; failures give no signal."""
        request = ContentRequest(
            task=ContentTask.MODERATION,
            system_instructions=MODERATION_INSTRUCTIONS,
            user_payload={"text": text, "locale": locale},
            max_tokens=64,
        )
        try:
            response = self.generator.request(request)
        except ContentGeneratorError as e:
            logger.warning(f"Moderation check failed, ignoring: {e}")
            return None
        parsed = response.parsed if isinstance(response.parsed, dict) else None
        if not response.ok or parsed is None or parsed.get("flagged") is not True:
            return None
        return str(parsed.get("reason_code") or "other_blocked")
