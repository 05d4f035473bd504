"""
Clarify-Chips Cache

Memoizes the "refine this goal" chip contract. The cache key is
sha256(prompt_version|domain|normalized_intent|lang|days); entries expire
after a fixed number of days.

trace.cache tells the caller where the value came from:
- hit:    served from the cache
- miss:   generated, strictly validated, stored
- bypass: static localized fallback (privacy risk, generator failure or
          invalid output); never stored
"""

import hashlib
import logging
import re
import threading
import time
from typing import Any, Optional

from cachetools import TTLCache

from src.generation.prompts import build_clarify_chips_request
from src.schemas.base import CacheTrace, PlanMarkers, PrivacyRisk
from src.schemas.clarify import ClarifyChips
from src.utils import settings
from src.utils.errors import ContentGeneratorError, InputError
from src.utils.llm_client import LLMProviderInterface
from src.utils.redact import redact
from src.utils.validation import SchemaValidationError, validate_schema

logger = logging.getLogger(__name__)

PROMPT_VERSION = PlanMarkers.CLARIFY_CHIPS_PROMPT_VERSION
CACHE_TTL_SECONDS = settings.CLARIFY_CACHE_TTL_DAYS * 24 * 3600
MAX_INTENT_CHARS = 160

# Process-local cache shared by every service instance
chips_cache = TTLCache(maxsize=settings.CLARIFY_CACHE_MAXSIZE, ttl=CACHE_TTL_SECONDS)
_cache_lock = threading.Lock()

_STRIP_RE = re.compile(r"[.,;:!?()\"']")

FALLBACK_TEXT: dict[str, dict[str, Any]] = {
    "fr": {
        "context_label": "Contexte",
        "comfort_label": "Niveau visé",
        "context": [("travel", "Voyage"), ("study", "Études"), ("conversation", "Conversation"), ("work", "Travail")],
        "comfort": [("essential", "Essentiel"), ("comfortable", "À l'aise"), ("fluent", "Fluide")],
    },
    "en": {
        "context_label": "Context",
        "comfort_label": "Target level",
        "context": [("travel", "Travel"), ("study", "Study"), ("conversation", "Conversation"), ("work", "Work")],
        "comfort": [("essential", "Essential"), ("comfortable", "Comfortable"), ("fluent", "Fluent")],
    },
    "es": {
        "context_label": "Contexto",
        "comfort_label": "Nivel objetivo",
        "context": [("travel", "Viaje"), ("study", "Estudios"), ("conversation", "Conversación"), ("work", "Trabajo")],
        "comfort": [("essential", "Esencial"), ("comfortable", "Cómodo"), ("fluent", "Fluido")],
    },
    "de": {
        "context_label": "Kontext",
        "comfort_label": "Zielniveau",
        "context": [("travel", "Reise"), ("study", "Studium"), ("conversation", "Gespräch"), ("work", "Arbeit")],
        "comfort": [("essential", "Grundlegend"), ("comfortable", "Sicher"), ("fluent", "Fließend")],
    },
    "it": {
        "context_label": "Contesto",
        "comfort_label": "Livello obiettivo",
        "context": [("travel", "Viaggio"), ("study", "Studio"), ("conversation", "Conversazione"), ("work", "Lavoro")],
        "comfort": [("essential", "Essenziale"), ("comfortable", "A suo agio"), ("fluent", "Fluido")],
    },
}


def normalize_intent(text: str) -> str:
    """Lowercase, strip .,;:!?()\"' and collapse whitespace; capped."""
    base = _STRIP_RE.sub(" ", (text or "").lower())
    return " ".join(base.split())[:MAX_INTENT_CHARS]


def cache_key(domain_id: str, normalized_intent: str, lang: str, days: int, prompt_version: str = PROMPT_VERSION) -> str:
    payload = "|".join([prompt_version, domain_id, normalized_intent, lang, str(days)])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def base_lang(lang: str) -> str:
    code = (lang or "en").split("-")[0].split("_")[0].lower()
    return code if code in FALLBACK_TEXT else "en"


def build_fallback(lang: str, days: int, key: str, timing_ms: int) -> ClarifyChips:
    """Deterministic localized contract built from static templates."""
    code = base_lang(lang)
    text = FALLBACK_TEXT[code]
    sections = []
    for section_id in ("context", "comfort"):
        options = [{"key": key_, "label": label} for key_, label in text[section_id]]
        sections.append(
            {
                "id": section_id,
                "label": text[f"{section_id}_label"],
                "type": "single",
                "options": options,
                "default": options[0]["key"],
            }
        )
    return ClarifyChips.model_validate(
        {
            "template_key": f"fallback_{code}",
            "prompt_version": PROMPT_VERSION,
            "lang": code,
            "days": days,
            "sections": sections,
            "trace": {
                "cache": CacheTrace.BYPASS,
                "hash": key,
                "timing_ms": timing_ms,
                "prompt_id": PROMPT_VERSION,
            },
        }
    )


class ClarifyChipsService:
    def __init__(self, generator: LLMProviderInterface, cache: Optional[TTLCache] = None):
        self.generator = generator
        self.cache = chips_cache if cache is None else cache

    def get_chips(self, intent: str, domain_id: str, lang: str = "en", days: int = 14) -> ClarifyChips:
        """
        Chip contract for an intent.

        Raises:
            InputError: empty intent or domain, days outside 1..365
        """
        if not isinstance(intent, str) or not intent.strip():
            raise InputError("intent", "intent is required")
        if not domain_id:
            raise InputError("domain_id", "domain is required")
        if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= 365:
            raise InputError("days", "days must be within 1..365")

        started = time.monotonic()
        redacted = redact(intent)
        normalized = normalize_intent(redacted.text)
        key = cache_key(domain_id, normalized, lang, days)

        def elapsed_ms() -> int:
            return max(0, int((time.monotonic() - started) * 1000))

        with _cache_lock:
            cached = self.cache.get(key)
        if cached is not None:
            chips = self._contract(cached, CacheTrace.HIT, key, elapsed_ms())
            if chips is not None:
                logger.info(f"Clarify chips cache hit ({key[:12]})")
                return chips

        if redacted.risk in (PrivacyRisk.MEDIUM, PrivacyRisk.HIGH):
            logger.info(f"Clarify chips bypass: privacy risk {redacted.risk.value} ({key[:12]})")
            return build_fallback(lang, days, key, elapsed_ms())

        value = self._generate(normalized, domain_id, lang, days)
        if value is not None:
            chips = self._contract(value, CacheTrace.MISS, key, elapsed_ms())
            if chips is not None:
                with _cache_lock:
                    self.cache[key] = value
                logger.info(f"Clarify chips cache miss, stored ({key[:12]})")
                return chips

        logger.warning(f"Clarify chips fallback: generator output unusable ({key[:12]})")
        return build_fallback(lang, days, key, elapsed_ms())

    def _generate(self, normalized: str, domain_id: str, lang: str, days: int) -> dict[str, Any] | None:
        request = build_clarify_chips_request(normalized, domain_id, lang, days)
        try:
            response = self.generator.request(request)
        except ContentGeneratorError as e:
            logger.warning(f"Clarify chips generation failed: {e}")
            return None
        if not response.ok or not isinstance(response.parsed, dict):
            return None
        value = dict(response.parsed)
        value.setdefault("prompt_version", PROMPT_VERSION)
        value["lang"] = lang
        value["days"] = days
        return value

    @staticmethod
    def _contract(value: dict[str, Any], cache: CacheTrace, key: str, timing_ms: int) -> ClarifyChips | None:
        candidate = {
            **value,
            "trace": {
                "cache": cache,
                "hash": key,
                "timing_ms": timing_ms,
                "prompt_id": PROMPT_VERSION,
            },
        }
        try:
            return validate_schema(ClarifyChips, candidate)
        except SchemaValidationError as e:
            logger.warning(f"Clarify chips contract rejected: {e.messages()[:3]}")
            return None
