"""
Unit tests for the clarify-chips cache.

Tests verify:
1. Cache key derivation from the normalized intent
2. miss → hit lifecycle with a single generator call
3. Privacy bypass and localized fallbacks that are never cached
"""

import pytest
from cachetools import TTLCache

from src.clarify.chips import ClarifyChipsService, build_fallback, cache_key, normalize_intent
from src.schemas.base import CacheTrace
from src.utils.errors import ContentGeneratorError, InputError
from src.utils.llm_client import ContentTask


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache(maxsize=16, ttl=60)


@pytest.fixture
def service(scripted_provider, cache) -> ClarifyChipsService:
    return ClarifyChipsService(scripted_provider, cache=cache)


class TestCacheKey:
    """Tests for key derivation."""

    def test_normalize_intent(self) -> None:
        assert normalize_intent("  Learn   SPANISH (for travel)! ") == "learn spanish for travel"

    def test_equivalent_intents_share_key(self) -> None:
        first = cache_key("language", normalize_intent("Learn Spanish!"), "en", 14)
        second = cache_key("language", normalize_intent("learn   spanish"), "en", 14)
        assert first == second
        assert len(first) == 64

    def test_days_and_lang_change_key(self) -> None:
        base = cache_key("language", "learn spanish", "en", 14)
        assert base != cache_key("language", "learn spanish", "en", 30)
        assert base != cache_key("language", "learn spanish", "fr", 14)


class TestClarifyChipsService:
    """Tests for the cache lifecycle."""

    def test_miss_then_hit(self, service, scripted_provider, cache) -> None:
        first = service.get_chips("Learn Spanish", "language", "en", 14)
        second = service.get_chips("learn spanish!", "language", "en", 14)

        assert first.trace.cache == CacheTrace.MISS
        assert second.trace.cache == CacheTrace.HIT
        assert first.trace.hash == second.trace.hash
        assert second.sections == first.sections
        assert len(scripted_provider.calls_for(ContentTask.CLARIFY_CHIPS)) == 1
        assert len(cache) == 1

    def test_privacy_risk_bypasses_generator(self, service, scripted_provider, cache) -> None:
        chips = service.get_chips("Learn Spanish, mail me at ana@example.com", "language", "en", 14)

        assert chips.trace.cache == CacheTrace.BYPASS
        assert chips.template_key == "fallback_en"
        assert scripted_provider.calls == []
        assert len(cache) == 0

    def test_invalid_output_falls_back_uncached(self, service, scripted_provider, cache) -> None:
        scripted_provider.push(ContentTask.CLARIFY_CHIPS, {
            "template_key": "Not A Key",
            "sections": [],
        })
        chips = service.get_chips("Learn Spanish", "language", "en", 14)
        assert chips.trace.cache == CacheTrace.BYPASS
        assert len(cache) == 0

        # The next request generates again and is stored
        assert service.get_chips("Learn Spanish", "language", "en", 14).trace.cache == CacheTrace.MISS

    def test_extra_fields_rejected(self, service, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CLARIFY_CHIPS, {
            "template_key": "gen_language",
            "sections": build_fallback("en", 14, "x" * 64, 0).model_dump(mode="json")["sections"],
            "debug": "leaked",
        })
        assert service.get_chips("Learn Spanish", "language").trace.cache == CacheTrace.BYPASS

    def test_requested_lang_and_days_win(self, service, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CLARIFY_CHIPS, {
            "template_key": "gen_language",
            "lang": "de",
            "days": 90,
            "sections": build_fallback("en", 14, "x" * 64, 0).model_dump(mode="json")["sections"],
        })
        chips = service.get_chips("Learn Spanish", "language", "en", 14)
        assert chips.trace.cache == CacheTrace.MISS
        assert chips.lang == "en"
        assert chips.days == 14

    def test_generator_error_falls_back(self, service, scripted_provider) -> None:
        scripted_provider.push(ContentTask.CLARIFY_CHIPS, ContentGeneratorError("scripted", "timeout"))
        chips = service.get_chips("Apprendre l'espagnol", "language", "fr-FR", 14)
        assert chips.trace.cache == CacheTrace.BYPASS
        assert chips.template_key == "fallback_fr"
        assert chips.sections[0].label == "Contexte"

    @pytest.mark.parametrize("intent,domain_id,days", [
        ("", "language", 14),
        ("Learn Spanish", "", 14),
        ("Learn Spanish", "language", 0),
        ("Learn Spanish", "language", True),
    ])
    def test_invalid_input(self, service, intent, domain_id, days) -> None:
        with pytest.raises(InputError):
            service.get_chips(intent, domain_id, "en", days)


class TestFallback:
    """Tests for the static fallback contract."""

    def test_two_sections_with_defaults(self) -> None:
        chips = build_fallback("de", 21, "a" * 64, 3)
        assert [section.id for section in chips.sections] == ["context", "comfort"]
        assert all(section.default == section.options[0].key for section in chips.sections)
        assert chips.lang == "de"
        assert chips.days == 21

    def test_unknown_language_uses_english(self) -> None:
        assert build_fallback("pt-BR", 14, "a" * 64, 0).lang == "en"
