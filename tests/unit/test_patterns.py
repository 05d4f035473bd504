"""
Unit tests for the pattern matcher.

Tests verify:
1. Whitespace and comparison normalization
2. Noise detection (emoji, punctuation, greetings)
3. Keyword checks (insults on word boundaries, level claims, scope)
4. Timeframe extraction and script detection
"""

from src.gates import patterns


class TestNormalization:
    """Tests for basic normalization helpers."""

    def test_normalize_whitespace(self) -> None:
        assert patterns.normalize_whitespace("  learn \n  piano\t daily ") == "learn piano daily"
        assert patterns.normalize_whitespace(None) == ""

    def test_normalize_for_comparison_drops_punctuation(self) -> None:
        assert patterns.normalize_for_comparison('Practice "scales", daily!') == "practice scales daily"

    def test_word_count_ignores_emoji(self) -> None:
        assert patterns.word_count("learn 🎸 guitar !!") == 2


class TestArrow:
    """Tests for refined 'base → refined' intents."""

    def test_split_arrow(self) -> None:
        assert patterns.split_arrow("Learn guitar → play one song") == ("Learn guitar", "play one song")
        assert patterns.split_arrow("Learn guitar -> play") == ("Learn guitar", "play")

    def test_split_without_arrow(self) -> None:
        assert patterns.split_arrow("Learn guitar") == ("Learn guitar", "")
        assert patterns.has_arrow("Learn guitar") is False


class TestNoise:
    """Tests for noise detection."""

    def test_only_emoji(self) -> None:
        assert patterns.is_only_emoji("🎸🎹") is True
        assert patterns.is_only_emoji("🎸 guitar") is False

    def test_only_punctuation(self) -> None:
        assert patterns.is_only_punctuation("?!...") is True
        assert patterns.is_only_punctuation("a?") is False

    def test_greeting_only(self) -> None:
        assert patterns.is_greeting_only("Hello!") is True
        assert patterns.is_greeting_only("hello, learn piano") is False


class TestKeywordChecks:
    """Tests for keyword and regex checks."""

    def test_insults_match_whole_words_only(self) -> None:
        assert patterns.find_insults("you idiot") == ["idiot"]
        # "con" must not match inside "conversation"
        assert patterns.find_insults("improve my conversation skills", "fr") == []

    def test_con_is_an_insult_only_in_french(self) -> None:
        assert patterns.strip_insults("practicar con amigos", "es") == "practicar con amigos"
        assert patterns.strip_insults("esercitarmi con gli amici", "it-IT") == "esercitarmi con gli amici"
        assert patterns.strip_insults("apprendre le piano con", "fr-FR") == "apprendre le piano"

    def test_strip_insults(self) -> None:
        assert patterns.strip_insults("learn piano stupid") == "learn piano"

    def test_level_claim(self) -> None:
        assert patterns.has_level_claim("become fluent in Spanish") is True
        assert patterns.has_level_claim("become world-famous") is True
        assert patterns.has_level_claim("learn a few words") is False

    def test_extreme_scope_counts(self) -> None:
        assert patterns.has_extreme_scope("learn piano in 14 days") is True
        assert patterns.has_extreme_scope("perdre 5 kg en 3 semaines") is True
        assert patterns.has_extreme_scope("lose 10kg") is True
        assert patterns.has_extreme_scope("learn piano every day") is False

    def test_language_level(self) -> None:
        assert patterns.has_language_level("reach B2 german") is True
        assert patterns.has_language_level("reach level two") is False

    def test_structure(self) -> None:
        assert patterns.has_structure("goal: run") is True
        assert patterns.has_structure("a, b, c") is True
        assert patterns.has_structure("just run") is False

    def test_connectors(self) -> None:
        assert patterns.count_connectors("learn piano and guitar et chant") == 2


class TestTimeframe:
    """Tests for explicit timeframe extraction."""

    def test_days(self) -> None:
        assert patterns.extract_timeframe_days("run 5k in 7 days") == 7

    def test_weeks_and_months(self) -> None:
        assert patterns.extract_timeframe_days("in 3 weeks") == 21
        assert patterns.extract_timeframe_days("en 2 mois") == 60

    def test_none(self) -> None:
        assert patterns.extract_timeframe_days("someday") is None


class TestScriptStats:
    """Tests for dominant script detection."""

    def test_latin(self) -> None:
        assert patterns.script_stats("hello")["dominant_script"] == "latin"

    def test_cjk(self) -> None:
        stats = patterns.script_stats("学习中文")
        assert stats["dominant_script"] == "cjk"
        assert stats["counts"]["cjk"] == 4

    def test_hangul(self) -> None:
        assert patterns.script_stats("한국어 공부")["dominant_script"] == "hangul"

    def test_empty(self) -> None:
        stats = patterns.script_stats("")
        assert stats["total"] == 0
        assert stats["dominant_script"] == "other"
