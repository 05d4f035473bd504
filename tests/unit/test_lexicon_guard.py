"""
Unit tests for the assisted safety layer.

Tests verify:
1. Global and per-locale rules against normalized haystacks
2. Ruleset validation and load failures
3. Optional generator moderation
"""

import json

from src.gates.lexicon_guard import LexiconGuard, load_lexicon, normalize_for_safety, validate_lexicon
from src.schemas.base import GateStatus
from src.utils.errors import ContentGeneratorError, LexiconLoadError
from src.utils.llm_client import ContentTask

import pytest


class TestNormalizeForSafety:
    """Tests for haystack normalization."""

    def test_all_haystacks_present(self) -> None:
        haystacks = normalize_for_safety("Énorme   tâche!")
        assert set(haystacks) == {"raw", "nfkc", "collapsed", "no_diacritics", "punct_to_space"}
        assert haystacks["collapsed"] == "Énorme tâche!"
        assert haystacks["no_diacritics"] == "Enorme tache!"
        assert haystacks["punct_to_space"] == "Énorme tâche"


class TestLexiconGuard:
    """Tests for rule matching."""

    def test_global_rule_blocks(self) -> None:
        verdict = LexiconGuard().check("stalk my ex every night")
        assert verdict.status == GateStatus.BLOCKED
        assert verdict.reason_code == "harassment"
        assert verdict.metadata["rule_id"] == "g_stalking"

    def test_locale_rule_applies_only_to_its_locale(self) -> None:
        guard = LexiconGuard()
        assert guard.check("harceler mon voisin", locale="fr-FR").status == GateStatus.BLOCKED
        assert guard.check("harceler mon voisin", locale="en").status == GateStatus.OK

    def test_safe_text(self) -> None:
        verdict = LexiconGuard().check("Learn Spanish vocabulary")
        assert verdict.status == GateStatus.OK
        assert verdict.reason_code == "no_match"

    def test_unavailable_ruleset_is_ok(self, tmp_path) -> None:
        broken = tmp_path / "lexicon.json"
        broken.write_text("{not json", encoding="utf-8")
        verdict = LexiconGuard(path=broken).check("anything")
        assert verdict.status == GateStatus.OK
        assert verdict.reason_code == "lexicon_unavailable"
        assert verdict.metadata["unavailable"] is True

    def test_reload_picks_up_edits(self, tmp_path) -> None:
        path = tmp_path / "lexicon.json"
        path.write_text(json.dumps({"version": "v1", "global": []}), encoding="utf-8")
        guard = LexiconGuard(path=path)
        assert guard.check("juggle knives").status == GateStatus.OK

        path.write_text(json.dumps({
            "version": "v2",
            "global": [{"id": "knives", "reason_code": "violence", "pattern": "knives", "flags": "i"}],
        }), encoding="utf-8")
        guard.reload()
        assert guard.check("juggle knives").status == GateStatus.BLOCKED


class TestValidation:
    """Tests for ruleset validation."""

    def test_valid_ruleset(self) -> None:
        assert validate_lexicon({"version": "v1", "global": [], "locales": {"fr": []}}) == []

    def test_invalid_regex_and_missing_fields(self) -> None:
        errors = validate_lexicon({
            "global": [
                {"id": "bad", "reason_code": "x", "pattern": "(unclosed"},
                {"id": "empty", "pattern": "x"},
            ],
        })
        assert "Missing lexicon version" in errors
        assert any('Rule "bad" invalid regex' in error for error in errors)
        assert any('Rule "empty" needs reason_code and pattern' in error for error in errors)

    def test_load_rejects_invalid_ruleset(self, tmp_path) -> None:
        path = tmp_path / "lexicon.json"
        path.write_text(json.dumps({"version": "v1", "global": [{"id": "x", "reason_code": "x", "pattern": "("}]}), encoding="utf-8")
        with pytest.raises(LexiconLoadError):
            load_lexicon(path)


class TestModeration:
    """Tests for the optional generator moderation pass."""

    def test_flagged_text_is_blocked(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.MODERATION, {"flagged": True, "reason_code": "harassment"})
        guard = LexiconGuard(generator=scripted_provider, moderation_enabled=True)
        verdict = guard.check("Learn Spanish vocabulary")
        assert verdict.status == GateStatus.BLOCKED
        assert verdict.metadata["source"] == "moderation"

    def test_generator_failure_gives_no_signal(self, scripted_provider) -> None:
        scripted_provider.push(ContentTask.MODERATION, ContentGeneratorError("scripted", "timeout"))
        guard = LexiconGuard(generator=scripted_provider, moderation_enabled=True)
        assert guard.check("Learn Spanish vocabulary").status == GateStatus.OK

    def test_disabled_moderation_never_calls_generator(self, scripted_provider) -> None:
        LexiconGuard(generator=scripted_provider, moderation_enabled=False).check("Learn Spanish")
        assert scripted_provider.calls == []
