"""
Unit tests for plan payload normalization.

Tests verify:
1. Key mapping and that the input is never mutated
2. Axis remapping and duration clamping
3. Id / index backfill
4. Resource filtering and domain lock overwrite
5. Every repair is reported as a diagnostic
"""

import copy

from src.generation.normalize import axis_from_effort, normalize_plan_payload
from src.schemas.base import ValidationMode
from src.schemas.intent import IntentHints


def _codes(diagnostics) -> list[str]:
    return [diagnostic.code for diagnostic in diagnostics]


class TestAxisFromEffort:
    """Tests for effort → axis mapping."""

    def test_known_keywords(self) -> None:
        assert axis_from_effort("speaking") == "do"
        assert axis_from_effort("Review") == "consolidate"
        assert axis_from_effort("breathwork") == "perceive"

    def test_unknown_maps_to_understand(self) -> None:
        assert axis_from_effort("juggling") == "understand"


class TestNormalizePlanPayload:
    """Tests for the repair pass."""

    def test_clean_payload_needs_no_repairs(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        assert diagnostics == []
        assert payload["path"] == raw["path"]

    def test_input_is_not_mutated(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["mission_stubs"][0]["duration_minutes"] = 30
        snapshot = copy.deepcopy(raw)
        normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        assert raw == snapshot

    def test_camel_case_keys(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        stub = raw["mission_stubs"][0]
        stub["estimatedMinutes"] = stub.pop("duration_minutes")
        stub["uniqueAngle"] = stub.pop("unique_angle")
        raw["missionStubs"] = raw.pop("mission_stubs")

        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        first = payload["mission_stubs"][0]
        assert "duration_minutes" in first
        assert "unique_angle" in first
        assert _codes(diagnostics).count("key_mapped") == 3

    def test_axis_remapped(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["path"]["levels"][0]["steps"][0]["axis"] = "speaking"
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        assert payload["path"]["levels"][0]["steps"][0]["axis"] == "do"
        assert "axis_remapped" in _codes(diagnostics)

    def test_duration_clamped(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["mission_stubs"][0]["duration_minutes"] = 25
        raw["mission_stubs"][1]["duration_minutes"] = 2
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        assert payload["mission_stubs"][0]["duration_minutes"] == 10
        assert payload["mission_stubs"][1]["duration_minutes"] == 5
        assert _codes(diagnostics).count("duration_clamped") == 2

    def test_ids_backfilled(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        step = raw["path"]["levels"][0]["steps"][1]
        del step["id"]
        del step["mission_id"]
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        repaired = payload["path"]["levels"][0]["steps"][1]
        assert repaired["id"] == "l1s2"
        assert repaired["mission_id"] == "m1_2"
        assert _codes(diagnostics).count("id_backfilled") == 2

    def test_stub_indices_backfilled(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        stub = raw["mission_stubs"][5]
        for key in ("level_index", "step_index", "order", "day_index"):
            stub.pop(key)
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        repaired = payload["mission_stubs"][5]
        assert (repaired["level_index"], repaired["step_index"], repaired["order"]) == (2, 2, 6)
        assert _codes(diagnostics).count("index_backfilled") == 4

    def test_resources_filtered_and_capped(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["mission_stubs"][0]["resources"] = [
            {"provider": "userProvided", "title": "My notes"},
            {"provider": "tiktok", "title": "Clip"},
            {"provider": "web", "title": "Article 1"},
            {"provider": "web", "title": "Article 2"},
            {"provider": "web", "title": "Article 3"},
        ]
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        resources = payload["mission_stubs"][0]["resources"]
        assert [resource["provider"] for resource in resources] == ["user_provided", "web", "web"]
        assert "resource_dropped" in _codes(diagnostics)
        assert "resources_capped" in _codes(diagnostics)

    def test_domain_lock_overwrites(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["path"]["domain_id"] = "tech_coding"
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"))
        assert payload["path"]["domain_id"] == productivity_lock.domain_id
        assert "domain_overwritten" in _codes(diagnostics)

    def test_validation_mode_filled_from_hints(self, plan_payload, productivity_lock, registry) -> None:
        raw = plan_payload("Organize my week", 14, productivity_lock)
        raw["path"]["validation_mode"] = "graded"
        hints = IntentHints(validation_preference=ValidationMode.PRESENCE)
        payload, diagnostics = normalize_plan_payload(raw, productivity_lock, registry.get("personal_productivity"), hints)
        assert payload["path"]["validation_mode"] == "presence"
        assert "validation_mode_filled" in _codes(diagnostics)

    def test_not_an_object(self, productivity_lock, registry) -> None:
        payload, diagnostics = normalize_plan_payload(["not", "a", "plan"], productivity_lock, registry.get("personal_productivity"))
        assert payload == {"path": None, "mission_stubs": []}
        assert _codes(diagnostics) == ["not_an_object"]
