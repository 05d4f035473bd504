"""
Unit tests for the Mission Content Adapter.

Tests verify:
1. Block sanitizing and the placeholder fallback
2. Validation-mode compliance (quiz, checklist, presence)
3. Short results topped up to two blocks, except the placeholder
4. Remediation requests carry the playbook's remediation rules
"""

import pytest

from src.generation.missions import PLACEHOLDER_TEXT, MissionContentAdapter, sanitize_blocks
from src.schemas.base import RitualMode, ValidationMode
from src.utils.errors import ContentGeneratorError
from src.utils.llm_client import ContentTask


@pytest.fixture
def stub(generated_plan):
    return generated_plan.stubs[0]


@pytest.fixture
def playbook(registry):
    return registry.get("personal_productivity")


def _fill(adapter, stub, playbook, mode: ValidationMode, remediation: bool = False):
    return adapter.fill(
        stub=stub,
        playbook=playbook,
        validation_mode=mode,
        ritual_mode=RitualMode.PROGRESSION,
        goal="Organize my week",
        days=14,
        remediation=remediation,
    )


def _types(mission) -> list[str]:
    return [block.type for block in mission.blocks]


class TestSanitizeBlocks:
    """Tests for raw block repair."""

    def test_invalid_blocks_dropped(self) -> None:
        blocks, used_fallback = sanitize_blocks([
            {"type": "text", "text": "  Start here  "},
            {"type": "video", "url": "x"},
            {"type": "checklist", "items": ["", 3]},
            "not a block",
            {"type": "quiz", "question": "Pick one", "choices": ["a", "b"], "correctIndex": 7},
        ])
        assert not used_fallback
        assert blocks == [
            {"type": "text", "text": "Start here"},
            {"type": "quiz", "question": "Pick one", "choices": ["a", "b"], "correct_index": None},
        ]

    def test_capped_at_four(self) -> None:
        blocks, _ = sanitize_blocks([{"type": "text", "text": f"Block {index}"} for index in range(6)])
        assert len(blocks) == 4

    def test_placeholder_when_nothing_usable(self) -> None:
        blocks, used_fallback = sanitize_blocks(None)
        assert used_fallback
        assert blocks == [{"type": "text", "text": PLACEHOLDER_TEXT}]


class TestMissionContentAdapter:
    """Tests for mission filling."""

    def test_scenario_d_presence_never_has_quiz(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [
            {"type": "text", "text": "Sit down and breathe."},
            {"type": "quiz", "question": "How many breaths?", "choices": ["3", "10"], "correct_index": 1},
        ]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.PRESENCE)
        assert "quiz" not in _types(mission)
        assert _types(mission) == ["text", "text"]
        assert mission.blocks[1].text == stub.summary

    def test_presence_quiz_only_becomes_placeholder(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [
            {"type": "quiz", "question": "Ready?", "choices": ["yes", "no"]},
        ]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.PRESENCE)
        assert mission.blocks[0].text == PLACEHOLDER_TEXT
        assert len(mission.blocks) == 1

    def test_presence_single_text_is_topped_up(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [{"type": "text", "text": "Sit quietly."}]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.PRESENCE)
        assert _types(mission) == ["text", "text"]
        assert mission.blocks[0].text == "Sit quietly."

    def test_automatic_synthesizes_quiz(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [{"type": "text", "text": "Read the list."}]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.AUTOMATIC)
        quiz = mission.blocks[-1]
        assert quiz.type == "quiz"
        assert quiz.choices[quiz.correct_index] == stub.unique_angle

    def test_automatic_full_list_replaces_last_block(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [{"type": "text", "text": f"Part {index}"} for index in range(4)]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.AUTOMATIC)
        assert _types(mission) == ["text", "text", "text", "quiz"]

    def test_self_report_synthesizes_checklist(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [{"type": "text", "text": "Plan your week."}]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.SELF_REPORT)
        assert _types(mission) == ["text", "checklist"]
        assert mission.blocks[1].items[1] == stub.summary

    def test_self_report_single_checklist_is_topped_up(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, {"blocks": [{"type": "checklist", "items": ["Open the planner"]}]})
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.SELF_REPORT)
        assert _types(mission) == ["checklist", "text"]
        assert mission.blocks[1].text == stub.summary

    def test_generator_failure_uses_placeholder(self, scripted_provider, stub, playbook) -> None:
        scripted_provider.push(ContentTask.MISSION, ContentGeneratorError("scripted", "timeout"))
        mission = _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.SELF_REPORT)
        assert mission.blocks[0].text == PLACEHOLDER_TEXT
        assert _types(mission) == ["text", "checklist"]

    def test_stub_fields_preserved(self, dummy_provider, stub, playbook) -> None:
        mission = _fill(MissionContentAdapter(dummy_provider), stub, playbook, ValidationMode.SELF_REPORT)
        assert mission.id == stub.id
        assert mission.step_id == stub.step_id
        assert mission.duration_minutes == stub.duration_minutes

    def test_remediation_request(self, scripted_provider, stub, playbook) -> None:
        _fill(MissionContentAdapter(scripted_provider), stub, playbook, ValidationMode.SELF_REPORT, remediation=True)
        payload = scripted_provider.calls_for(ContentTask.MISSION)[0].user_payload
        assert payload["remediation"] is True
        assert payload["remediation_rules"] == list(playbook.remediation_rules)
