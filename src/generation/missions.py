"""
Mission Content Adapter

Fills one mission stub with renderable blocks on demand. The adapter only
ever produces `blocks`; path and step structure are never touched.

Post-processing guarantees validation-mode compliance:
- automatic   → at least one quiz (synthesized if absent)
- self_report → at least one checklist (synthesized if absent)
- presence    → no quiz at all

Short results are then topped up to the minimum block count from the
stub; only the lone placeholder fallback stays a single block.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from config.pipeline_thresholds import MISSION_BLOCKS
from src.generation.prompts import build_mission_request
from src.schemas.base import RitualMode, ValidationMode
from src.schemas.path import MissionBlock, MissionFull, MissionStub
from src.schemas.playbook import DomainPlaybook
from src.utils.errors import ContentGeneratorError
from src.utils.llm_client import LLMProviderInterface

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Take a moment to settle in, then start with the first small action of this session."

_BLOCK_ADAPTER = TypeAdapter(MissionBlock)


def _clean_strings(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    return [value.strip() for value in values if isinstance(value, str) and value.strip()]


def _repair_block(block: Any) -> dict[str, Any] | None:
    """Best-effort repair of one raw block; None when unusable."""
    if not isinstance(block, dict):
        return None
    kind = block.get("type")
    if kind == "text":
        text = block.get("text")
        if isinstance(text, str) and text.strip():
            return {"type": "text", "text": text.strip()}
        return None
    if kind == "checklist":
        items = _clean_strings(block.get("items"))
        return {"type": "checklist", "items": items} if items else None
    if kind == "quiz":
        choices = _clean_strings(block.get("choices"))
        if len(choices) < 2:
            return None
        question = block.get("question")
        correct = block.get("correct_index", block.get("correctIndex"))
        if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct < len(choices):
            correct = None
        return {
            "type": "quiz",
            "question": question.strip() if isinstance(question, str) and question.strip() else "Quick check",
            "choices": choices,
            "correct_index": correct,
        }
    return None


def sanitize_blocks(raw_blocks: Any) -> tuple[list[dict[str, Any]], bool]:
    """
    Drop invalid blocks and cap the list.

    Returns:
        (blocks, used_fallback): a single placeholder text block when
        nothing usable remains
    """
    blocks: list[dict[str, Any]] = []
    for raw in raw_blocks if isinstance(raw_blocks, list) else []:
        repaired = _repair_block(raw)
        if repaired is None:
            continue
        try:
            _BLOCK_ADAPTER.validate_python(repaired)
        except ValidationError:
            continue
        blocks.append(repaired)
        if len(blocks) == MISSION_BLOCKS["max_blocks"]:
            break
    if not blocks:
        return [{"type": "text", "text": PLACEHOLDER_TEXT}], True
    return blocks, False


def _synthesized_quiz(stub: MissionStub) -> dict[str, Any]:
    return {
        "type": "quiz",
        "question": f"What is the focus of this session: {stub.title}?",
        "choices": [stub.unique_angle, "Something unrelated to this session"],
        "correct_index": 0,
    }


def _synthesized_checklist(stub: MissionStub) -> dict[str, Any]:
    return {
        "type": "checklist",
        "items": [
            f"Set a timer for {stub.duration_minutes} minutes",
            stub.summary,
            "Note one takeaway",
        ],
    }


def _add_block(blocks: list[dict[str, Any]], block: dict[str, Any]) -> list[dict[str, Any]]:
    if len(blocks) < MISSION_BLOCKS["max_blocks"]:
        return blocks + [block]
    return blocks[:-1] + [block]


def _is_placeholder(blocks: list[dict[str, Any]]) -> bool:
    return blocks == [{"type": "text", "text": PLACEHOLDER_TEXT}]


def _pad_blocks(blocks: list[dict[str, Any]], stub: MissionStub) -> list[dict[str, Any]]:
    """Top up to the minimum block count from the stub; the lone placeholder stays alone."""
    if _is_placeholder(blocks):
        return blocks
    for candidate in ({"type": "text", "text": stub.summary}, _synthesized_checklist(stub)):
        if len(blocks) >= MISSION_BLOCKS["min_blocks"]:
            break
        if candidate not in blocks:
            blocks = blocks + [candidate]
    return blocks


def enforce_validation_mode(blocks: list[dict[str, Any]], mode: ValidationMode, stub: MissionStub) -> list[dict[str, Any]]:
    kinds = {block["type"] for block in blocks}
    if mode == ValidationMode.AUTOMATIC and "quiz" not in kinds:
        blocks = _add_block(blocks, _synthesized_quiz(stub))
    elif mode == ValidationMode.SELF_REPORT and "checklist" not in kinds:
        blocks = _add_block(blocks, _synthesized_checklist(stub))
    elif mode == ValidationMode.PRESENCE and "quiz" in kinds:
        blocks = [block for block in blocks if block["type"] != "quiz"] or [{"type": "text", "text": PLACEHOLDER_TEXT}]
    return _pad_blocks(blocks, stub)


class MissionContentAdapter:
    def __init__(self, generator: LLMProviderInterface):
        self.generator = generator

    def fill(
        self,
        stub: MissionStub,
        playbook: DomainPlaybook,
        validation_mode: ValidationMode,
        ritual_mode: RitualMode,
        goal: str,
        days: int,
        locale: str = "en",
        remediation: bool = False,
    ) -> MissionFull:
        """
        Produce the full mission for a stub. Never raises on generator
        problems; falls back to a placeholder block instead.
        """
        request = build_mission_request(
            stub=stub,
            playbook=playbook,
            validation_mode=validation_mode,
            ritual_mode=ritual_mode,
            goal=goal,
            days=days,
            locale=locale,
            remediation=remediation,
        )
        raw_blocks: Any = None
        try:
            response = self.generator.request(request)
            if response.ok and isinstance(response.parsed, dict):
                raw_blocks = response.parsed.get("blocks")
        except ContentGeneratorError as e:
            logger.warning(f"Mission {stub.id} content generation failed: {e}")

        blocks, used_fallback = sanitize_blocks(raw_blocks)
        if used_fallback:
            logger.warning(f"Mission {stub.id}: no usable blocks, using placeholder")
        blocks = enforce_validation_mode(blocks, validation_mode, stub)
        logger.info(
            f"Mission {stub.id} filled: {[block['type'] for block in blocks]} "
            f"(mode={validation_mode.value}, remediation={remediation})"
        )
        return MissionFull.model_validate({**stub.model_dump(), "blocks": blocks})
