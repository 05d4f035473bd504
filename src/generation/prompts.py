"""
Generation Request Builders

Builds the structured requests sent to the content generator for plans,
mission content and clarify chips. Instructions are plain strings; all
variable data travels in the JSON user payload.
"""

from typing import Any

from config.pipeline_thresholds import MISSION_BLOCKS, PLAN_TARGETS
from src.schemas.base import PlanMarkers, RitualMode, ValidationMode
from src.schemas.intent import DomainContext, IntentHints
from src.schemas.path import MissionStub
from src.schemas.playbook import DomainPlaybook
from src.utils.llm_client import ContentRequest, ContentTask

PLAN_INSTRUCTIONS = f"""You create a learning ritual. Respond with strict JSON only, shaped as
{{"path": {{...}}, "mission_stubs": [...]}}.

Constraints:
- Copy domain_lock exactly into path.domain_id, path.domain_profile, path.domain_version.
- path.summary: one concrete sentence, no quotes, must contain the marker {PlanMarkers.PLAN_WATERMARK}.
- path.description: 2 to 4 sentences. path.feasibility_note: exactly 2 sentences.
- Use exactly targets.levels levels with targets.min_steps_per_level to targets.max_steps_per_level steps each.
- axis is one of understand, do, perceive, consolidate. Effort words go in effort_type, never in axis.
- effort_type must be one of playbook.allowed_effort_types.
- Every step has a unique mission_id and exactly one mission stub with that id.
- duration_minutes is an integer between 5 and 10. At most 3 resources per stub.
- Stub summaries and unique angles are never repeated, and never equal the path summary.
- Follow playbook.tone_rules.
- When feedback is present, fix every listed problem.
"""

MISSION_INSTRUCTIONS = """You write the content of one learning mission. Respond with strict JSON only:
{"blocks": [{"type": "text", "text": "..."} | {"type": "checklist", "items": ["..."]} |
{"type": "quiz", "question": "...", "choices": ["...", "..."], "correct_index": 0}]}.
Use 2 to 4 blocks. Follow tone_rules. Keep the mission inside its duration.
validation_mode automatic needs one quiz; self_report needs one checklist; presence never has a quiz.
When remediation is true, follow remediation_rules: simpler wording, smaller scope.
"""

CLARIFY_CHIPS_INSTRUCTIONS = """You propose refinement chips for a learning goal. Respond with strict JSON only:
{"template_key": "lowercase_key", "sections": [{"id": "context"|"comfort"|"pace", "label": "...",
"type": "single", "options": [{"key": "lowercase_key", "label": "max 26 chars"}], "default": "<option key>"}]}.
Use 2 or 3 sections with distinct ids and 1 to 4 options each. No other fields.
"""


def plan_targets(days: int) -> dict[str, Any]:
    """
    Level/step targets for a ritual duration.

    ≤14 days → 2 levels; ≤30 → 3; else 4. Always 4–5 steps per level.
    """
    levels = PLAN_TARGETS["default_levels"]
    for max_days, count in PLAN_TARGETS["levels_by_days"]:
        if days <= max_days:
            levels = count
            break
    return {
        "levels": levels,
        "min_steps_per_level": PLAN_TARGETS["min_steps_per_level"],
        "max_steps_per_level": PLAN_TARGETS["max_steps_per_level"],
        "min_duration_minutes": PLAN_TARGETS["min_duration_minutes"],
        "max_duration_minutes": PLAN_TARGETS["max_duration_minutes"],
        "max_resources_per_stub": PLAN_TARGETS["max_resources_per_stub"],
        "description_sentences": list(PLAN_TARGETS["description_sentences"]),
        "feasibility_sentences": list(PLAN_TARGETS["feasibility_sentences"]),
    }


def build_plan_request(
    goal: str,
    days: int,
    locale: str,
    playbooks: list[dict[str, Any]],
    domain_lock: DomainContext,
    playbook: DomainPlaybook,
    hints: IntentHints | None = None,
    feedback: list[dict[str, Any]] | None = None,
) -> ContentRequest:
    """
    Build the plan request.

    Args:
        playbooks: Catalog entries of every playbook in the current snapshot
        playbook: The locked domain's playbook
        feedback: Structured reasons earlier attempts were rejected
    """
    hints = hints or IntentHints()
    payload = {
        "goal": goal,
        "days": days,
        "locale": locale,
        "marker": PlanMarkers.PLAN_WATERMARK,
        "prompt_version": PlanMarkers.PLAN_PROMPT_VERSION,
        "targets": plan_targets(days),
        "domain_lock": {
            "domain_id": domain_lock.domain_id,
            "domain_profile": domain_lock.domain_profile,
            "domain_version": domain_lock.domain_version,
        },
        "playbook": playbook.catalog_entry(),
        "playbooks": playbooks,
        "validation_mode": hints.validation_preference.value,
        "hints": {
            "goal_hint": hints.goal_hint,
            "context_hint": hints.context_hint,
            "tone": hints.tone,
        },
        "feedback": feedback or [],
    }
    return ContentRequest(
        task=ContentTask.PLAN,
        system_instructions=PLAN_INSTRUCTIONS,
        user_payload=payload,
        max_tokens=4096,
    )


def build_mission_request(
    stub: MissionStub,
    playbook: DomainPlaybook,
    validation_mode: ValidationMode,
    ritual_mode: RitualMode,
    goal: str,
    days: int,
    locale: str,
    remediation: bool = False,
) -> ContentRequest:
    payload = {
        "goal": goal,
        "days": days,
        "locale": locale,
        "prompt_version": PlanMarkers.MISSION_PROMPT_VERSION,
        "stub": stub.model_dump(mode="json"),
        "domain_id": playbook.id,
        "validation_mode": validation_mode.value,
        "ritual_mode": ritual_mode.value,
        "tone_rules": list(playbook.tone_rules),
        "remediation": remediation,
        "remediation_rules": list(playbook.remediation_rules) if remediation else [],
        "blocks": {"min": MISSION_BLOCKS["min_blocks"], "max": MISSION_BLOCKS["max_blocks"]},
    }
    return ContentRequest(
        task=ContentTask.MISSION,
        system_instructions=MISSION_INSTRUCTIONS,
        user_payload=payload,
        max_tokens=900,
    )


def build_clarify_chips_request(normalized_intent: str, domain_id: str, lang: str, days: int) -> ContentRequest:
    return ContentRequest(
        task=ContentTask.CLARIFY_CHIPS,
        system_instructions=CLARIFY_CHIPS_INSTRUCTIONS,
        user_payload={
            "intent": normalized_intent,
            "domain_id": domain_id,
            "lang": lang,
            "days": days,
            "prompt_version": PlanMarkers.CLARIFY_CHIPS_PROMPT_VERSION,
        },
        max_tokens=500,
    )
