"""
Plan Generation Package

- prompts: request builders and level/step targets
- normalize: auditable repair pass over raw generator output
- validator: layered plan validation
- planner: retry-with-feedback plan generator
- missions: on-demand mission content adapter
"""

from src.generation.prompts import (
    build_clarify_chips_request,
    build_mission_request,
    build_plan_request,
    plan_targets,
)
from src.generation.normalize import axis_from_effort, normalize_plan_payload
from src.generation.validator import PlanValidationResult, validate_plan
from src.generation.planner import AttemptFeedback, PlanAttemptState, PlanGenerator
from src.generation.missions import MissionContentAdapter, enforce_validation_mode, sanitize_blocks

__all__ = [
    # Prompts
    "build_clarify_chips_request",
    "build_mission_request",
    "build_plan_request",
    "plan_targets",
    # Normalization
    "axis_from_effort",
    "normalize_plan_payload",
    # Validation
    "PlanValidationResult",
    "validate_plan",
    # Planner
    "AttemptFeedback",
    "PlanAttemptState",
    "PlanGenerator",
    # Missions
    "MissionContentAdapter",
    "enforce_validation_mode",
    "sanitize_blocks",
]
