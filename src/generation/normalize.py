"""
Plan Payload Normalization

A separate, auditable repair pass that runs on raw generator output
before validation. Only recoverable deviations are repaired:

- camelCase / legacy keys are mapped to schema field names
- out-of-enum axis values are remapped from effort keywords
- missing ids and level/step/day/order indices are backfilled
- durations are clamped to the allowed window
- resources from disallowed providers are dropped, the rest capped
- domain metadata is overwritten with the domain lock
- a missing validation mode is filled from the intent hints

Every repair is reported as a NormalizationDiagnostic. Nothing is
repaired silently.
"""

import copy
import logging
import re
from typing import Any

from config.pipeline_thresholds import PLAN_TARGETS
from src.schemas.base import Axis, ValidationMode
from src.schemas.intent import DomainContext, IntentHints
from src.schemas.path import NormalizationDiagnostic
from src.schemas.playbook import DomainPlaybook

logger = logging.getLogger(__name__)

# Legacy names that do not map by plain camel → snake conversion
KEY_ALIASES = {
    "pathTitle": "title",
    "pathSummary": "summary",
    "pathDescription": "description",
    "domainPlaybookVersion": "domain_version",
    "durationMin": "duration_minutes",
    "estimatedMinutes": "duration_minutes",
}

PROVIDER_ALIASES = {
    "userProvided": "user_provided",
    "user-provided": "user_provided",
}

_AXIS_VALUES = {axis.value for axis in Axis}
_VALIDATION_VALUES = {mode.value for mode in ValidationMode}
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

# Checked in order; the first group with a hit decides
_AXIS_KEYWORDS: list[tuple[str, list[str]]] = [
    ("understand", ["read", "listen", "vocabulary", "grammar"]),
    ("do", ["speak", "practice", "drill", "quiz", "write"]),
    ("perceive", ["reflect", "journal", "mindfulness", "breath"]),
    ("consolidate", ["review", "revise", "spaced", "recap"]),
]


def axis_from_effort(value: str) -> str:
    """Map an effort-ish word onto an axis. Unknown words map to understand."""
    lower = (value or "").lower()
    for axis, keywords in _AXIS_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return axis
    return "understand"


def _snake(key: str) -> str:
    return KEY_ALIASES.get(key) or _CAMEL_RE.sub("_", key).lower()


def _snake_keys(value: Any, location: str, diagnostics: list[NormalizationDiagnostic]) -> Any:
    if isinstance(value, list):
        return [_snake_keys(item, f"{location}[{index}]", diagnostics) for index, item in enumerate(value)]
    if not isinstance(value, dict):
        return value
    converted: dict[str, Any] = {}
    for key, item in value.items():
        new_key = _snake(key) if isinstance(key, str) else key
        if new_key != key:
            # An explicit snake_case key wins over its camelCase twin
            if new_key in value:
                continue
            diagnostics.append(
                NormalizationDiagnostic(code="key_mapped", location=f"{location}.{key}", original=key, repaired=new_key)
            )
        converted[new_key] = _snake_keys(item, f"{location}.{new_key}", diagnostics)
    return converted


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _text(value: Any) -> str | None:
    """String ids only; anything else from the generator is treated as missing."""
    return value if isinstance(value, str) else None


# =============================================================================
# FIELD REPAIRS
# =============================================================================

def _repair_axis(item: dict[str, Any], location: str, diagnostics: list[NormalizationDiagnostic]) -> None:
    axis = item.get("axis")
    if isinstance(axis, str) and axis in _AXIS_VALUES:
        return
    source = axis if isinstance(axis, str) and axis else str(item.get("effort_type") or "")
    mapped = axis_from_effort(source)
    item["axis"] = mapped
    diagnostics.append(NormalizationDiagnostic(code="axis_remapped", location=f"{location}.axis", original=axis, repaired=mapped))


def _repair_duration(item: dict[str, Any], location: str, diagnostics: list[NormalizationDiagnostic]) -> None:
    low, high = PLAN_TARGETS["min_duration_minutes"], PLAN_TARGETS["max_duration_minutes"]
    original = item.get("duration_minutes")
    value = _as_int(original)
    if value is None and isinstance(original, float):
        value = round(original)
    if value is None:
        value = low
    clamped = max(low, min(high, value))
    if clamped != original:
        item["duration_minutes"] = clamped
        diagnostics.append(
            NormalizationDiagnostic(code="duration_clamped", location=f"{location}.duration_minutes", original=original, repaired=clamped)
        )


def _backfill(item: dict[str, Any], key: str, value: Any, location: str, diagnostics: list[NormalizationDiagnostic], code: str) -> None:
    item[key] = value
    diagnostics.append(NormalizationDiagnostic(code=code, location=f"{location}.{key}", original=None, repaired=value))


def _repair_resources(stub: dict[str, Any], playbook: DomainPlaybook, location: str, diagnostics: list[NormalizationDiagnostic]) -> None:
    resources = stub.get("resources")
    if resources is None:
        stub["resources"] = []
        return
    if not isinstance(resources, list):
        stub["resources"] = []
        diagnostics.append(NormalizationDiagnostic(code="resource_dropped", location=f"{location}.resources", original=resources))
        return

    allowed = {provider.value for provider in playbook.resource_policy.prefer_order}
    kept = []
    for index, resource in enumerate(resources):
        if not isinstance(resource, dict):
            diagnostics.append(NormalizationDiagnostic(code="resource_dropped", location=f"{location}.resources[{index}]", original=resource))
            continue
        raw_provider = _text(resource.get("provider"))
        provider = PROVIDER_ALIASES.get(raw_provider, raw_provider)
        if provider not in allowed:
            diagnostics.append(
                NormalizationDiagnostic(code="resource_dropped", location=f"{location}.resources[{index}]", original=resource.get("provider"))
            )
            continue
        kept.append({**resource, "provider": provider})

    cap = min(playbook.resource_policy.max_resources, PLAN_TARGETS["max_resources_per_stub"])
    if len(kept) > cap:
        diagnostics.append(
            NormalizationDiagnostic(code="resources_capped", location=f"{location}.resources", original=len(kept), repaired=cap)
        )
        kept = kept[:cap]
    stub["resources"] = kept


# =============================================================================
# PATH & STUBS
# =============================================================================

def _normalize_path(
    path: dict[str, Any],
    domain_lock: DomainContext,
    hints: IntentHints | None,
    diagnostics: list[NormalizationDiagnostic],
) -> dict[str, tuple[int, int, str]]:
    """Repair the path in place. Returns step_id → (level_index, step_index, mission_id)."""
    lock = {
        "domain_id": domain_lock.domain_id,
        "domain_profile": domain_lock.domain_profile,
        "domain_version": domain_lock.domain_version,
    }
    for key, value in lock.items():
        if path.get(key) != value:
            diagnostics.append(
                NormalizationDiagnostic(code="domain_overwritten", location=f"path.{key}", original=path.get(key), repaired=value)
            )
            path[key] = value

    mode = path.get("validation_mode")
    if not isinstance(mode, str) or mode not in _VALIDATION_VALUES:
        filled = (hints.validation_preference if hints else ValidationMode.SELF_REPORT).value
        _backfill(path, "validation_mode", filled, "path", diagnostics, "validation_mode_filled")

    positions: dict[str, tuple[int, int, str]] = {}
    levels = path.get("levels")
    if not isinstance(levels, list):
        return positions
    for level_number, level in enumerate(levels, start=1):
        if not isinstance(level, dict):
            continue
        location = f"path.levels[{level_number - 1}]"
        if not level.get("id"):
            _backfill(level, "id", f"l{level_number}", location, diagnostics, "id_backfilled")
        steps = level.get("steps")
        if not isinstance(steps, list):
            continue
        for step_number, step in enumerate(steps, start=1):
            if not isinstance(step, dict):
                continue
            step_location = f"{location}.steps[{step_number - 1}]"
            if not step.get("id"):
                _backfill(step, "id", f"l{level_number}s{step_number}", step_location, diagnostics, "id_backfilled")
            if not step.get("mission_id"):
                _backfill(step, "mission_id", f"m{level_number}_{step_number}", step_location, diagnostics, "id_backfilled")
            _repair_axis(step, step_location, diagnostics)
            _repair_duration(step, step_location, diagnostics)
            positions[str(step["id"])] = (level_number, step_number, str(step["mission_id"]))
    return positions


def _normalize_stubs(
    stubs: list[Any],
    positions: dict[str, tuple[int, int, str]],
    playbook: DomainPlaybook,
    diagnostics: list[NormalizationDiagnostic],
) -> None:
    by_mission = {mission_id: step_id for step_id, (_, _, mission_id) in positions.items()}
    for index, stub in enumerate(stubs):
        if not isinstance(stub, dict):
            continue
        location = f"mission_stubs[{index}]"
        stub_id, step_id = _text(stub.get("id")), _text(stub.get("step_id"))
        if not stub.get("step_id") and stub_id in by_mission:
            _backfill(stub, "step_id", by_mission[stub_id], location, diagnostics, "id_backfilled")
        if not stub.get("id") and step_id in positions:
            _backfill(stub, "id", positions[step_id][2], location, diagnostics, "id_backfilled")

        position = positions.get(_text(stub.get("step_id")))
        order = index + 1
        expected = {
            "level_index": position[0] if position else None,
            "step_index": position[1] if position else None,
            "order": order,
            "day_index": order,
        }
        for key, fallback in expected.items():
            current = _as_int(stub.get(key))
            if current is not None and current >= 1:
                if current != stub.get(key):
                    stub[key] = current
                continue
            if fallback is not None:
                _backfill(stub, key, fallback, location, diagnostics, "index_backfilled")

        if isinstance(stub.get("effort_type"), str):
            stub["effort_type"] = stub["effort_type"].lower()
        _repair_axis(stub, location, diagnostics)
        _repair_duration(stub, location, diagnostics)
        _repair_resources(stub, playbook, location, diagnostics)


def normalize_plan_payload(
    raw: Any,
    domain_lock: DomainContext,
    playbook: DomainPlaybook,
    hints: IntentHints | None = None,
) -> tuple[dict[str, Any], list[NormalizationDiagnostic]]:
    """
    Repair a raw plan payload.

    The input is never mutated. Returns the repaired payload
    ({"path": ..., "mission_stubs": [...]}) and the diagnostics.
    """
    diagnostics: list[NormalizationDiagnostic] = []
    if not isinstance(raw, dict):
        diagnostics.append(NormalizationDiagnostic(code="not_an_object", location="$", original=type(raw).__name__))
        return {"path": None, "mission_stubs": []}, diagnostics

    data = _snake_keys(copy.deepcopy(raw), "$", diagnostics)
    path = data.get("path")
    stubs = data.get("mission_stubs")
    if not isinstance(stubs, list):
        stubs = []

    if isinstance(path, dict):
        positions = _normalize_path(path, domain_lock, hints, diagnostics)
    else:
        path, positions = None, {}
    _normalize_stubs(stubs, positions, playbook, diagnostics)

    if diagnostics:
        counts: dict[str, int] = {}
        for diagnostic in diagnostics:
            counts[diagnostic.code] = counts.get(diagnostic.code, 0) + 1
        logger.info(f"Plan normalization applied {len(diagnostics)} repairs: {counts}")
    return {"path": path, "mission_stubs": stubs}, diagnostics
