"""
Progression Package

- machine: pure step/level lifecycle and gating policy
- events: progress event builder and append-only log
"""

from src.progression.machine import (
    can_open_step,
    initialize,
    level_states,
    needs_remediation,
    next_available_step,
    open_step,
    recompute,
    record_outcome,
    selectable_steps,
)
from src.progression.events import ProgressLog, build_progress_event

__all__ = [
    # Machine
    "can_open_step",
    "initialize",
    "level_states",
    "needs_remediation",
    "next_available_step",
    "open_step",
    "recompute",
    "record_outcome",
    "selectable_steps",
    # Events
    "ProgressLog",
    "build_progress_event",
]
