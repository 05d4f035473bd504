"""
Progress Events

Builder and append-only log for learner progress. The "last progress per
mission" index is derived by folding the log; it is never stored
separately.
"""

import logging
import math
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional
from uuid import uuid4

from config.pipeline_thresholds import PROGRESSION
from src.schemas.base import ProgressOutcome
from src.schemas.progress import ProgressEvent, QuizAnswer
from src.utils.errors import InputError

logger = logging.getLogger(__name__)


def _clamp(value: Any, low: float, high: float) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return max(low, min(high, number))


def build_progress_event(
    ritual_id: str,
    mission_id: str,
    step_id: str,
    outcome: ProgressOutcome | str,
    score: Any = None,
    time_spent_minutes: Any = None,
    notes: str | None = None,
    quiz: QuizAnswer | dict | None = None,
    created_at: Optional[datetime] = None,
    event_id: str | None = None,
) -> ProgressEvent:
    """
    Build an immutable progress event.

    Numeric inputs are clamped (score 0..1, time 0..60 min), notes are
    trimmed and truncated. Unparseable numbers are dropped.

    Raises:
        InputError: unknown outcome or missing ids
    """
    try:
        parsed_outcome = ProgressOutcome(outcome)
    except ValueError as e:
        raise InputError("outcome", f"unknown outcome {outcome!r}") from e
    for field, value in (("ritual_id", ritual_id), ("mission_id", mission_id), ("step_id", step_id)):
        if not value:
            raise InputError(field, "is required")

    cleaned_notes = None
    if isinstance(notes, str) and notes.strip():
        cleaned_notes = notes.strip()[: PROGRESSION["max_notes_chars"]]

    return ProgressEvent(
        id=event_id or uuid4().hex,
        ritual_id=ritual_id,
        mission_id=mission_id,
        step_id=step_id,
        created_at=created_at or datetime.utcnow(),
        outcome=parsed_outcome,
        score=_clamp(score, 0.0, 1.0),
        time_spent_minutes=_clamp(time_spent_minutes, 0.0, float(PROGRESSION["max_time_spent_minutes"])),
        notes=cleaned_notes,
        quiz=QuizAnswer.model_validate(quiz) if isinstance(quiz, dict) else quiz,
    )


class ProgressLog:
    """
    Append-only event log for one ritual.
    """

    def __init__(self, events: Iterable[ProgressEvent] = ()):
        self._events: list[ProgressEvent] = list(events)

    def append(self, event: ProgressEvent) -> ProgressEvent:
        self._events.append(event)
        return event

    def __iter__(self) -> Iterator[ProgressEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> tuple[ProgressEvent, ...]:
        return tuple(self._events)

    def for_mission(self, mission_id: str) -> list[ProgressEvent]:
        return [event for event in self._events if event.mission_id == mission_id]

    def last_by_mission(self) -> dict[str, ProgressEvent]:
        """Latest event per mission; ties on created_at go to the later append."""
        latest: dict[str, ProgressEvent] = {}
        for event in self._events:
            current = latest.get(event.mission_id)
            if current is None or event.created_at >= current.created_at:
                latest[event.mission_id] = event
        return latest
