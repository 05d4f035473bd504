"""
Ritual Aggregate

A ritual binds one intent's outcome to its learning path, mission stubs,
lazily generated mission content and progression state.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.schemas.base import DayCount, NonEmptyStr, RitualStatus
from src.schemas.intent import DomainContext, IntentHints
from src.schemas.path import LearningPath, MissionFull, MissionStub
from src.schemas.progress import ProgressionState


class RitualStatusRecord(BaseModel):
    """What polling clients see while a ritual is being generated."""
    status: RitualStatus
    last_error: str | None = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    locked: bool = False


class RitualRecord(BaseModel):
    """
    Aggregate root. Never deleted, only hidden.
    """
    ritual_id: NonEmptyStr
    intention: str = Field(description="Redacted intention")
    days: DayCount
    locale: str = "en"
    status: RitualStatus = RitualStatus.READY
    hidden: bool = False

    path: LearningPath
    stubs: list[MissionStub]
    missions: dict[str, MissionFull] = Field(default_factory=dict)
    progression: ProgressionState

    domain: DomainContext
    hints: IntentHints | None = None
    debug_meta: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def stub(self, mission_id: str) -> MissionStub | None:
        for stub in self.stubs:
            if stub.id == mission_id:
                return stub
        return None
