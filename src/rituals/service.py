"""
Ritual Service

Ties plan generation, progression and lazy mission content to the ritual
store.

generate / regenerate:
    lock → status pending → PlanGenerator → initialize progression
    → save snapshot → status ready
    ├─ PlanGenerationError → status error (last_error = reason code), re-raised
    ├─ any other exception → status error (last_error = truncated message), re-raised
    └─ lock always released

A concurrent caller gets GenerationInProgressError and polls get_status().
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from src.domains.classifier import DomainClassifier, enrich_intention
from src.domains.overrides import PlaybookRegistry
from src.generation.missions import MissionContentAdapter
from src.generation.planner import PlanGenerator
from src.progression import machine
from src.progression.events import build_progress_event
from src.rituals.lock import ritual_lock
from src.rituals.store import RitualStore
from src.schemas.base import DecisionBranch, ProgressOutcome, RitualStatus
from src.schemas.intent import DecisionResult, DomainContext, IntentHints
from src.schemas.path import GeneratedPlan, MissionFull
from src.schemas.progress import ProgressEvent, ProgressionState
from src.schemas.ritual import RitualRecord, RitualStatusRecord
from src.utils.errors import InputError, PlanGenerationError, RitualNotFoundError
from src.utils.llm_client import LLMProviderInterface
from src.utils.redact import redact
from src.utils.validation import truncate_excerpt

logger = logging.getLogger(__name__)

STATUS_ERROR_CHARS = 200


class RitualService:
    def __init__(
        self,
        store: RitualStore,
        generator: LLMProviderInterface,
        registry: Optional[PlaybookRegistry] = None,
        planner: Optional[PlanGenerator] = None,
        adapter: Optional[MissionContentAdapter] = None,
    ):
        self.store = store
        self.generator = generator
        self.registry = registry or PlaybookRegistry()
        self.planner = planner or PlanGenerator(generator, self.registry)
        self.adapter = adapter or MissionContentAdapter(generator)
        self.classifier = DomainClassifier(self.registry)

    # =========================================================================
    # GENERATION
    # =========================================================================

    def generate(
        self,
        ritual_id: str,
        goal: str | None = None,
        days: int | None = None,
        locale: str = "en",
        decision: DecisionResult | None = None,
    ) -> RitualRecord:
        """
        Generate and persist a ritual, either from a proceed decision or a
        raw goal.

        Raises:
            InputError: missing goal or days, or a non-proceed decision
            GenerationInProgressError: another generation holds the lock
            PlanGenerationError: every plan attempt was rejected
        """
        domain: DomainContext | None = None
        hints: IntentHints | None = None
        if decision is not None:
            if decision.branch != DecisionBranch.PROCEED:
                raise InputError("decision", f"cannot generate from a {decision.branch.value} decision")
            goal = decision.cleaned_text
            days = decision.days or days
            locale = decision.locale
            domain, hints = decision.domain, decision.hints

        if not goal or not goal.strip():
            raise InputError("goal", "goal is required")
        if days is None:
            raise InputError("days", "days is required to generate a ritual")

        hints = hints or enrich_intention(goal)
        domain = domain or self.classifier.classify(goal, locale, hints)
        return self._build(ritual_id, goal, days, locale, domain, hints)

    def regenerate(self, ritual_id: str, goal: str | None = None) -> RitualRecord:
        """
        Rebuild a ritual from a fresh path. The only way to reset
        progression; cached missions are dropped.
        """
        existing = self._load(ritual_id)
        return self._build(
            ritual_id,
            goal or existing.intention,
            existing.days,
            existing.locale,
            existing.domain,
            existing.hints,
            created_at=existing.created_at,
            hidden=existing.hidden,
        )

    def _build(
        self,
        ritual_id: str,
        goal: str,
        days: int,
        locale: str,
        domain: DomainContext,
        hints: IntentHints | None,
        created_at: Optional[datetime] = None,
        hidden: bool = False,
    ) -> RitualRecord:
        with ritual_lock(self.store, ritual_id):
            self.store.write_status(ritual_id, RitualStatus.PENDING)
            try:
                plan = self.planner.generate(goal, days, domain, hints, locale)
                record = self._assemble(ritual_id, goal, days, locale, domain, hints, plan, created_at, hidden)
                self.store.save_ritual(record)
            except PlanGenerationError as e:
                self.store.write_status(ritual_id, RitualStatus.ERROR, last_error=e.reason_code)
                logger.error(f"Ritual {ritual_id} generation failed: {e.reason_code}")
                raise
            except Exception as e:
                message = truncate_excerpt(f"{type(e).__name__}: {e}", STATUS_ERROR_CHARS)
                self.store.write_status(ritual_id, RitualStatus.ERROR, last_error=message)
                logger.error(f"Ritual {ritual_id} generation crashed: {message}")
                raise

            self.store.write_status(ritual_id, RitualStatus.READY)
            logger.info(f"Ritual {ritual_id} ready: {plan.path.step_count()} steps ({domain.domain_id})")
            return record

    def _assemble(
        self,
        ritual_id: str,
        goal: str,
        days: int,
        locale: str,
        domain: DomainContext,
        hints: IntentHints | None,
        plan: GeneratedPlan,
        created_at: Optional[datetime],
        hidden: bool,
    ) -> RitualRecord:
        now = datetime.utcnow()
        return RitualRecord(
            ritual_id=ritual_id,
            intention=redact(goal).text,
            days=days,
            locale=locale,
            status=RitualStatus.READY,
            hidden=hidden,
            path=plan.path,
            stubs=plan.stubs,
            progression=machine.initialize(plan.path, ritual_id, now),
            domain=domain,
            hints=hints,
            debug_meta={
                "attempts": plan.attempts,
                "prompt_version": plan.prompt_version,
                "repairs": len(plan.diagnostics),
                "warnings": plan.warnings,
            },
            created_at=created_at or now,
            updated_at=now,
        )

    # =========================================================================
    # STATUS & LOOKUP
    # =========================================================================

    def get_status(self, ritual_id: str) -> RitualStatusRecord:
        """
        Current generation status.

        A saved ritual reads as ready unless a generation is running or
        the stored status is newer than the saved snapshot (a failed
        regenerate). Without either, the stored status or pending.
        """
        locked = self.store.is_locked(ritual_id)
        record = self.store.load_ritual(ritual_id)
        stored = self.store.read_status(ritual_id)
        if record is not None:
            if stored is not None and (locked or stored.updated_at > record.updated_at):
                return stored.model_copy(update={"locked": locked})
            if locked:
                return RitualStatusRecord(status=RitualStatus.PENDING, updated_at=record.updated_at, locked=True)
            return RitualStatusRecord(status=RitualStatus.READY, updated_at=record.updated_at, locked=False)
        if stored is not None:
            return stored.model_copy(update={"locked": locked})
        return RitualStatusRecord(status=RitualStatus.PENDING, locked=locked)

    def get_ritual(self, ritual_id: str) -> RitualRecord:
        return self._load(ritual_id)

    def _load(self, ritual_id: str) -> RitualRecord:
        record = self.store.load_ritual(ritual_id)
        if record is None:
            raise RitualNotFoundError(ritual_id)
        return record

    def _save(self, record: RitualRecord, **changes: Any) -> RitualRecord:
        updated = record.model_copy(update={**changes, "updated_at": datetime.utcnow()})
        return self.store.save_ritual(updated)

    def hide_ritual(self, ritual_id: str) -> RitualRecord:
        record = self._load(ritual_id)
        logger.info(f"Ritual {ritual_id} hidden")
        return self._save(record, hidden=True)

    # =========================================================================
    # PROGRESSION
    # =========================================================================

    def open_step(self, ritual_id: str, step_id: str) -> ProgressionState:
        """
        Raises:
            StepNotSelectableError: the gating mode forbids this step
        """
        record = self._load(ritual_id)
        state = machine.open_step(record.progression, record.path, step_id)
        if state is not record.progression:
            self._save(record, progression=state)
        return state

    def record_progress(
        self,
        ritual_id: str,
        step_id: str,
        outcome: ProgressOutcome | str,
        score: Any = None,
        time_spent_minutes: Any = None,
        notes: str | None = None,
        quiz: dict | None = None,
    ) -> tuple[ProgressEvent, ProgressionState, bool]:
        """
        Append a progress event and advance the step.

        Returns (event, new progression state, needs remediation).

        Raises:
            StepNotSelectableError: unknown step or forbidden by gating
            InputError: invalid outcome
        """
        record = self._load(ritual_id)
        step = record.path.find_step(step_id)
        event = build_progress_event(
            ritual_id=ritual_id,
            mission_id=step.mission_id if step else "unknown",
            step_id=step_id,
            outcome=outcome,
            score=score,
            time_spent_minutes=time_spent_minutes,
            notes=notes,
            quiz=quiz,
        )
        state = machine.record_outcome(record.progression, record.path, event)
        self.store.append_event(event)
        self._save(record, progression=state)
        return event, state, machine.needs_remediation(state, step_id)

    def list_progress(self, ritual_id: str) -> list[ProgressEvent]:
        return self.store.list_events(ritual_id)

    # =========================================================================
    # MISSIONS
    # =========================================================================

    def get_mission(self, ritual_id: str, mission_id: str, remediation: bool = False) -> MissionFull:
        """
        Full mission content, generated on first access and cached on the
        record. Remediation variants are generated fresh and not cached.
        """
        record = self._load(ritual_id)
        if not remediation and mission_id in record.missions:
            return record.missions[mission_id]

        stub = record.stub(mission_id)
        if stub is None:
            raise InputError("mission_id", f"unknown mission {mission_id}")

        playbook = self.registry.snapshot().get(record.domain.domain_id)
        mission = self.adapter.fill(
            stub=stub,
            playbook=playbook,
            validation_mode=record.path.validation_mode,
            ritual_mode=record.path.ritual_mode,
            goal=record.intention,
            days=record.days,
            locale=record.locale,
            remediation=remediation,
        )
        if not remediation:
            self._save(record, missions={**record.missions, mission_id: mission})
        return mission

    # =========================================================================
    # ASYNC WRAPPERS
    # =========================================================================

    async def agenerate(self, ritual_id: str, **kwargs: Any) -> RitualRecord:
        return await asyncio.to_thread(self.generate, ritual_id, **kwargs)

    async def aget_status(self, ritual_id: str) -> RitualStatusRecord:
        return await asyncio.to_thread(self.get_status, ritual_id)

    async def arecord_progress(self, ritual_id: str, step_id: str, outcome: ProgressOutcome | str, **kwargs: Any):
        return await asyncio.to_thread(self.record_progress, ritual_id, step_id, outcome, **kwargs)

    async def aget_mission(self, ritual_id: str, mission_id: str, remediation: bool = False) -> MissionFull:
        return await asyncio.to_thread(self.get_mission, ritual_id, mission_id, remediation)
