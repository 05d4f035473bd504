"""
Plan Generator

Asks the content generator for a full learning path plus mission stubs,
repairs and validates the response, and retries with structured feedback.

Attempt cycle:
    build request (with feedback) → generator → normalize → validate
    ├─ ok        → GeneratedPlan
    └─ rejected  → AttemptFeedback appended; next attempt if any remain

A transport failure consumes an attempt. After the last attempt a
PlanGenerationError is raised; a partial plan is never returned.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from config.pipeline_thresholds import PLAN_TARGETS
from src.domains.overrides import PlaybookRegistry
from src.generation.normalize import normalize_plan_payload
from src.generation.prompts import build_plan_request, plan_targets
from src.generation.validator import strip_marker, validate_plan
from src.schemas.base import PlanMarkers
from src.schemas.intent import DomainContext, IntentHints
from src.schemas.path import GeneratedPlan
from src.utils.errors import ContentGeneratorError, PlanGenerationError
from src.utils.llm_client import LLMProviderInterface
from src.utils.validation import truncate_excerpt

logger = logging.getLogger(__name__)


class AttemptFeedback(BaseModel):
    """Why one attempt was rejected. Fed into the next request."""
    attempt: int = Field(ge=1)
    reason_code: str
    errors: list[str] = Field(default_factory=list)


class PlanAttemptState(BaseModel):
    """
    Retry state machine: attempt counter, fixed bound and the feedback
    accumulator.
    """
    max_attempts: int = Field(default=PLAN_TARGETS["max_attempts"], ge=1)
    attempt: int = 0
    feedback: list[AttemptFeedback] = Field(default_factory=list)
    last_excerpt: str = ""

    def can_attempt(self) -> bool:
        return self.attempt < self.max_attempts

    def begin(self) -> int:
        if not self.can_attempt():
            raise RuntimeError("no attempts left")
        self.attempt += 1
        return self.attempt

    def record_failure(self, reason_code: str, errors: list[str], excerpt: str | None = None) -> None:
        self.feedback.append(AttemptFeedback(attempt=self.attempt, reason_code=reason_code, errors=errors))
        if excerpt is not None:
            self.last_excerpt = excerpt

    def feedback_payload(self) -> list[dict]:
        return [entry.model_dump() for entry in self.feedback]

    @property
    def exhausted(self) -> bool:
        return not self.can_attempt()

    @property
    def last_reason_code(self) -> str:
        return self.feedback[-1].reason_code if self.feedback else "generation_failed"

    @property
    def last_errors(self) -> list[str]:
        return self.feedback[-1].errors if self.feedback else []


class PlanGenerator:
    def __init__(
        self,
        generator: LLMProviderInterface,
        registry: Optional[PlaybookRegistry] = None,
        max_attempts: int | None = None,
    ):
        self.generator = generator
        self.registry = registry or PlaybookRegistry()
        self.max_attempts = max_attempts or PLAN_TARGETS["max_attempts"]

    def generate(
        self,
        goal: str,
        days: int,
        domain_lock: DomainContext,
        hints: IntentHints | None = None,
        locale: str = "en",
    ) -> GeneratedPlan:
        """
        Generate a validated plan.

        Raises:
            PlanGenerationError: every attempt was rejected
        """
        snapshot = self.registry.snapshot()
        playbook = snapshot.get(domain_lock.domain_id)
        targets = plan_targets(days)
        state = PlanAttemptState(max_attempts=self.max_attempts)

        while state.can_attempt():
            attempt = state.begin()
            request = build_plan_request(
                goal=goal,
                days=days,
                locale=locale,
                playbooks=snapshot.catalog(),
                domain_lock=domain_lock,
                playbook=playbook,
                hints=hints,
                feedback=state.feedback_payload(),
            )
            logger.info(f"Plan attempt {attempt}/{state.max_attempts} (domain={playbook.id}, levels={targets['levels']})")

            try:
                response = self.generator.request(request)
            except ContentGeneratorError as e:
                logger.warning(f"Plan attempt {attempt} transport failure: {e}")
                state.record_failure("generator_unavailable", [e.message])
                continue

            if not response.ok or not isinstance(response.parsed, dict):
                logger.warning(f"Plan attempt {attempt} returned no JSON object")
                state.record_failure("json_parse_failed", ["response is not a JSON object"], response.text)
                continue

            try:
                payload, diagnostics = normalize_plan_payload(response.parsed, domain_lock, playbook, hints)
                result = validate_plan(payload, targets, playbook)
            except Exception as e:  # noqa: BLE001 - malformed output consumes the attempt
                logger.warning(f"Plan attempt {attempt} crashed during repair: {type(e).__name__}: {e}")
                state.record_failure("schema_invalid", [f"{type(e).__name__}: {e}"], response.text)
                continue

            if not result.ok:
                logger.warning(f"Plan attempt {attempt} rejected: {result.reason_code}")
                state.record_failure(result.reason_code or "validation_failed", result.errors, response.text)
                continue

            path = result.path.model_copy(
                update={
                    "summary": strip_marker(result.path.summary),
                    "domain_id": domain_lock.domain_id,
                    "domain_profile": domain_lock.domain_profile,
                    "domain_version": domain_lock.domain_version,
                }
            )
            logger.info(f"Plan accepted on attempt {attempt}: {path.step_count()} steps, {len(diagnostics)} repairs")
            return GeneratedPlan(
                path=path,
                stubs=result.stubs,
                diagnostics=diagnostics,
                warnings=result.warnings,
                attempts=attempt,
                prompt_version=PlanMarkers.PLAN_PROMPT_VERSION,
            )

        excerpt = truncate_excerpt(state.last_excerpt, PLAN_TARGETS["excerpt_chars"])
        logger.error(f"Plan generation exhausted after {state.attempt} attempts: {state.last_reason_code}")
        raise PlanGenerationError(
            reason_code=state.last_reason_code,
            errors=state.last_errors,
            excerpt=excerpt,
            attempts=state.attempt,
        )
