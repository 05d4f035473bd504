"""
Decision Orchestrator

Entry point of the intent pipeline. Validates the request, runs the
decision graph and maps the final state onto a DecisionResult:

- proceed: every gate passed; the result carries the domain lock and
  hints the plan generator needs
- clarify: a gate asked the learner to refine the goal
- blocked: terminal for this text
"""

import asyncio
import logging
import re
from typing import Any, Optional

from config.pipeline_thresholds import INPUT_LIMITS
from src.domains.classifier import DomainClassifier
from src.domains.overrides import PlaybookRegistry
from src.gates.controllability import ControllabilityChecker
from src.gates.lexicon_guard import LexiconGuard
from src.orchestrator.graph import compile_decision_graph
from src.orchestrator.state import DecisionState, create_initial_state
from src.schemas.base import DecisionBranch, GateStatus
from src.schemas.intent import DecisionResult
from src.utils.errors import InputError
from src.utils.llm_client import LLMProviderInterface
from src.utils.redact import redact

logger = logging.getLogger(__name__)

_LOCALE_RE = re.compile(r"^[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,4})?$")


def validate_request(text: Any, days: Any, locale: Any) -> tuple[str, int | None, str]:
    """
    Check request fields before any gate runs.

    Raises:
        InputError: missing or invalid text, days or locale
    """
    if not isinstance(text, str):
        raise InputError("text", "intent text is required")
    if days is not None:
        if isinstance(days, bool) or not isinstance(days, int):
            raise InputError("days", "days must be an integer")
        if not INPUT_LIMITS["min_days"] <= days <= INPUT_LIMITS["max_days"]:
            raise InputError(
                "days", f"days must be within {INPUT_LIMITS['min_days']}..{INPUT_LIMITS['max_days']}"
            )
    if locale is None or locale == "":
        locale = "en"
    if not isinstance(locale, str) or not _LOCALE_RE.match(locale):
        raise InputError("locale", "locale must be a language tag such as 'en' or 'fr-FR'")
    return text, days, locale


class DecisionOrchestrator:
    """
    Runs the gate pipeline for one intent at a time.

    The compiled graph is built once and reused; it holds no per-request
    state.
    """

    def __init__(
        self,
        registry: Optional[PlaybookRegistry] = None,
        generator: Optional[LLMProviderInterface] = None,
        guard: Optional[LexiconGuard] = None,
        checker: Optional[ControllabilityChecker] = None,
        classifier: Optional[DomainClassifier] = None,
    ):
        self.registry = registry or PlaybookRegistry()
        self.generator = generator
        self.app = compile_decision_graph(
            registry=self.registry,
            generator=generator,
            guard=guard,
            checker=checker,
            classifier=classifier,
        )

    def resolve(
        self,
        text: str,
        days: int | None = None,
        locale: str = "en",
        check_controllability: bool | None = None,
    ) -> DecisionResult:
        text, days, locale = validate_request(text, days, locale)
        excerpt = redact(text, max_chars=80).text
        logger.info(f"Resolving intent '{excerpt}' (days={days}, locale={locale})")

        initial = create_initial_state(text, days, locale, check_controllability)
        final = self.app.invoke(initial)
        state = final if isinstance(final, DecisionState) else DecisionState.model_validate(final)

        result = self._to_result(state)
        logger.info(f"Decision: {result.branch.value}/{result.reason_code} (gate={result.gate})")
        return result

    def _to_result(self, state: DecisionState) -> DecisionResult:
        verdict = state.terminal
        if verdict is None:
            payload = {
                "goal": state.current_text,
                "days": state.days,
                "locale": state.locale,
                "domain_lock": state.domain.model_dump(mode="json") if state.domain else None,
                "hints": state.hints.model_dump(mode="json") if state.hints else None,
            }
            return DecisionResult(
                branch=DecisionBranch.PROCEED,
                reason_code="ok",
                cleaned_text=state.current_text,
                domain=state.domain,
                hints=state.hints,
                days=state.days,
                locale=state.locale,
                payload=payload,
                trace=state.trace,
            )

        branch = DecisionBranch.BLOCKED if verdict.status == GateStatus.BLOCKED else DecisionBranch.CLARIFY
        return DecisionResult(
            branch=branch,
            reason_code=verdict.reason_code,
            gate=verdict.gate,
            choices=list(verdict.choices),
            days=state.days,
            locale=state.locale,
            payload={"metadata": dict(verdict.metadata)},
            trace=state.trace,
        )


async def run_decision(
    orchestrator: DecisionOrchestrator,
    text: str,
    days: int | None = None,
    locale: str = "en",
    check_controllability: bool | None = None,
) -> DecisionResult:
    """Run resolve() off the event loop."""
    return await asyncio.to_thread(orchestrator.resolve, text, days, locale, check_controllability)
