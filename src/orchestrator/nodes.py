"""
Decision Graph Nodes

Each node:
1. Reads the current text from DecisionState
2. Runs one gate
3. Records the verdict in the trace
4. Returns the updated state

Heuristic gates that raise are converted into a needs_clarification
verdict (gate_error). Gates backed by the content generator degrade to a
neutral ok verdict instead, so a generator outage never blocks a goal.
"""

import functools
import logging
from typing import Callable, Optional

from config.pipeline_thresholds import INPUT_LIMITS
from src.domains.classifier import DomainClassifier, enrich_intention
from src.domains.registry import DEFAULT_DOMAIN_ID
from src.gates import patterns
from src.gates.actionability import check_actionability
from src.gates.controllability import ControllabilityChecker
from src.gates.lexicon_guard import LexiconGuard
from src.gates.realism import run_realism_gate
from src.gates.safety import check_safety_lexicon
from src.orchestrator.state import GATE_ORDER, DecisionState
from src.schemas.base import DomainSource, GateStatus
from src.schemas.intent import DomainContext, GateVerdict

logger = logging.getLogger(__name__)

NodeFn = Callable[[DecisionState], DecisionState]


def _wrap_node_execution(node_name: str, heuristic: bool = True, on_failure: Optional[Callable[[DecisionState], None]] = None):
    """Decorator for deterministic node lifecycle and error-state management."""

    def decorator(func: NodeFn) -> NodeFn:
        @functools.wraps(func)
        def wrapper(state: DecisionState) -> DecisionState:
            state.record_node_start(node_name)
            logger.info("Node '%s' started", node_name)

            try:
                result = func(state)
                state.record_node_success(node_name)
                logger.info("Node '%s' completed", node_name)
                return result
            except Exception as e:  # noqa: BLE001 - converted to a deterministic verdict
                error_msg = f"{type(e).__name__}: {e}"
                state.record_node_failure(node_name, error_msg)
                logger.error("Node '%s' failed: %s", node_name, error_msg)

                if heuristic:
                    state.record_verdict(
                        GateVerdict(
                            gate=node_name,
                            status=GateStatus.NEEDS_CLARIFICATION,
                            reason_code="gate_error",
                            metadata={"error": type(e).__name__},
                        )
                    )
                else:
                    state.record_verdict(
                        GateVerdict(
                            gate=node_name,
                            status=GateStatus.OK,
                            reason_code="degraded",
                            metadata={"degraded": True, "error": type(e).__name__},
                        )
                    )
                    if on_failure is not None:
                        on_failure(state)
                return state

        return wrapper

    return decorator


# =============================================================================
# HEURISTIC GATE NODES
# =============================================================================

def normalize_input_node(state: DecisionState) -> DecisionState:
    """
    Collapse whitespace and enforce the character ceiling.

    An over-long text halts before any gate runs; finalize then traces
    every gate as skipped.
    """
    state.record_node_start("normalize_input")
    state.current_text = patterns.normalize_whitespace(state.text)
    if len(state.current_text) > INPUT_LIMITS["max_chars"]:
        state.terminal = GateVerdict(
            gate="input",
            status=GateStatus.NEEDS_CLARIFICATION,
            reason_code="too_long",
            metadata={"length": len(state.current_text), "max_chars": INPUT_LIMITS["max_chars"]},
        )
        logger.info(f"Input too long ({len(state.current_text)} chars), halting")
    state.record_node_success("normalize_input")
    return state


@_wrap_node_execution("actionability")
def actionability_node(state: DecisionState) -> DecisionState:
    result = check_actionability(state.current_text)
    state.record_verdict(result.to_verdict(state.current_text, state.locale))
    return state


@_wrap_node_execution("safety_lexicon")
def safety_lexicon_node(state: DecisionState) -> DecisionState:
    state.record_verdict(check_safety_lexicon(state.current_text, state.locale))
    return state


@_wrap_node_execution("realism")
def realism_node(state: DecisionState) -> DecisionState:
    state.record_verdict(run_realism_gate(state.current_text, state.days, state.locale))
    return state


# =============================================================================
# GENERATOR-BACKED NODES
# =============================================================================

def make_safety_assisted_node(guard: LexiconGuard) -> NodeFn:
    @_wrap_node_execution("safety_assisted", heuristic=False)
    def safety_assisted_node(state: DecisionState) -> DecisionState:
        state.record_verdict(guard.check(state.current_text, state.locale))
        return state

    return safety_assisted_node


def make_controllability_node(checker: ControllabilityChecker) -> NodeFn:
    @_wrap_node_execution("controllability", heuristic=False)
    def controllability_node(state: DecisionState) -> DecisionState:
        required = state.check_controllability
        if required is None:
            required = checker.is_required(state.current_text)
        if not required:
            state.record_skipped("controllability", "not_required")
            return state

        verdict = checker.check(state.current_text, state.days, state.locale)
        state.record_verdict(verdict)
        if verdict.status == GateStatus.OK:
            state.tone = verdict.metadata.get("tone", "default")
        return state

    return controllability_node


def make_domain_node(classifier: DomainClassifier) -> NodeFn:
    def fallback_domain(state: DecisionState) -> None:
        playbook = classifier.registry.get(DEFAULT_DOMAIN_ID)
        state.domain = DomainContext(
            domain_id=playbook.id,
            domain_profile=playbook.profile.label,
            domain_version=str(playbook.version),
            source=DomainSource.FALLBACK,
        )
        if state.hints is None:
            state.hints = enrich_intention(state.current_text)

    @_wrap_node_execution("domain", heuristic=False, on_failure=fallback_domain)
    def domain_node(state: DecisionState) -> DecisionState:
        hints = enrich_intention(state.current_text)
        state.hints = hints.model_copy(update={"tone": state.tone})
        state.domain = classifier.classify(state.current_text, state.locale, state.hints)
        state.record_verdict(
            GateVerdict(
                gate="domain",
                status=GateStatus.OK,
                reason_code=state.domain.source.value,
                metadata={"domain_id": state.domain.domain_id, "domain_version": state.domain.domain_version},
            )
        )
        return state

    return domain_node


# =============================================================================
# FINALIZE
# =============================================================================

def finalize_node(state: DecisionState) -> DecisionState:
    """Trace every gate that did not run as skipped, in pipeline order."""
    traced = state.traced_gates()
    halted_by = state.terminal.gate if state.terminal else None
    reason = state.terminal.reason_code if state.terminal else None
    for gate_name in GATE_ORDER:
        if gate_name not in traced:
            state.record_skipped(gate_name, "not_reached", halted_by=halted_by, reason=reason)
    return state
