"""
Decision Orchestrator Package

LangGraph-based gate pipeline for incoming intents:
normalize_input → actionability → safety_lexicon → safety_assisted →
realism → controllability → domain → finalize → END
"""

from src.orchestrator.state import (
    GATE_ORDER,
    DecisionState,
    NodeExecution,
    NodeStatus,
    create_initial_state,
)
from src.orchestrator.graph import (
    build_decision_graph,
    compile_decision_graph,
    route_after_gate,
)
from src.orchestrator.decision import (
    DecisionOrchestrator,
    run_decision,
    validate_request,
)

__all__ = [
    # State
    "GATE_ORDER",
    "DecisionState",
    "NodeExecution",
    "NodeStatus",
    "create_initial_state",
    # Graph
    "build_decision_graph",
    "compile_decision_graph",
    "route_after_gate",
    # Orchestrator
    "DecisionOrchestrator",
    "run_decision",
    "validate_request",
]
