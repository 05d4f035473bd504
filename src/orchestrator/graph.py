"""
Decision Graph Builder

This module constructs the LangGraph execution graph for the decision
pipeline:

    normalize_input → actionability → safety_lexicon → safety_assisted →
    realism → controllability → domain → finalize → END

After each gate a conditional edge either continues or jumps to
finalize, which traces the gates that never ran. Halts are explicit.
"""

import logging
from typing import Literal, Optional

from langgraph.graph import END, StateGraph

from src.domains.classifier import DomainClassifier
from src.domains.overrides import PlaybookRegistry
from src.gates.controllability import ControllabilityChecker
from src.gates.lexicon_guard import LexiconGuard
from src.orchestrator.nodes import (
    actionability_node,
    finalize_node,
    make_controllability_node,
    make_domain_node,
    make_safety_assisted_node,
    normalize_input_node,
    realism_node,
    safety_lexicon_node,
)
from src.orchestrator.state import DecisionState
from src.utils.llm_client import LLMProviderInterface

logger = logging.getLogger(__name__)


# =============================================================================
# CONDITIONAL EDGE FUNCTIONS
# =============================================================================

def route_after_gate(state: DecisionState) -> Literal["continue", "halt"]:
    """Halt on the first terminal verdict."""
    if state.should_halt():
        return "halt"
    return "continue"


# =============================================================================
# GRAPH CONSTRUCTION
# =============================================================================

def build_decision_graph(
    guard: LexiconGuard,
    checker: ControllabilityChecker,
    classifier: DomainClassifier,
) -> StateGraph:
    """
    Build the LangGraph decision graph.

    Gate order is fixed; each gate either continues to the next one or
    routes to finalize.
    """
    graph = StateGraph(DecisionState)

    # =========================================================================
    # ADD NODES
    # =========================================================================

    graph.add_node("normalize_input", normalize_input_node)
    graph.add_node("actionability", actionability_node)
    graph.add_node("safety_lexicon", safety_lexicon_node)
    graph.add_node("safety_assisted", make_safety_assisted_node(guard))
    graph.add_node("realism", realism_node)
    graph.add_node("controllability", make_controllability_node(checker))
    graph.add_node("domain", make_domain_node(classifier))
    graph.add_node("finalize", finalize_node)

    # =========================================================================
    # SET ENTRY POINT
    # =========================================================================

    graph.set_entry_point("normalize_input")

    # =========================================================================
    # ADD CONDITIONAL EDGES
    # =========================================================================

    chain = [
        ("normalize_input", "actionability"),
        ("actionability", "safety_lexicon"),
        ("safety_lexicon", "safety_assisted"),
        ("safety_assisted", "realism"),
        ("realism", "controllability"),
        ("controllability", "domain"),
    ]
    for node, next_node in chain:
        graph.add_conditional_edges(
            node,
            route_after_gate,
            {
                "continue": next_node,
                "halt": "finalize",
            },
        )

    graph.add_edge("domain", "finalize")

    # Finalize always ends
    graph.add_edge("finalize", END)

    return graph


def compile_decision_graph(
    registry: Optional[PlaybookRegistry] = None,
    generator: Optional[LLMProviderInterface] = None,
    guard: Optional[LexiconGuard] = None,
    checker: Optional[ControllabilityChecker] = None,
    classifier: Optional[DomainClassifier] = None,
):
    """
    Compile the graph for execution.

    Collaborators that are not passed are built from the registry and
    generator.
    """
    registry = registry or PlaybookRegistry()
    graph = build_decision_graph(
        guard=guard or LexiconGuard(generator=generator),
        checker=checker or ControllabilityChecker(generator=generator),
        classifier=classifier or DomainClassifier(registry, generator=generator),
    )
    return graph.compile()
