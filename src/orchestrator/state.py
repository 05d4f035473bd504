"""
Decision State Definition

This module defines the state that flows through the LangGraph decision
pipeline. Each gate node reads the current text from this shared state,
records its verdict in the trace, and either lets the run continue or
marks the terminal verdict.

Rules:
- Gates run in a fixed order; the first non-ok verdict halts the run
- Every gate that does not run is traced as skipped
- Halts are explicit states
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.schemas.base import GateStatus, TraceOutcome
from src.schemas.intent import DomainContext, GateVerdict, IntentHints, TraceEvent

# Pipeline order. The domain stage is traced like a gate.
GATE_ORDER: tuple[str, ...] = (
    "actionability",
    "safety_lexicon",
    "safety_assisted",
    "realism",
    "controllability",
    "domain",
)


class NodeStatus(str, Enum):
    """Status of a node in the graph execution."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    HALTED = "halted"


class NodeExecution(BaseModel):
    """Tracks execution of a single node."""
    node_name: str
    status: NodeStatus = NodeStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    output_data: dict[str, Any] | None = None


class DecisionState(BaseModel):
    """
    Shared state flowing through the decision graph.

    This is the single source of truth for all gate nodes. `text` is the
    request input and never changes; `current_text` is what the next gate
    sees (gates may clean it, e.g. by stripping insult tokens).
    """

    # =========================================================================
    # REQUEST
    # =========================================================================
    request_id: UUID = Field(default_factory=uuid4)
    text: str = Field(description="Original intent text")
    days: int | None = None
    locale: str = "en"
    check_controllability: bool | None = Field(
        default=None,
        description="Caller override; None lets is_required() decide",
    )

    # =========================================================================
    # PIPELINE DATA
    # =========================================================================
    current_text: str = ""
    trace: list[TraceEvent] = Field(default_factory=list)
    terminal: GateVerdict | None = Field(default=None, description="Verdict that ended the run")
    domain: DomainContext | None = None
    hints: IntentHints | None = None
    tone: str = "default"

    # =========================================================================
    # NODE TRACKING
    # =========================================================================
    node_history: list[NodeExecution] = Field(default_factory=list)
    current_node: str | None = None
    has_error: bool = False
    error_node: str | None = None
    error_message: str | None = None

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def record_node_start(self, node_name: str) -> None:
        """Record that a node has started execution."""
        self.current_node = node_name
        self.node_history.append(
            NodeExecution(
                node_name=node_name,
                status=NodeStatus.RUNNING,
                started_at=datetime.utcnow(),
            )
        )

    def record_node_success(self, node_name: str, output: dict[str, Any] | None = None) -> None:
        """Record successful node completion."""
        for execution in reversed(self.node_history):
            if execution.node_name == node_name and execution.status == NodeStatus.RUNNING:
                execution.status = NodeStatus.HALTED if self.terminal is not None else NodeStatus.SUCCESS
                execution.completed_at = datetime.utcnow()
                execution.output_data = output
                break
        self.current_node = None

    def record_node_failure(self, node_name: str, error: str) -> None:
        """Record node failure."""
        for execution in reversed(self.node_history):
            if execution.node_name == node_name and execution.status == NodeStatus.RUNNING:
                execution.status = NodeStatus.FAILED
                execution.completed_at = datetime.utcnow()
                execution.error_message = error
                break
        self.has_error = True
        self.error_node = node_name
        self.error_message = error
        self.current_node = None

    def record_verdict(self, verdict: GateVerdict, trace_name: str | None = None) -> None:
        """
        Append a verdict to the trace. A non-ok verdict becomes terminal.
        """
        self.trace.append(
            TraceEvent(
                gate_name=trace_name or verdict.gate,
                outcome=TraceOutcome(verdict.status.value),
                reason_code=verdict.reason_code,
                metadata=dict(verdict.metadata),
            )
        )
        if verdict.status != GateStatus.OK:
            self.terminal = verdict
        elif verdict.cleaned_text:
            self.current_text = verdict.cleaned_text

    def record_skipped(self, gate_name: str, reason_code: str, **metadata: Any) -> None:
        self.trace.append(
            TraceEvent(
                gate_name=gate_name,
                outcome=TraceOutcome.SKIPPED,
                reason_code=reason_code,
                metadata=metadata,
            )
        )

    def traced_gates(self) -> set[str]:
        return {event.gate_name for event in self.trace}

    def should_halt(self) -> bool:
        """Halts are explicit: a terminal verdict ends the run."""
        return self.terminal is not None


def create_initial_state(
    text: str,
    days: int | None = None,
    locale: str = "en",
    check_controllability: bool | None = None,
) -> DecisionState:
    """Create initial state for a new decision request."""
    return DecisionState(
        text=text,
        days=days,
        locale=locale,
        check_controllability=check_controllability,
        current_text=text,
    )
