"""Orchestration state — single source of truth passed through the graph."""

from typing import TypedDict

from council.models import (
    AgentFailure,
    AgentResponse,
    Candidate,
    Context,
    Decision,
    FeedbackBundle,
    IterationRecord,
    Task,
    TerminationReason,
)


class OrchestrationState(TypedDict, total=False):
    task: Task  # Immutable after init.
    context: Context  # Immutable after init.
    max_iterations: int
    iteration: int  # Completed refinement steps. Starts at 0; the current round is iteration + 1.
    candidate: Candidate | None  # Latest version produced by the Implementer.
    round_results: list[AgentResponse | AgentFailure]  # Current REVIEW round only.
    feedback: FeedbackBundle | None  # Current round's aggregate.
    decision: Decision | None
    trail: list[IterationRecord]  # Completed rounds, in order.
    termination_reason: TerminationReason | None
