"""LangGraph StateGraph definition for the review council loop.

generate → review → aggregate → decide → (refine → generate | finalize)

Runtime collaborators (implementer, reviewers, timeout, cancellation token)
are passed through the ``configurable`` section of the run config so the
graph itself can be compiled once at import time.
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import timedelta

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from council.agents.base import Agent
from council.agents.factory import build_roster
from council.agents.implementer import Implementer
from council.aggregator import aggregate
from council.assembler import assemble_result
from council.backends import build_backend
from council.cancellation import CancellationToken
from council.config import get_config
from council.errors import CancellationRequested, ConfigurationError, GenerationError
from council.models import (
    AgentFailure,
    AgentResponse,
    Candidate,
    Context,
    Decision,
    FailureReason,
    FeedbackBundle,
    IterationRecord,
    OrchestrationResult,
    Task,
    TerminationReason,
)
from council.policy import decide
from council.state import OrchestrationState
from council.utils.validator import (
    validate_context,
    validate_max_iterations,
    validate_task,
    validate_task_context,
    validate_timeout,
)

logger = logging.getLogger(__name__)

# How often the deadline barrier re-checks the cancellation token (seconds)
POLL_INTERVAL = 0.05

# Supersteps per round: generate, review, aggregate, decide, refine
_STEPS_PER_ROUND = 5


def _runtime(config: RunnableConfig) -> dict:
    return config["configurable"]


def _check_cancelled(config: RunnableConfig) -> None:
    token = _runtime(config).get("cancel_token")
    if token is not None:
        token.raise_if_cancelled()


# --- Deadline barrier ---


def _wait_for(futures, deadline: float, cancel_token: CancellationToken | None) -> set:
    """Wait until every future is done or the deadline passes; return the unfinished ones.

    Raises CancellationRequested if the token fires while waiting.
    """
    pending = set(futures)
    while pending:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        _, pending = wait(pending, timeout=min(remaining, POLL_INTERVAL), return_when=FIRST_COMPLETED)
    return pending


def run_generation(
    implementer: Implementer,
    task: Task,
    context: Context,
    prior_feedback: FeedbackBundle | None,
    prior_candidate: Candidate | None,
    timeout: float,
    cancel_token: CancellationToken | None = None,
) -> Candidate:
    """Run the Implementer on a worker thread, bounded by the same deadline as reviewers.

    Raises GenerationError if the call fails or does not finish in time, and
    CancellationRequested if the token fires while waiting. A call still in
    flight is abandoned.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="council-generate")
    future = executor.submit(
        implementer.generate_or_refine,
        task,
        context,
        prior_feedback=prior_feedback,
        prior_candidate=prior_candidate,
        timeout=timeout,
    )
    try:
        pending = _wait_for([future], time.monotonic() + timeout, cancel_token)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if pending:
        raise GenerationError(f"Implementer did not answer within {timeout:g}s")
    exc = future.exception()
    if exc is not None and not isinstance(exc, GenerationError):
        raise GenerationError(f"Implementer raised {exc!r}") from exc
    return future.result()


def run_reviews(
    reviewers: list[Agent],
    candidate: Candidate,
    task: Task,
    context: Context,
    timeout: float,
    cancel_token: CancellationToken | None = None,
) -> list[AgentResponse | AgentFailure]:
    """Run every reviewer concurrently and wait for all of them or the deadline.

    Reviewers still running at the deadline are recorded as timed out and
    abandoned. Raises CancellationRequested if the token fires while waiting.
    """
    if not reviewers:
        return []

    executor = ThreadPoolExecutor(max_workers=len(reviewers), thread_name_prefix="council-review")
    futures = {
        executor.submit(agent.evaluate, candidate, task, context, timeout): agent
        for agent in reviewers
    }
    try:
        pending = _wait_for(futures, time.monotonic() + timeout, cancel_token)
    finally:
        # Abandon in-flight calls; their threads finish in the background
        executor.shutdown(wait=False, cancel_futures=True)

    results = []
    for future, agent in futures.items():
        if future in pending:
            logger.warning("%s did not answer within %gs; recording abstention.", agent.name, timeout)
            results.append(AgentFailure(
                agent.role, agent.name, FailureReason.TIMEOUT, f"no response within {timeout:g}s",
            ))
            continue
        exc = future.exception()
        if exc is not None:
            logger.warning("%s raised %r; recording abstention.", agent.name, exc)
            results.append(AgentFailure(agent.role, agent.name, FailureReason.BACKEND_ERROR, repr(exc)))
            continue
        results.append(future.result())
    return results


# --- Nodes ---


def generate_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """GENERATE: the Implementer writes the first candidate or refines the last one.

    The call is bounded by the per-agent timeout. A failed refinement keeps
    the previous candidate. A failed first generation raises GenerationError
    and ends the run.
    """
    _check_cancelled(config)
    runtime = _runtime(config)
    implementer: Implementer = runtime["implementer"]
    prior = state.get("candidate")

    try:
        candidate = run_generation(
            implementer,
            state["task"],
            state["context"],
            state.get("feedback"),
            prior,
            runtime["timeout"],
            runtime.get("cancel_token"),
        )
    except GenerationError as exc:
        if prior is None:
            raise
        logger.warning("Refinement failed (%s); keeping candidate version %d.", exc, prior.version)
        candidate = prior

    logger.info("Round %d: candidate version %d ready.", state["iteration"] + 1, candidate.version)
    return {"candidate": candidate, "round_results": [], "feedback": None, "decision": None}


def review_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """REVIEW: all reviewers evaluate the current candidate concurrently."""
    _check_cancelled(config)
    runtime = _runtime(config)
    results = run_reviews(
        runtime["reviewers"],
        state["candidate"],
        state["task"],
        state["context"],
        runtime["timeout"],
        runtime.get("cancel_token"),
    )
    return {"round_results": results}


def aggregate_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """AGGREGATE: merge the round's results into a FeedbackBundle."""
    _check_cancelled(config)
    return {"feedback": aggregate(state["round_results"])}


def decide_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """DECIDE: consult the policy and append the round to the trail."""
    _check_cancelled(config)
    feedback = state["feedback"]
    rounds = state["iteration"] + 1
    decision = decide(rounds, state["max_iterations"], feedback)
    record = IterationRecord(
        index=rounds,
        candidate=state["candidate"],
        feedback=feedback,
        decision=decision,
    )
    logger.info(
        "Round %d: highest severity %s, %d abstained → %s",
        rounds, feedback.highest_severity.value, len(feedback.abstentions), decision.value,
    )
    return {"decision": decision, "trail": state["trail"] + [record]}


def refine_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """REFINE: bump the iteration counter before re-entering GENERATE."""
    _check_cancelled(config)
    return {"iteration": state["iteration"] + 1}


def finalize_node(state: OrchestrationState, config: RunnableConfig) -> dict:
    """FINALIZE: record why the loop stopped."""
    _check_cancelled(config)
    if state["decision"] == Decision.STOP_CONVERGED:
        return {"termination_reason": TerminationReason.CONVERGED}
    return {"termination_reason": TerminationReason.EXHAUSTED}


def _route_after_decide(state: OrchestrationState) -> str:
    """Conditional edge: loop on CONTINUE, otherwise finalize."""
    if state["decision"] == Decision.CONTINUE:
        return "refine"
    return "finalize"


# --- Build the graph ---

workflow = StateGraph(OrchestrationState)

workflow.add_node("generate", generate_node)
workflow.add_node("review", review_node)
workflow.add_node("aggregate", aggregate_node)
workflow.add_node("decide", decide_node)
workflow.add_node("refine", refine_node)
workflow.add_node("finalize", finalize_node)

workflow.set_entry_point("generate")

workflow.add_edge("generate", "review")
workflow.add_edge("review", "aggregate")
workflow.add_edge("aggregate", "decide")

workflow.add_conditional_edges(
    "decide",
    _route_after_decide,
    {
        "refine": "refine",
        "finalize": "finalize",
    },
)

workflow.add_edge("refine", "generate")
workflow.add_edge("finalize", END)

graph = workflow.compile()


# --- Entry point ---


def _split_roster(agents: list[Agent]) -> tuple[Implementer, list[Agent]]:
    implementers = [a for a in agents if isinstance(a, Implementer)]
    if len(implementers) != 1:
        raise ConfigurationError(
            f"Exactly one Implementer is required, got {len(implementers)}."
        )
    reviewers = [a for a in agents if not isinstance(a, Implementer)]
    names = [a.name for a in reviewers]
    if len(names) != len(set(names)):
        raise ConfigurationError(f"Reviewer names must be unique: {names}")
    return implementers[0], reviewers


def orchestrate(
    task: Task,
    context: Context,
    max_iterations: int,
    per_agent_timeout: float | timedelta,
    *,
    agents: list[Agent] | None = None,
    backend=None,
    cancel_token: CancellationToken | None = None,
) -> OrchestrationResult:
    """Run the generate/review loop until convergence, exhaustion or cancellation.

    Raises ConfigurationError before anything runs if the inputs are invalid.
    Otherwise always returns a complete OrchestrationResult; callers must
    check ``termination_reason`` rather than assume success.
    """
    validate_task(task)
    validate_context(context)
    validate_task_context(task, context)
    max_iterations = validate_max_iterations(max_iterations)
    timeout = validate_timeout(per_agent_timeout)

    if agents is None:
        config = get_config()
        agents = build_roster(config, backend if backend is not None else build_backend(config))
    implementer, reviewers = _split_roster(agents)

    state: OrchestrationState = {
        "task": task,
        "context": context,
        "max_iterations": max_iterations,
        "iteration": 0,
        "candidate": None,
        "round_results": [],
        "feedback": None,
        "decision": None,
        "trail": [],
        "termination_reason": None,
    }
    run_config: RunnableConfig = {
        "configurable": {
            "implementer": implementer,
            "reviewers": reviewers,
            "timeout": timeout,
            "cancel_token": cancel_token,
        },
        "recursion_limit": max_iterations * _STEPS_PER_ROUND + 5,
    }

    logger.info(
        "Starting run: %d reviewer(s), max %d iteration(s), %gs per agent.",
        len(reviewers), max_iterations, timeout,
    )

    last = state
    try:
        for values in graph.stream(state, run_config, stream_mode="values"):
            last = values
    except CancellationRequested as exc:
        logger.info("Run cancelled after %d round(s): %s", len(last["trail"]), exc)
        trail = last["trail"]
        # Report the last candidate that was actually reviewed
        candidate = trail[-1].candidate if trail else last.get("candidate")
        return assemble_result(candidate, trail, TerminationReason.CANCELLED, error=str(exc) or None)
    except GenerationError as exc:
        logger.error("Implementer could not produce a candidate: %s", exc)
        return assemble_result(
            last.get("candidate"), last["trail"], TerminationReason.FATAL_ERROR, error=str(exc),
        )

    return assemble_result(last["candidate"], last["trail"], last["termination_reason"])
