"""Result Assembler — packages the final candidate and the full iteration trail."""

from collections.abc import Sequence

from council.models import (
    AgentRole,
    Candidate,
    IterationRecord,
    OrchestrationResult,
    TerminationReason,
)


def _attach_deliverables(candidate: Candidate, trail: Sequence[IterationRecord]) -> Candidate:
    """Attach the latest tests and documentation produced for the final version."""
    if not trail:
        return candidate
    last = trail[-1]
    if last.candidate.version != candidate.version:
        return candidate

    tests = last.feedback.response_for(AgentRole.TEST_DESIGNER)
    docs = last.feedback.response_for(AgentRole.DOCUMENTATION_WRITER)
    return candidate.with_attachments(
        tests=tests.suggested_patch if tests and tests.suggested_patch else None,
        documentation=docs.suggested_patch if docs and docs.suggested_patch else None,
    )


def assemble_result(
    candidate: Candidate | None,
    trail: Sequence[IterationRecord],
    reason: TerminationReason,
    error: str | None = None,
) -> OrchestrationResult:
    """Build the OrchestrationResult. Earlier rounds are always kept."""
    final = _attach_deliverables(candidate, trail) if candidate is not None else None
    return OrchestrationResult(
        final_candidate=final,
        iteration_trail=tuple(trail),
        termination_reason=reason,
        error=error,
    )
