"""Convergence Policy — decides whether the loop continues after a round."""

from council.models import Decision, FeedbackBundle


def decide(iteration_count: int, max_iterations: int, feedback: FeedbackBundle) -> Decision:
    """Return the decision for the round that was just aggregated.

    ``iteration_count`` is the number of REVIEW rounds completed so far,
    including this one. Exhaustion is checked before convergence, so a clean
    final round still reports STOP_EXHAUSTED.
    """
    if max_iterations < 1:
        raise ValueError("max_iterations must be at least 1.")
    if iteration_count < 1:
        raise ValueError("iteration_count must be at least 1 after a review round.")

    if iteration_count >= max_iterations:
        return Decision.STOP_EXHAUSTED
    if not feedback.blocking:
        return Decision.STOP_CONVERGED
    return Decision.CONTINUE
