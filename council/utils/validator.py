"""Input validation — checks orchestration arguments before graph execution."""

from datetime import timedelta

from council.errors import ConfigurationError
from council.models import Context, Task


def validate_input(description: str) -> str:
    """Validate that a task description is a non-empty string.

    Returns the stripped input on success.
    Raises ConfigurationError if input is empty or whitespace-only.
    """
    if not isinstance(description, str) or not description.strip():
        raise ConfigurationError("Task description must be a non-empty string.")
    return description.strip()


def validate_task(task: Task) -> Task:
    if not isinstance(task, Task):
        raise ConfigurationError(f"Expected a Task, got {type(task).__name__}.")
    validate_input(task.description)
    return task


def validate_context(context: Context) -> Context:
    if not isinstance(context, Context):
        raise ConfigurationError(f"Expected a Context, got {type(context).__name__}.")
    return context


def validate_task_context(task: Task, context: Context) -> None:
    """Raise ConfigurationError if the Task was built around a different Context."""
    if task.context != context:
        raise ConfigurationError("Task.context does not match the context passed to the run.")


def validate_max_iterations(max_iterations: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, int):
        raise ConfigurationError("max_iterations must be an integer.")
    if max_iterations < 1:
        raise ConfigurationError("max_iterations must be at least 1.")
    return max_iterations


def validate_timeout(timeout: float | timedelta) -> float:
    """Return the timeout in seconds. Accepts a number of seconds or a timedelta."""
    if isinstance(timeout, timedelta):
        seconds = timeout.total_seconds()
    elif isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        seconds = float(timeout)
    else:
        raise ConfigurationError("per_agent_timeout must be a number of seconds or a timedelta.")
    if seconds <= 0:
        raise ConfigurationError("per_agent_timeout must be a positive duration.")
    return seconds
