"""Entry point: loads context, runs the council, writes the result."""

import logging
import signal
import sys

from council.cancellation import CancellationToken
from council.config import get_config
from council.context import load_context
from council.errors import ConfigurationError
from council.graph import orchestrate
from council.models import OrchestrationResult, Task
from council.utils.formatter import write_result
from council.utils.validator import validate_input


def _pop_option(args: list[str], flag: str, cast):
    """Remove ``flag VALUE`` from args and return the cast value, or None."""
    if flag not in args:
        return None
    i = args.index(flag)
    if i + 1 >= len(args):
        raise ConfigurationError(f"{flag} expects a value.")
    value = args[i + 1]
    del args[i:i + 2]
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {flag}: {value!r}") from None


def run(
    description: str,
    max_iterations: int | None = None,
    per_agent_timeout: float | None = None,
    cancel_token: CancellationToken | None = None,
) -> OrchestrationResult:
    """Run the full council pipeline on a task description.

    Args:
        description: What the agents should build.
        max_iterations: Override for the loop limit. None uses config default.
        per_agent_timeout: Override for the per-agent timeout in seconds.
    """
    config = get_config()
    validated = validate_input(description)
    context = load_context(config)
    task = Task(description=validated, context=context)

    result = orchestrate(
        task,
        context,
        max_iterations if max_iterations is not None else config.get("max_iterations", 3),
        per_agent_timeout if per_agent_timeout is not None else config.get("per_agent_timeout", 120),
        cancel_token=cancel_token,
    )

    output_path = write_result(result, task)
    print(f"[council] Status: {result.termination_reason.value}")
    print(f"[council] Rounds: {result.rounds}")
    print(f"[council] Output written to: {output_path}")
    return result


def main() -> None:
    """CLI entry point — accepts the task as arguments or from stdin."""
    logging.basicConfig(
        level=logging.INFO, format="[council] %(message)s", stream=sys.stderr,
    )
    args = sys.argv[1:]

    try:
        max_iterations = _pop_option(args, "--max-iterations", int)
        per_agent_timeout = _pop_option(args, "--timeout", float)
    except ConfigurationError as exc:
        print(f"[council] {exc}", file=sys.stderr)
        sys.exit(2)

    if args:
        description = " ".join(args)
    else:
        print("Enter the task (Ctrl+D / Ctrl+Z to submit):")
        description = sys.stdin.read()

    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: token.cancel("interrupted"))

    try:
        result = run(description, max_iterations, per_agent_timeout, cancel_token=token)
    except ConfigurationError as exc:
        print(f"[council] Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    sys.exit(0 if result.converged else 1)


if __name__ == "__main__":
    main()
