"""Exceptions raised by the orchestration core.

Agent failures are not exceptions here: a failing reviewer produces an
``AgentFailure`` value that is folded into the round's feedback.
"""


class CouncilError(Exception):
    """Base class for all council errors."""


class ConfigurationError(CouncilError):
    """Raised before orchestration starts when inputs or context are unusable."""


class BackendError(CouncilError):
    """Raised by a backend when text generation fails."""


class BackendTimeout(BackendError):
    """Raised when the backend did not answer within the allotted time."""


class GenerationError(CouncilError):
    """Raised when the Implementer cannot produce a usable candidate."""

    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output


class CancellationRequested(CouncilError):
    """Raised inside the graph when the run's cancellation token fires.

    Never escapes ``orchestrate``; it is turned into a ``cancelled`` result.
    """
