"""
Domain models for the review council.

Every value produced during a run is immutable (frozen dataclasses): a
refinement creates a new Candidate version and the iteration trail is only
ever extended, which keeps the audit trail intact.
"""

from dataclasses import dataclass, field, replace
from enum import Enum


# =============================================================================
# SEVERITY
# =============================================================================


class Severity(Enum):
    """Fixed five-value severity scale, ordered none < low < medium < high < critical."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    @property
    def blocking(self) -> bool:
        return self in (Severity.HIGH, Severity.CRITICAL)

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value) -> "Severity":
        """Parse a severity from agent output. Only the exact scale values are accepted."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Severity must be a string, got {type(value).__name__}.")
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in _SEVERITY_ORDER)
            raise ValueError(f"Invalid severity '{value}'. Must be one of: {valid}") from None


_SEVERITY_ORDER = (
    Severity.NONE,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
)


# =============================================================================
# INPUTS
# =============================================================================


@dataclass(frozen=True)
class Context:
    """Read-only documents loaded once per run."""

    standards: str = ""  # style / tech-stack rules
    product: str = ""  # mission / architecture notes
    specs: str = ""  # current feature requirements

    @classmethod
    def empty(cls) -> "Context":
        return cls()

    def sections(self) -> list[tuple[str, str]]:
        """Return the non-empty documents as (heading, text) pairs."""
        pairs = [
            ("Coding Standards", self.standards),
            ("Product Context", self.product),
            ("Current Specs", self.specs),
        ]
        return [(heading, text) for heading, text in pairs if text.strip()]


@dataclass(frozen=True)
class Task:
    """The work requested for one orchestration run."""

    description: str
    context: Context = field(default_factory=Context)


# =============================================================================
# CANDIDATE
# =============================================================================


@dataclass(frozen=True)
class Candidate:
    """One version of the work-product under refinement."""

    code: str
    tests: str = ""
    documentation: str = ""
    version: int = 1
    summary: str = ""  # Implementer's note on what changed

    def revise(self, code: str, summary: str = "") -> "Candidate":
        """Return the next version with new code. Attachments are not carried over."""
        return Candidate(code=code, version=self.version + 1, summary=summary)

    def with_attachments(self, tests: str | None = None, documentation: str | None = None) -> "Candidate":
        """Return a copy with test and documentation text attached (same version)."""
        return replace(
            self,
            tests=self.tests if tests is None else tests,
            documentation=self.documentation if documentation is None else documentation,
        )


# =============================================================================
# AGENT OUTPUT
# =============================================================================


class AgentRole(Enum):
    """Closed set of agent variants."""

    IMPLEMENTER = "implementer"
    TEST_DESIGNER = "test_designer"
    SECURITY_REVIEWER = "security_reviewer"
    PERFORMANCE_REVIEWER = "performance_reviewer"
    DOCUMENTATION_WRITER = "documentation_writer"
    CUSTOM = "custom"


class FailureReason(Enum):
    TIMEOUT = "timeout"
    BACKEND_ERROR = "backend_error"
    MALFORMED_OUTPUT = "malformed_output"


@dataclass(frozen=True)
class AgentResponse:
    """Structured result of one agent call."""

    agent_role: AgentRole
    agent_name: str
    narrative_text: str
    severity: Severity
    suggested_patch: str | None = None
    abstained: bool = False
    failure_reason: FailureReason | None = None


@dataclass(frozen=True)
class AgentFailure:
    """A single agent call that produced no usable response."""

    agent_role: AgentRole
    agent_name: str
    reason: FailureReason
    detail: str = ""

    def to_response(self) -> AgentResponse:
        """Record the failure as an abstained response so it stays visible in the trail."""
        text = f"Agent abstained ({self.reason.value})"
        if self.detail:
            text += f": {self.detail}"
        return AgentResponse(
            agent_role=self.agent_role,
            agent_name=self.agent_name,
            narrative_text=text,
            severity=Severity.NONE,
            abstained=True,
            failure_reason=self.reason,
        )


# =============================================================================
# ROUND FEEDBACK
# =============================================================================


@dataclass(frozen=True)
class FeedbackBundle:
    """Merged output of one review round."""

    responses: tuple[AgentResponse, ...]
    highest_severity: Severity
    blocking: bool
    # (severity, deduplicated findings) pairs, highest severity first
    findings: tuple[tuple[Severity, tuple[str, ...]], ...] = ()

    @property
    def abstentions(self) -> tuple[AgentResponse, ...]:
        return tuple(r for r in self.responses if r.abstained)

    def findings_at(self, severity: Severity) -> tuple[str, ...]:
        for level, texts in self.findings:
            if level == severity:
                return texts
        return ()

    def response_for(self, role: AgentRole) -> AgentResponse | None:
        """Return the first non-abstained response from an agent with the given role."""
        for response in self.responses:
            if response.agent_role == role and not response.abstained:
                return response
        return None


class Decision(Enum):
    CONTINUE = "continue"
    STOP_CONVERGED = "stop_converged"
    STOP_EXHAUSTED = "stop_exhausted"


@dataclass(frozen=True)
class IterationRecord:
    """One completed review round. Records are appended, never edited."""

    index: int  # 1-based round number
    candidate: Candidate  # snapshot that was reviewed
    feedback: FeedbackBundle
    decision: Decision


# =============================================================================
# RESULT
# =============================================================================


class TerminationReason(Enum):
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    FATAL_ERROR = "fatal_error"


REPORTED_ROLES = (
    AgentRole.TEST_DESIGNER,
    AgentRole.DOCUMENTATION_WRITER,
    AgentRole.SECURITY_REVIEWER,
    AgentRole.PERFORMANCE_REVIEWER,
)


@dataclass(frozen=True)
class OrchestrationResult:
    """Final outcome of a run. Callers must check ``termination_reason``."""

    final_candidate: Candidate | None
    iteration_trail: tuple[IterationRecord, ...]
    termination_reason: TerminationReason
    error: str | None = None

    @property
    def converged(self) -> bool:
        return self.termination_reason == TerminationReason.CONVERGED

    @property
    def rounds(self) -> int:
        return len(self.iteration_trail)

    @property
    def latest_feedback(self) -> dict[AgentRole, AgentResponse]:
        """Most recent non-abstained test, documentation, security and performance feedback."""
        latest: dict[AgentRole, AgentResponse] = {}
        for record in reversed(self.iteration_trail):
            for role in REPORTED_ROLES:
                if role in latest:
                    continue
                response = record.feedback.response_for(role)
                if response is not None:
                    latest[role] = response
        return latest
