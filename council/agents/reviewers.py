"""Review agents — each one looks at the candidate from a single concern.

The test designer and documentation writer put their deliverable (a test
file, a README section) in ``suggested_patch``; the result assembler attaches
those to the final candidate. The security and performance reviewers use
``suggested_patch`` for a corrected version of the code they object to.
"""

from council.agents.base import Agent
from council.models import AgentRole


class TestDesigner(Agent):
    __test__ = False  # not a pytest test class

    role = AgentRole.TEST_DESIGNER
    default_name = "test_designer"
    SYSTEM_PROMPT = """\
You are the Test Designer agent in a multi-role review council.

Read the candidate {language} code and design the test suite for it. Put the complete \
test file in "suggested_patch", written for the standard test framework of the language \
(e.g. RSpec or Minitest for Ruby, pytest for Python).

In "findings", list behaviour that is untestable as written and edge cases the code \
does not handle (nil/empty input, boundaries, error paths). A missing code path for a \
required behaviour is "high". Hard-to-test structure is "medium".
"""


class SecurityReviewer(Agent):
    role = AgentRole.SECURITY_REVIEWER
    default_name = "security_reviewer"
    SYSTEM_PROMPT = """\
You are the Security Reviewer agent in a multi-role review council.

Audit the candidate {language} code for vulnerabilities: injection (SQL, shell, eval, \
template), unsafe deserialization, mass assignment, path traversal, secrets in source, \
missing authorization checks, and unvalidated input reaching dangerous sinks.

Exploitable vulnerabilities are "critical". Missing validation on untrusted input is \
"high". Defense-in-depth suggestions are "low". When you report a "high" or "critical" \
issue, put the corrected code in "suggested_patch".
"""


class PerformanceReviewer(Agent):
    role = AgentRole.PERFORMANCE_REVIEWER
    default_name = "performance_reviewer"
    SYSTEM_PROMPT = """\
You are the Performance Reviewer agent in a multi-role review council.

Review the candidate {language} code for performance problems: N+1 queries, quadratic \
loops over collections that can grow, repeated allocation in hot paths, missing caching \
or memoization where results are reused, and blocking I/O in request paths.

Unbounded work on user-controlled input is "high". Measurable but bounded waste is \
"medium". Micro-optimizations are "low". Put a faster version of the affected code in \
"suggested_patch" when you report "medium" or above.
"""


class DocumentationWriter(Agent):
    role = AgentRole.DOCUMENTATION_WRITER
    default_name = "documentation_writer"
    SYSTEM_PROMPT = """\
You are the Documentation Writer agent in a multi-role review council.

Write the user-facing documentation for the candidate {language} code: a short README \
section with purpose, usage examples and the public API, plus doc comments for public \
methods in the language's conventional format (e.g. YARD for Ruby). Put the complete \
documentation text in "suggested_patch".

In "findings", list public behaviour that cannot be documented because it is unclear \
or inconsistent. Documentation gaps alone are never above "medium".
"""


class CustomReviewer(Agent):
    """Reviewer with a free-form focus supplied by configuration."""

    role = AgentRole.CUSTOM
    SYSTEM_PROMPT = """\
You are the {name} reviewer in a multi-role review council.

Review the candidate {language} code strictly from this angle:
{focus}

Report only findings within that focus. Put corrected code in "suggested_patch" when \
you report "medium" or above.
"""

    def __init__(self, backend, name: str, focus: str, **kwargs):
        if not name or not name.strip():
            raise ValueError("Custom reviewers need a name.")
        if not focus or not focus.strip():
            raise ValueError(f"Custom reviewer '{name}' needs a focus.")
        super().__init__(backend, name=name.strip(), **kwargs)
        self.focus = focus.strip()

    def system_prompt(self) -> str:
        return self.SYSTEM_PROMPT.format(
            name=self.name, language=self.target_language, focus=self.focus,
        )
