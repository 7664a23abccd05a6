"""Agent base — one stateless call to the backend per evaluation.

Every agent answers with the same JSON schema:
{
  "severity": "none | low | medium | high | critical",
  "findings": "string",
  "suggested_patch": "string or null"
}

Severity is read from the structured field only, never inferred from the
narrative text. Failures are returned as AgentFailure values, not raised.
"""

import json
import logging

from council.errors import BackendError, BackendTimeout
from council.models import (
    AgentFailure,
    AgentResponse,
    AgentRole,
    Candidate,
    Context,
    FailureReason,
    Severity,
    Task,
)
from council.utils.parsing import parse_json_object

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096
DEFAULT_LANGUAGE = "Ruby"

RESPONSE_SCHEMA = """\
You MUST respond with valid JSON matching this exact schema:
{
  "severity": "none" or "low" or "medium" or "high" or "critical",
  "findings": "string describing what you found, one finding per line",
  "suggested_patch": "string with the concrete replacement text, or null"
}

Severity definitions:
- "critical": the artifact is broken or dangerous as written (data loss, remote code \
execution, wrong results on the main path). Must be fixed before release.
- "high": a real defect or gap the implementation cannot ship with.
- "medium": a noticeable weakness that should be fixed but does not block.
- "low": polish, naming, style.
- "none": nothing to report.

Rules:
- severity is the highest severity among your findings.
- Use "high" or "critical" only for issues that block release.
- Respond ONLY with the JSON object. No markdown fences, no commentary.
"""

RETRY_NOTE = (
    "Your previous response did not match the required JSON schema ({error}). "
    "Please try again with ONLY the raw JSON object — "
    "no markdown fences, no commentary."
)


def _validate_response(data: dict) -> dict:
    """Validate and normalize a review response. Raises ValueError on schema violations."""
    if "severity" not in data:
        raise ValueError("Response missing 'severity' field.")
    data["severity"] = Severity.parse(data["severity"])

    if "findings" not in data:
        raise ValueError("Response missing 'findings' field.")
    findings = data["findings"]
    # Tolerate a list of findings
    if isinstance(findings, list):
        findings = "\n".join(str(f).strip() for f in findings if str(f).strip())
    if not isinstance(findings, str):
        raise ValueError("'findings' must be a string.")
    data["findings"] = findings.strip()

    patch = data.get("suggested_patch")
    if patch is not None and not isinstance(patch, str):
        raise ValueError("'suggested_patch' must be a string or null.")
    data["suggested_patch"] = patch if patch and patch.strip() else None
    return data


class Agent:
    """Base class for all agent variants.

    Subclasses set ``role``, ``default_name`` and ``SYSTEM_PROMPT``.
    """

    role: AgentRole
    default_name: str = ""
    SYSTEM_PROMPT: str = ""

    def __init__(
        self,
        backend,
        name: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        target_language: str = DEFAULT_LANGUAGE,
    ):
        self.backend = backend
        self.name = name or self.default_name or self.role.value
        self.max_tokens = max_tokens
        self.target_language = target_language

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def system_prompt(self) -> str:
        return self.SYSTEM_PROMPT.format(language=self.target_language)

    def _context_block(self, context: Context) -> str:
        parts = []
        for heading, text in context.sections():
            parts.append(f"## {heading}\n{text.strip()}")
        return "\n\n".join(parts)

    def build_prompt(self, candidate: Candidate, task: Task, context: Context) -> str:
        parts = [self.system_prompt(), RESPONSE_SCHEMA]
        context_block = self._context_block(context)
        if context_block:
            parts.append(context_block)
        parts.append(f"## Task\n{task.description}")
        parts.append(
            f"## Candidate (version {candidate.version})\n"
            f"```{self.target_language.lower()}\n{candidate.code}\n```"
        )
        return "\n\n".join(parts)

    def _to_response(self, data: dict) -> AgentResponse:
        data = _validate_response(data)
        return AgentResponse(
            agent_role=self.role,
            agent_name=self.name,
            narrative_text=data["findings"],
            severity=data["severity"],
            suggested_patch=data["suggested_patch"],
        )

    def _failure(self, reason: FailureReason, detail: str) -> AgentFailure:
        logger.warning("%s failed (%s): %s", self.name, reason.value, detail)
        return AgentFailure(self.role, self.name, reason, detail)

    def evaluate(
        self, candidate: Candidate, task: Task, context: Context, timeout: float,
    ) -> AgentResponse | AgentFailure:
        """Review ``candidate`` and return a structured response or a failure."""
        if candidate is None or not candidate.code.strip():
            raise ValueError("Candidate must be non-empty.")
        if not task.description.strip():
            raise ValueError("Task must be non-empty.")
        if timeout <= 0:
            raise ValueError("Timeout must be a positive duration.")

        prompt = self.build_prompt(candidate, task, context)
        try:
            raw = self.backend.generate(prompt, self.max_tokens, timeout=timeout)
            try:
                return self._to_response(parse_json_object(raw))
            except ValueError as exc:
                # Re-prompt once before giving up
                retry_prompt = (
                    f"{prompt}\n\n## Your Previous Response\n{raw}\n\n"
                    + RETRY_NOTE.format(error=exc)
                )
                raw = self.backend.generate(retry_prompt, self.max_tokens, timeout=timeout)
                return self._to_response(parse_json_object(raw))
        except BackendTimeout as exc:
            return self._failure(FailureReason.TIMEOUT, str(exc))
        except BackendError as exc:
            return self._failure(FailureReason.BACKEND_ERROR, str(exc))
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError
            detail = str(exc)
            if isinstance(exc, json.JSONDecodeError):
                detail = f"not valid JSON ({exc.msg})"
            return self._failure(FailureReason.MALFORMED_OUTPUT, detail)
