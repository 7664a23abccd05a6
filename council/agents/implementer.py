"""Implementer Agent — writes the candidate and refines it from review feedback.

Required output schema:
{
  "code": "string — the complete source, never a diff",
  "summary": "string — what changed and which findings it addresses"
}
"""

import logging

from council.agents.base import Agent, RETRY_NOTE
from council.errors import BackendError, GenerationError
from council.models import (
    AgentRole,
    Candidate,
    Context,
    FeedbackBundle,
    Severity,
    Task,
)
from council.utils.parsing import parse_json_object

logger = logging.getLogger(__name__)

# Patches from these roles are attachments, not changes to the code
_ATTACHMENT_ROLES = {AgentRole.TEST_DESIGNER, AgentRole.DOCUMENTATION_WRITER}

SYSTEM_PROMPT = """\
You are the Implementer agent in a multi-role review council.

Your job is to write idiomatic, production-ready {language} code for the task below. \
Reviewers for tests, security, performance and documentation will read your code and \
send findings back to you. When findings are present, rewrite the code so that every \
high and critical finding is resolved, and address lower severities where it is cheap.

You MUST respond with valid JSON matching this exact schema:
{{
  "code": "string — the COMPLETE source code, never a diff or an excerpt",
  "summary": "string — one short paragraph on what you built or changed"
}}

Rules:
- Follow the coding standards in the context when they are given.
- Keep public names stable between revisions unless a finding requires a rename.
- Respond ONLY with the JSON object. No markdown fences, no commentary.
"""


def _validate_response(data: dict) -> dict:
    """Validate and normalize the Implementer response."""
    code = data.get("code")
    if not isinstance(code, str) or not code.strip():
        raise ValueError("Implementer response missing non-empty 'code' field.")
    summary = data.get("summary", "")
    if not isinstance(summary, str):
        summary = str(summary)
    data["summary"] = summary.strip()
    return data


def _feedback_block(feedback: FeedbackBundle) -> str:
    """Render the prior round's findings, highest severity first."""
    lines = [f"## Review Findings (highest severity: {feedback.highest_severity.value})"]
    for severity, texts in feedback.findings:
        if severity == Severity.NONE:
            continue
        lines.append(f"\n### {severity.value.upper()}")
        for text in texts:
            lines.append(f"- {text}")

    for response in feedback.responses:
        if response.abstained or not response.suggested_patch:
            continue
        if response.agent_role in _ATTACHMENT_ROLES:
            continue
        lines.append(
            f"\n### Suggested patch from {response.agent_name}\n"
            f"```\n{response.suggested_patch}\n```"
        )
    return "\n".join(lines)


class Implementer(Agent):
    role = AgentRole.IMPLEMENTER
    default_name = "implementer"
    SYSTEM_PROMPT = SYSTEM_PROMPT

    def build_generation_prompt(
        self,
        task: Task,
        context: Context,
        prior_feedback: FeedbackBundle | None = None,
        prior_candidate: Candidate | None = None,
    ) -> str:
        parts = [self.system_prompt()]
        context_block = self._context_block(context)
        if context_block:
            parts.append(context_block)
        parts.append(f"## Task\n{task.description}")
        if prior_candidate is not None:
            parts.append(
                f"## Current Code (version {prior_candidate.version})\n"
                f"```{self.target_language.lower()}\n{prior_candidate.code}\n```"
            )
        if prior_feedback is not None:
            parts.append(_feedback_block(prior_feedback))
        return "\n\n".join(parts)

    def generate_or_refine(
        self,
        task: Task,
        context: Context,
        prior_feedback: FeedbackBundle | None = None,
        prior_candidate: Candidate | None = None,
        timeout: float | None = None,
    ) -> Candidate:
        """Produce the first candidate, or the next version of ``prior_candidate``.

        Raises GenerationError if no valid candidate could be produced.
        """
        prompt = self.build_generation_prompt(task, context, prior_feedback, prior_candidate)

        raw = ""
        try:
            raw = self.backend.generate(prompt, self.max_tokens, timeout=timeout)
            try:
                data = _validate_response(parse_json_object(raw))
            except ValueError as exc:
                # Re-prompt once before raising
                logger.info("Implementer output rejected (%s); re-prompting.", exc)
                retry_prompt = (
                    f"{prompt}\n\n## Your Previous Response\n{raw}\n\n"
                    + RETRY_NOTE.format(error=exc)
                )
                raw = self.backend.generate(retry_prompt, self.max_tokens, timeout=timeout)
                data = _validate_response(parse_json_object(raw))
        except BackendError as exc:
            raise GenerationError(f"Backend failed during generation: {exc}") from exc
        except ValueError as exc:
            raise GenerationError(f"Implementer output invalid: {exc}", raw_output=raw) from exc
        except Exception as exc:
            # Backends outside ChatModelBackend may raise anything
            raise GenerationError(f"Backend failed during generation: {exc!r}") from exc

        if prior_candidate is None:
            return Candidate(code=data["code"], summary=data["summary"])
        return prior_candidate.revise(data["code"], summary=data["summary"])
