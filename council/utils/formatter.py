"""Output Formatter — renders an OrchestrationResult as Markdown and writes the artifacts."""

import re
from pathlib import Path

from council.config import PROJECT_ROOT, get_config
from council.models import (
    AgentRole,
    OrchestrationResult,
    Severity,
    Task,
    TerminationReason,
)

# File extension for the generated code, keyed by lower-case language name
_EXTENSIONS = {
    "ruby": "rb",
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "php": "php",
    "perl": "pl",
    "lua": "lua",
    "elixir": "ex",
}

_STATUS_LINES = {
    TerminationReason.CONVERGED: "Converged — no high or critical findings remain.",
    TerminationReason.EXHAUSTED: "Stopped at the iteration limit — review the unresolved findings below.",
    TerminationReason.CANCELLED: "Cancelled before completion.",
    TerminationReason.FATAL_ERROR: "Failed — the implementer could not produce a candidate.",
}

_FEEDBACK_HEADINGS = {
    AgentRole.TEST_DESIGNER: "Test Design",
    AgentRole.DOCUMENTATION_WRITER: "Documentation",
    AgentRole.SECURITY_REVIEWER: "Security Review",
    AgentRole.PERFORMANCE_REVIEWER: "Performance Review",
}


def _slugify(text: str, max_words: int = 6) -> str:
    words = re.findall(r"[a-z0-9]+", text.lower())[:max_words]
    return "-".join(words) or "result"


def _render_markdown(result: OrchestrationResult, task: Task) -> str:
    """Convert the result into a Markdown run report."""
    lines = []

    lines.append("# Council Run Report")
    lines.append("")
    lines.append("## Task")
    lines.append("")
    lines.append(task.description)
    lines.append("")

    lines.append("## Outcome")
    lines.append("")
    lines.append(f"- **Status:** `{result.termination_reason.value}` — "
                 f"{_STATUS_LINES[result.termination_reason]}")
    lines.append(f"- **Rounds:** {result.rounds}")
    if result.final_candidate is not None:
        lines.append(f"- **Final version:** {result.final_candidate.version}")
    if result.error:
        lines.append(f"- **Error:** {result.error}")
    lines.append("")

    # Iteration trail
    if result.iteration_trail:
        lines.append("## Iteration Trail")
        lines.append("")
        lines.append("| Round | Version | Highest severity | Abstained | Decision |")
        lines.append("|-------|---------|------------------|-----------|----------|")
        for record in result.iteration_trail:
            abstained = ", ".join(r.agent_name for r in record.feedback.abstentions) or "—"
            lines.append(
                f"| {record.index} | {record.candidate.version} | "
                f"`{record.feedback.highest_severity.value}` | {abstained} | "
                f"`{record.decision.value}` |"
            )
        lines.append("")

    # Latest feedback per concern
    latest = result.latest_feedback
    for role, heading in _FEEDBACK_HEADINGS.items():
        response = latest.get(role)
        if response is None:
            continue
        lines.append(f"## {heading}")
        lines.append("")
        lines.append(f"*Severity: `{response.severity.value}` ({response.agent_name})*")
        lines.append("")
        if response.narrative_text:
            lines.append(response.narrative_text)
            lines.append("")

    # Unresolved findings from the last round
    if result.iteration_trail and result.termination_reason != TerminationReason.CONVERGED:
        last = result.iteration_trail[-1].feedback
        open_findings = [(s, texts) for s, texts in last.findings if s != Severity.NONE]
        if open_findings:
            lines.append("## Unresolved Findings")
            lines.append("")
            for severity, texts in open_findings:
                for text in texts:
                    lines.append(f"- **[{severity.value}]** {text}")
            lines.append("")

    # Abstentions are part of the audit trail
    abstentions = [
        (record.index, response)
        for record in result.iteration_trail
        for response in record.feedback.abstentions
    ]
    if abstentions:
        lines.append("## Abstentions")
        lines.append("")
        for index, response in abstentions:
            reason = response.failure_reason.value if response.failure_reason else "unknown"
            lines.append(f"- Round {index}: **{response.agent_name}** ({reason})")
        lines.append("")

    return "\n".join(lines)


def write_result(result: OrchestrationResult, task: Task) -> Path:
    """Write the report and the final artifacts to a new directory under output_dir.

    Returns the Path of the directory that was written.
    """
    config = get_config()
    base_dir = PROJECT_ROOT / config.get("output_dir", "./output")
    base_dir.mkdir(parents=True, exist_ok=True)

    # Find a non-conflicting directory name
    stem = _slugify(task.description)
    output_dir = base_dir / stem
    counter = 1
    while output_dir.exists():
        counter += 1
        output_dir = base_dir / f"{stem} ({counter})"
    output_dir.mkdir()

    (output_dir / "REPORT.md").write_text(_render_markdown(result, task), encoding="utf-8")

    candidate = result.final_candidate
    if candidate is not None:
        language = str(config.get("target_language", "ruby")).lower()
        ext = _EXTENSIONS.get(language, "txt")
        (output_dir / f"main.{ext}").write_text(candidate.code, encoding="utf-8")
        if candidate.tests:
            (output_dir / f"tests.{ext}").write_text(candidate.tests, encoding="utf-8")
        if candidate.documentation:
            (output_dir / "DOCUMENTATION.md").write_text(candidate.documentation, encoding="utf-8")

    return output_dir
