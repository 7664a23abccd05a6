"""Tests for formatter: _render_markdown, write_result."""

from unittest.mock import patch

import pytest

from council.aggregator import aggregate
from council.models import (
    AgentFailure,
    AgentRole,
    Candidate,
    Decision,
    FailureReason,
    IterationRecord,
    OrchestrationResult,
    Severity,
    Task,
    TerminationReason,
)
from council.utils.formatter import _render_markdown, _slugify, write_result
from conftest import response


def _result(reason=TerminationReason.CONVERGED, severity=Severity.LOW, with_failure=False):
    results = [
        response("security_reviewer", severity, AgentRole.SECURITY_REVIEWER, text="- Shell out with user input"),
        response("test_designer", Severity.NONE, AgentRole.TEST_DESIGNER, text="Covered", patch_text="describe Stack"),
    ]
    if with_failure:
        results.append(AgentFailure(AgentRole.PERFORMANCE_REVIEWER, "performance_reviewer", FailureReason.TIMEOUT))
    candidate = Candidate(code="class Stack; end")
    decision = Decision.STOP_CONVERGED if reason == TerminationReason.CONVERGED else Decision.STOP_EXHAUSTED
    record = IterationRecord(1, candidate, aggregate(results), decision)
    return OrchestrationResult(
        final_candidate=candidate.with_attachments(tests="describe Stack", documentation="# Stack"),
        iteration_trail=(record,),
        termination_reason=reason,
    )


@pytest.fixture
def stack_task():
    return Task("Implement a Stack class")


# --- _render_markdown (pure function) ---

class TestRenderMarkdown:
    def test_status_and_rounds(self, stack_task):
        md = _render_markdown(_result(), stack_task)
        assert "`converged`" in md
        assert "**Rounds:** 1" in md
        assert "Implement a Stack class" in md

    def test_trail_table_row(self, stack_task):
        md = _render_markdown(_result(), stack_task)
        assert "| 1 | 1 | `low` | — | `stop_converged` |" in md

    def test_latest_feedback_sections(self, stack_task):
        md = _render_markdown(_result(), stack_task)
        assert "## Security Review" in md
        assert "## Test Design" in md
        assert "## Performance Review" not in md

    def test_exhausted_lists_unresolved_findings(self, stack_task):
        md = _render_markdown(_result(TerminationReason.EXHAUSTED, Severity.HIGH), stack_task)
        assert "## Unresolved Findings" in md
        assert "- **[high]** Shell out with user input" in md

    def test_converged_has_no_unresolved_section(self, stack_task):
        md = _render_markdown(_result(), stack_task)
        assert "Unresolved Findings" not in md

    def test_abstentions_listed(self, stack_task):
        md = _render_markdown(_result(with_failure=True), stack_task)
        assert "## Abstentions" in md
        assert "Round 1: **performance_reviewer** (timeout)" in md

    def test_fatal_error_without_candidate(self, stack_task):
        result = OrchestrationResult(None, (), TerminationReason.FATAL_ERROR, error="backend down")
        md = _render_markdown(result, stack_task)
        assert "`fatal_error`" in md
        assert "**Error:** backend down" in md
        assert "Iteration Trail" not in md


class TestSlugify:
    def test_lowercase_words(self):
        assert _slugify("Implement a Stack class!") == "implement-a-stack-class"

    def test_empty_falls_back(self):
        assert _slugify("!!!") == "result"


# --- write_result (file I/O) ---

class TestWriteResult:
    @patch("council.utils.formatter.get_config")
    def test_writes_report_and_artifacts(self, mock_gc, tmp_path, stack_task):
        mock_gc.return_value = {"output_dir": str(tmp_path), "target_language": "Ruby"}

        output_dir = write_result(_result(), stack_task)

        assert output_dir.parent == tmp_path
        assert (output_dir / "REPORT.md").read_text(encoding="utf-8").startswith("# Council Run Report")
        assert (output_dir / "main.rb").read_text(encoding="utf-8") == "class Stack; end"
        assert (output_dir / "tests.rb").read_text(encoding="utf-8") == "describe Stack"
        assert (output_dir / "DOCUMENTATION.md").exists()

    @patch("council.utils.formatter.get_config")
    def test_does_not_overwrite_previous_run(self, mock_gc, tmp_path, stack_task):
        mock_gc.return_value = {"output_dir": str(tmp_path)}
        first = write_result(_result(), stack_task)
        second = write_result(_result(), stack_task)
        assert first != second
        assert second.name == "implement-a-stack-class (2)"

    @patch("council.utils.formatter.get_config")
    def test_unknown_language_uses_txt(self, mock_gc, tmp_path, stack_task):
        mock_gc.return_value = {"output_dir": str(tmp_path), "target_language": "COBOL"}
        output_dir = write_result(_result(), stack_task)
        assert (output_dir / "main.txt").exists()

    @patch("council.utils.formatter.get_config")
    def test_no_candidate_writes_report_only(self, mock_gc, tmp_path, stack_task):
        mock_gc.return_value = {"output_dir": str(tmp_path / "nested")}
        result = OrchestrationResult(None, (), TerminationReason.CANCELLED)
        output_dir = write_result(result, stack_task)
        assert [p.name for p in output_dir.iterdir()] == ["REPORT.md"]
