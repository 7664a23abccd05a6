"""Tests for council.aggregator.aggregate."""

import itertools

from council.aggregator import aggregate
from council.models import AgentFailure, AgentRole, FailureReason, Severity
from conftest import response


def _round():
    return [
        response("docs", Severity.LOW, AgentRole.DOCUMENTATION_WRITER, text="- README lacks usage"),
        response("perf", Severity.MEDIUM, AgentRole.PERFORMANCE_REVIEWER, text="- O(n^2) scan in pop"),
        response("security", Severity.HIGH, AgentRole.SECURITY_REVIEWER, text="- eval on user input"),
        AgentFailure(AgentRole.TEST_DESIGNER, "tests", FailureReason.TIMEOUT, "no response within 5s"),
    ]


class TestSeverityAndBlocking:
    def test_highest_severity_is_max(self):
        bundle = aggregate(_round())
        assert bundle.highest_severity == Severity.HIGH
        assert bundle.blocking is True

    def test_medium_is_not_blocking(self):
        bundle = aggregate([
            response("a", Severity.MEDIUM),
            response("b", Severity.LOW),
        ])
        assert bundle.highest_severity == Severity.MEDIUM
        assert bundle.blocking is False

    def test_critical_blocks(self):
        assert aggregate([response("a", Severity.CRITICAL)]).blocking is True

    def test_empty_round_is_none(self):
        bundle = aggregate([])
        assert bundle.highest_severity == Severity.NONE
        assert bundle.blocking is False
        assert bundle.responses == ()


class TestAbstentions:
    def test_failure_recorded_as_abstained_not_dropped(self):
        bundle = aggregate(_round())
        assert len(bundle.responses) == 4
        (abstained,) = bundle.abstentions
        assert abstained.agent_name == "tests"
        assert abstained.failure_reason == FailureReason.TIMEOUT
        assert abstained.severity == Severity.NONE

    def test_all_abstained_is_non_blocking(self):
        bundle = aggregate([
            AgentFailure(AgentRole.SECURITY_REVIEWER, "security", FailureReason.BACKEND_ERROR),
            AgentFailure(AgentRole.TEST_DESIGNER, "tests", FailureReason.MALFORMED_OUTPUT),
        ])
        assert bundle.highest_severity == Severity.NONE
        assert bundle.blocking is False
        assert len(bundle.abstentions) == 2

    def test_response_for_skips_abstained(self):
        bundle = aggregate(_round())
        assert bundle.response_for(AgentRole.TEST_DESIGNER) is None
        assert bundle.response_for(AgentRole.SECURITY_REVIEWER).agent_name == "security"


class TestFindings:
    def test_grouped_highest_first(self):
        bundle = aggregate(_round())
        assert [s for s, _ in bundle.findings] == [Severity.HIGH, Severity.MEDIUM, Severity.LOW]
        assert bundle.findings_at(Severity.HIGH) == ("eval on user input",)

    def test_duplicates_merged_at_highest_severity(self):
        bundle = aggregate([
            response("security", Severity.HIGH, text="- Missing input validation"),
            response("custom", Severity.LOW, AgentRole.CUSTOM, text="* missing   input validation"),
        ])
        assert bundle.findings_at(Severity.HIGH) == ("Missing input validation",)
        assert bundle.findings_at(Severity.LOW) == ()

    def test_none_severity_findings_omitted(self):
        bundle = aggregate([response("a", Severity.NONE, text="Looks good")])
        assert bundle.findings == ()


class TestDeterminism:
    def test_any_permutation_gives_identical_bundle(self):
        results = _round() + [
            response("custom", Severity.HIGH, AgentRole.CUSTOM, text="- eval on user input\n- no logging"),
        ]
        expected = aggregate(results)
        for permutation in itertools.permutations(results):
            assert aggregate(permutation) == expected

    def test_responses_sorted_by_agent_name(self):
        bundle = aggregate(list(reversed(_round())))
        assert [r.agent_name for r in bundle.responses] == ["docs", "perf", "security", "tests"]
