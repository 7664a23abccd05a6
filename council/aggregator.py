"""Feedback Aggregator — merges one round of agent results into a FeedbackBundle.

The output depends only on the set of results, never on the order in which
concurrent reviews finished.
"""

from collections.abc import Iterable

from council.models import AgentFailure, AgentResponse, FeedbackBundle, Severity


def _normalize(text: str) -> str:
    return " ".join(text.split()).casefold()


def _split_findings(text: str) -> list[str]:
    """One finding per non-empty line, with list markers removed."""
    findings = []
    for line in text.splitlines():
        line = line.strip().lstrip("-*•").strip()
        if line:
            findings.append(line)
    return findings


def aggregate(results: Iterable[AgentResponse | AgentFailure]) -> FeedbackBundle:
    """Merge responses and failures from one REVIEW round.

    Failures become abstained responses (severity none) and stay in the
    bundle. Abstentions never count toward ``highest_severity``.
    """
    responses = [r.to_response() if isinstance(r, AgentFailure) else r for r in results]
    responses.sort(key=lambda r: (
        r.agent_name, r.agent_role.value, r.abstained,
        r.severity.rank, r.narrative_text, r.suggested_patch or "",
    ))

    voting = [r for r in responses if not r.abstained]
    highest = max((r.severity for r in voting), key=lambda s: s.rank, default=Severity.NONE)

    # Deduplicate findings across agents, grouped under the reporting severity.
    # A finding reported at several severities is kept at the highest one.
    best: dict[str, tuple[Severity, str]] = {}
    for response in voting:
        if response.severity == Severity.NONE:
            continue
        for finding in _split_findings(response.narrative_text):
            key = _normalize(finding)
            current = best.get(key)
            if current is None or response.severity.rank > current[0].rank or (
                response.severity == current[0] and finding < current[1]
            ):
                best[key] = (response.severity, finding)

    grouped: dict[Severity, list[str]] = {}
    for severity, finding in best.values():
        grouped.setdefault(severity, []).append(finding)

    findings = tuple(
        (severity, tuple(sorted(grouped[severity], key=_normalize)))
        for severity in sorted(grouped, key=lambda s: s.rank, reverse=True)
    )

    return FeedbackBundle(
        responses=tuple(responses),
        highest_severity=highest,
        blocking=highest.blocking,
        findings=findings,
    )
