"""Agent construction from configuration.

Roles form a closed set: every AgentRole maps to exactly one class, and
arbitrary extra reviewers go through the Custom variant.
"""

from council.agents.base import Agent, DEFAULT_LANGUAGE, DEFAULT_MAX_TOKENS
from council.agents.implementer import Implementer
from council.agents.reviewers import (
    CustomReviewer,
    DocumentationWriter,
    PerformanceReviewer,
    SecurityReviewer,
    TestDesigner,
)
from council.errors import ConfigurationError
from council.models import AgentRole

AGENT_CLASSES: dict[AgentRole, type[Agent]] = {
    AgentRole.IMPLEMENTER: Implementer,
    AgentRole.TEST_DESIGNER: TestDesigner,
    AgentRole.SECURITY_REVIEWER: SecurityReviewer,
    AgentRole.PERFORMANCE_REVIEWER: PerformanceReviewer,
    AgentRole.DOCUMENTATION_WRITER: DocumentationWriter,
    AgentRole.CUSTOM: CustomReviewer,
}


def build_agent(
    role: AgentRole,
    backend,
    *,
    name: str | None = None,
    focus: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    target_language: str = DEFAULT_LANGUAGE,
) -> Agent:
    """Instantiate the agent class for ``role``."""
    cls = AGENT_CLASSES[role]
    if role == AgentRole.CUSTOM:
        return cls(
            backend, name=name, focus=focus,
            max_tokens=max_tokens, target_language=target_language,
        )
    return cls(backend, name=name, max_tokens=max_tokens, target_language=target_language)


def _parse_role(value) -> AgentRole:
    try:
        role = AgentRole(value)
    except ValueError:
        valid = [r.value for r in AgentRole if r != AgentRole.CUSTOM]
        raise ConfigurationError(f"Unknown agent role '{value}'. Must be one of: {valid}") from None
    if role == AgentRole.CUSTOM:
        raise ConfigurationError("Declare custom reviewers under 'custom_agents', not 'agents'.")
    return role


def build_roster(config: dict, backend) -> list[Agent]:
    """Build the Implementer plus every configured reviewer.

    The Implementer is always first in the returned list.
    """
    roles = [_parse_role(value) for value in config.get("agents", [])]
    if AgentRole.IMPLEMENTER not in roles:
        raise ConfigurationError("The 'agents' list must include 'implementer'.")

    common = {
        "max_tokens": config.get("max_tokens", DEFAULT_MAX_TOKENS),
        "target_language": config.get("target_language", DEFAULT_LANGUAGE),
    }

    roster = [build_agent(AgentRole.IMPLEMENTER, backend, **common)]
    seen = {AgentRole.IMPLEMENTER}
    for role in roles:
        if role in seen:
            continue
        seen.add(role)
        roster.append(build_agent(role, backend, **common))

    names = {agent.name for agent in roster}
    for i, entry in enumerate(config.get("custom_agents") or []):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"custom_agents[{i}] must be a mapping with 'name' and 'focus'.")
        try:
            agent = build_agent(
                AgentRole.CUSTOM, backend,
                name=entry.get("name"), focus=entry.get("focus"), **common,
            )
        except ValueError as exc:
            raise ConfigurationError(f"custom_agents[{i}]: {exc}") from exc
        if agent.name in names:
            raise ConfigurationError(f"Duplicate agent name '{agent.name}'.")
        names.add(agent.name)
        roster.append(agent)

    return roster
