"""Shared fixtures for the council test suite."""

import json
import threading
from unittest.mock import patch

import pytest

from council.agents.base import Agent
from council.agents.implementer import Implementer
from council.errors import BackendError
from council.models import (
    AgentResponse,
    AgentRole,
    Candidate,
    Context,
    Task,
)


class ScriptedBackend:
    """Backend double that returns (or raises) queued replies in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    def generate(self, prompt, max_tokens, timeout=None):
        self.prompts.append(prompt)
        if not self.replies:
            raise BackendError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class StubImplementer(Implementer):
    """Implementer that produces a new version per round without a backend."""

    def __init__(self, failures=()):
        super().__init__(backend=None)
        self.failures = list(failures)  # per-call exception or None
        self.calls = []

    def generate_or_refine(self, task, context, prior_feedback=None, prior_candidate=None, timeout=None):
        self.calls.append((prior_feedback, prior_candidate))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        if prior_candidate is None:
            return Candidate(code="class Stack; end", summary="first draft")
        return prior_candidate.revise(f"class Stack; end # v{prior_candidate.version + 1}")


class StubReviewer(Agent):
    """Reviewer that returns one scripted severity per round (last one repeats)."""

    def __init__(self, name, severities, role=AgentRole.SECURITY_REVIEWER, on_call=None, patch_text=None):
        super().__init__(backend=None, name=name)
        self.role = role
        self.severities = list(severities)
        self.on_call = on_call
        self.patch_text = patch_text
        self.calls = 0

    def evaluate(self, candidate, task, context, timeout):
        self.calls += 1
        if self.on_call is not None:
            result = self.on_call(self.calls)
            if result is not None:
                return result
        severity = self.severities[min(self.calls, len(self.severities)) - 1]
        return AgentResponse(
            agent_role=self.role,
            agent_name=self.name,
            narrative_text=f"{self.name} finding at {severity.value}",
            severity=severity,
            suggested_patch=self.patch_text,
        )


@pytest.fixture
def context():
    return Context(
        standards="Use frozen_string_literal.",
        product="A CLI for managing tasks.",
        specs="",
    )


@pytest.fixture
def task(context):
    return Task(description="Implement a Stack class with push and pop", context=context)


@pytest.fixture
def candidate():
    return Candidate(code="class Stack\n  def push(x); end\nend")


@pytest.fixture
def release():
    """Event that blocked stub reviewers wait on; always set at teardown."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def valid_review_reply():
    return json.dumps({
        "severity": "medium",
        "findings": "- pop on an empty stack returns nil silently",
        "suggested_patch": None,
    })


@pytest.fixture
def valid_implementer_reply():
    return json.dumps({
        "code": "class Stack\n  def initialize; @items = []; end\nend",
        "summary": "Initial implementation backed by an Array.",
    })


def response(name, severity, role=AgentRole.SECURITY_REVIEWER, text=None, patch_text=None):
    """Build an AgentResponse with sensible defaults."""
    return AgentResponse(
        agent_role=role,
        agent_name=name,
        narrative_text=text if text is not None else f"{name} says {severity.value}",
        severity=severity,
        suggested_patch=patch_text,
    )


@pytest.fixture
def mock_config():
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "provider": "anthropic",
        "model": "claude-sonnet-4-6",
        "max_tokens": 1024,
        "llm_max_retries": 3,
        "max_iterations": 3,
        "per_agent_timeout": 30,
        "target_language": "Ruby",
        "agents": ["implementer", "test_designer", "security_reviewer"],
        "custom_agents": [],
        "context": {},
        "output_dir": "./output",
    }
    with patch("council.config._config", test_config):
        yield test_config
