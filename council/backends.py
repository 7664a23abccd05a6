"""Text-generation backends.

The core only needs ``generate(prompt, max_tokens, timeout=None) -> str``.
``ChatModelBackend`` adapts a LangChain chat model to that contract and maps
every failure onto ``BackendError`` so agents can classify it.
"""

import logging
from typing import Protocol

import anthropic
import httpx
from google.api_core import exceptions as google_exceptions
from langchain_anthropic import ChatAnthropic
from langchain_google_genai import ChatGoogleGenerativeAI

from council.errors import BackendError, BackendTimeout, ConfigurationError
from council.utils.parsing import invoke_with_retry

logger = logging.getLogger(__name__)

PROVIDERS = {"anthropic", "google"}

# Timeout types raised by httpx directly and by each provider SDK
TIMEOUT_ERRORS = (
    httpx.TimeoutException,
    anthropic.APITimeoutError,
    google_exceptions.DeadlineExceeded,
)


class Backend(Protocol):
    def generate(self, prompt: str, max_tokens: int, timeout: float | None = None) -> str:
        ...


class ChatModelBackend:
    """Backend that calls a hosted chat model through LangChain."""

    def __init__(self, provider: str, model: str):
        if provider not in PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider '{provider}'. Must be one of: {sorted(PROVIDERS)}"
            )
        self.provider = provider
        self.model = model

    def _build_llm(self, max_tokens: int, timeout: float | None):
        if self.provider == "anthropic":
            return ChatAnthropic(
                model=self.model, temperature=0, max_tokens=max_tokens, timeout=timeout,
            )
        return ChatGoogleGenerativeAI(
            model=self.model, temperature=0, max_output_tokens=max_tokens, timeout=timeout,
        )

    def generate(self, prompt: str, max_tokens: int, timeout: float | None = None) -> str:
        llm = self._build_llm(max_tokens, timeout)
        messages = [{"role": "user", "content": prompt}]

        try:
            response = invoke_with_retry(llm, messages)
        except TIMEOUT_ERRORS as exc:
            raise BackendTimeout(f"{self.provider}:{self.model} timed out: {exc}") from exc
        except Exception as exc:
            raise BackendError(f"{self.provider}:{self.model} failed: {exc!r}") from exc

        content = response.content
        if isinstance(content, list):
            # Some providers return content blocks instead of a plain string
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        if not content or not content.strip():
            raise BackendError(f"{self.provider}:{self.model} returned an empty response.")
        return content


def build_backend(config: dict) -> ChatModelBackend:
    """Build the configured backend from the config dictionary."""
    provider = config.get("provider", "anthropic")
    model = config.get("model")
    if not model:
        raise ConfigurationError("Config is missing 'model'.")
    logger.debug("Using backend %s:%s", provider, model)
    return ChatModelBackend(provider, model)
