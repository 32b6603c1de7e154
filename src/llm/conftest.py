"""LLM module test fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import Generator

import pytest

from src.llm.backend.base import GenerationConfig, GenerationResult, LLMBackend


# =============================================================================
# Mock LLM Backend
# =============================================================================


class MockLLMBackend(LLMBackend):
    """Scripted LLM backend for testing without API keys.

    Each call to ``generate`` consumes the next scripted reply. A reply that
    is an exception instance is raised instead of returned. When the script
    runs out, the default approval reply is returned.
    """

    DEFAULT_REPLY = (
        '{"approved": true, "reasoning": "Static label", "category": "hardcoded"}'
    )

    def __init__(self, replies: Iterable[str | Exception] = ()):
        self._replies = list(replies)
        self.calls: list[dict] = []

    @property
    def model_name(self) -> str:
        """Return mock model name."""
        return "mock-model-v1"

    @property
    def provider(self) -> str:
        """Return mock provider name."""
        return "mock"

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Record the request and return the next scripted reply.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            config: Generation config.

        Returns:
            GenerationResult wrapping the scripted content.
        """
        self.calls.append(
            {"prompt": prompt, "system_prompt": system_prompt, "config": config}
        )
        reply = self._replies.pop(0) if self._replies else self.DEFAULT_REPLY
        if isinstance(reply, Exception):
            raise reply

        return GenerationResult(
            content=reply,
            finish_reason="stop",
            model=self.model_name,
            usage={"total_tokens": 100},
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_llm_backend() -> MockLLMBackend:
    """Create a mock LLM backend that approves everything.

    Returns:
        MockLLMBackend instance.
    """
    return MockLLMBackend()


@pytest.fixture
def mock_api_key() -> str:
    """Provide a mock API key for testing.

    Returns:
        A test API key string.
    """
    return "test-api-key-12345"


@pytest.fixture
def preserve_env_keys() -> Generator[None, None, None]:
    """Fixture to preserve and restore LLM settings during tests.

    Saves the LLM environment variables before the test and restores them
    after, allowing tests to modify them safely.

    Yields:
        None (context manager style).
    """
    key_names = [
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "LLM_MODEL",
        "LLM_TEMPERATURE",
        "LLM_MAX_TOKENS",
        "LLM_TIMEOUT",
    ]
    saved_keys = {key: os.environ.get(key) for key in key_names}

    yield

    for key, value in saved_keys.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
