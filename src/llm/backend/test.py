"""Tests for LLM backend implementations."""

import os
from types import SimpleNamespace

import httpx
import openai
import pytest

from .base import (
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    LLMError,
    LLMTimeoutError,
    RateLimitError,
)
from .factory import create_llm_backend
from .model_spec import (
    DEFAULT_MODEL,
    LLMCapability,
    LLMModel,
    LLMSpec,
    get_llm_spec,
)
from .openai import OpenAIBackend

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(status: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(status, headers=headers or {}, request=REQUEST)


class FakeCompletions:
    """Stands in for ``client.chat.completions``."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs: dict | None = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _completion(content="{}", usage=True):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content), finish_reason="stop"
            )
        ],
        usage=(
            SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
            if usage
            else None
        ),
        model="gpt-4-turbo-2024-04-09",
    )


def _backend_with(outcome, model="gpt-4-turbo"):
    backend = OpenAIBackend(api_key="test-key-12345", model=model)
    completions = FakeCompletions(outcome)
    backend._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return backend, completions


class TestLLMSpec:
    """Tests for LLMSpec dataclass."""

    @pytest.mark.unit
    def test_spec_creation(self):
        """Test creating an LLMSpec."""
        spec = LLMSpec(name="test-model", description="A test model")
        assert spec.name == "test-model"
        assert spec.description == "A test model"
        assert spec.capabilities == frozenset()

    @pytest.mark.unit
    def test_spec_capabilities(self):
        """Test capability checking."""
        spec = LLMSpec(
            name="test",
            capabilities=frozenset({LLMCapability.SYSTEM_PROMPT}),
        )
        assert spec.supports(LLMCapability.SYSTEM_PROMPT)
        assert not spec.supports(LLMCapability.REASONING)


class TestLLMModel:
    """Tests for LLMModel enum registry."""

    @pytest.mark.unit
    def test_registered_models(self):
        """The selectable models are registered."""
        assert set(LLMModel.names()) == {
            "gpt-4",
            "gpt-4o",
            "gpt-4-turbo",
            "o1-preview",
            "o1-mini",
            "gpt-3.5-turbo",
        }

    @pytest.mark.unit
    def test_default_model(self):
        """The default is a large-context chat model."""
        assert DEFAULT_MODEL.spec.name == "gpt-4-turbo"
        assert DEFAULT_MODEL.spec.supports(LLMCapability.SYSTEM_PROMPT)

    @pytest.mark.unit
    def test_reasoning_models(self):
        """Reasoning models take neither system prompts nor temperature."""
        spec = LLMModel.O1_MINI.spec
        assert spec.supports(LLMCapability.REASONING)
        assert not spec.supports(LLMCapability.SYSTEM_PROMPT)
        assert not spec.supports(LLMCapability.TEMPERATURE)

    @pytest.mark.unit
    def test_by_name_lookup(self):
        """Test looking up models by name."""
        assert LLMModel.by_name("gpt-4o") == LLMModel.GPT_4O
        assert LLMModel.by_name("nonexistent-model") is None


class TestGetLLMSpec:
    """Tests for get_llm_spec function."""

    @pytest.mark.unit
    def test_resolution(self):
        """Strings, enum members and specs all resolve."""
        assert get_llm_spec("gpt-4").name == "gpt-4"
        assert get_llm_spec(LLMModel.GPT_4O) is LLMModel.GPT_4O.spec
        spec = LLMSpec(name="custom")
        assert get_llm_spec(spec) is spec

    @pytest.mark.unit
    def test_unknown_model_raises(self):
        """Unknown names list the valid choices."""
        with pytest.raises(ValueError, match="Unknown model: gpt-99.*gpt-4-turbo"):
            get_llm_spec("gpt-99")


class TestGenerationConfig:
    """Tests for GenerationConfig defaults."""

    @pytest.mark.unit
    def test_defaults(self):
        """Defaults suit deterministic adjudication."""
        config = GenerationConfig()
        assert config.temperature == 0.1
        assert config.max_tokens == 1000


class TestOpenAIBackend:
    """Tests for OpenAI backend."""

    @pytest.mark.unit
    def test_requires_api_key(self, preserve_env_keys):
        """Test that backend requires API key."""
        os.environ.pop("OPENAI_API_KEY", None)
        with pytest.raises(AuthenticationError, match="API key required"):
            OpenAIBackend()

    @pytest.mark.unit
    def test_creates_with_api_key(self):
        """Test backend creation with API key."""
        backend = OpenAIBackend(api_key="test-key-12345")
        assert backend.provider == "openai"
        assert backend.model_name == "gpt-4-turbo"
        assert backend.name == "openai:gpt-4-turbo"
        assert backend.timeout == 30.0

    @pytest.mark.unit
    def test_client_has_no_retries(self):
        """The SDK client is built with the timeout and without retries."""
        backend = OpenAIBackend(api_key="test-key-12345", timeout=5.0)
        client = backend._get_client()
        assert client.max_retries == 0
        assert client.timeout == 5.0
        assert backend._get_client() is client

    @pytest.mark.unit
    def test_chat_request(self):
        """Chat models get a system message, temperature and max_tokens."""
        backend, completions = _backend_with(_completion('{"ok": true}'))
        result = backend.generate(
            "prompt",
            system_prompt="system",
            config=GenerationConfig(temperature=0.2, max_tokens=50),
        )

        assert completions.kwargs == {
            "model": "gpt-4-turbo",
            "messages": [
                {"role": "system", "content": "system"},
                {"role": "user", "content": "prompt"},
            ],
            "max_tokens": 50,
            "temperature": 0.2,
        }
        assert result.content == '{"ok": true}'
        assert result.finish_reason == "stop"
        assert result.usage["total_tokens"] == 15

    @pytest.mark.unit
    def test_reasoning_request(self):
        """Reasoning models fold the system prompt into the user turn."""
        backend, completions = _backend_with(_completion(), model="o1-mini")
        backend.generate("prompt", system_prompt="system")

        assert completions.kwargs == {
            "model": "o1-mini",
            "messages": [{"role": "user", "content": "system\n\nprompt"}],
            "max_completion_tokens": 1000,
        }

    @pytest.mark.unit
    def test_missing_content_and_usage(self):
        """A null message and absent usage yield empty values."""
        backend, _ = _backend_with(_completion(content=None, usage=False))
        result = backend.generate("prompt")
        assert result.content == ""
        assert result.usage == {}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (openai.APITimeoutError(request=REQUEST), LLMTimeoutError),
            (
                openai.AuthenticationError(
                    "Incorrect API key", response=_response(401), body=None
                ),
                AuthenticationError,
            ),
            (
                openai.BadRequestError(
                    "This model's maximum context length is 8192 tokens",
                    response=_response(400),
                    body=None,
                ),
                ContextLengthError,
            ),
            (
                openai.InternalServerError("boom", response=_response(500), body=None),
                LLMError,
            ),
            (openai.APIConnectionError(request=REQUEST), LLMError),
        ],
    )
    def test_error_translation(self, error, expected):
        """SDK errors surface as backend exceptions."""
        backend, _ = _backend_with(error)
        with pytest.raises(expected) as info:
            backend.generate("prompt")
        assert type(info.value) is expected

    @pytest.mark.unit
    def test_timeout_message(self):
        """Timeouts name the configured limit."""
        backend, _ = _backend_with(openai.APITimeoutError(request=REQUEST))
        with pytest.raises(LLMTimeoutError, match="timed out after 30s"):
            backend.generate("prompt")

    @pytest.mark.unit
    def test_rate_limit_retry_after(self):
        """Rate limit errors carry the server's retry hint."""
        error = openai.RateLimitError(
            "Rate limit reached",
            response=_response(429, {"retry-after": "2"}),
            body=None,
        )
        backend, _ = _backend_with(error)
        with pytest.raises(RateLimitError) as info:
            backend.generate("prompt")
        assert info.value.retry_after == 2.0

    @pytest.mark.unit
    def test_status_error_message(self):
        """Other HTTP errors report the status code."""
        error = openai.InternalServerError("boom", response=_response(503), body=None)
        backend, _ = _backend_with(error)
        with pytest.raises(LLMError, match="OpenAI API error: 503"):
            backend.generate("prompt")


class TestCreateLLMBackend:
    """Tests for create_llm_backend factory."""

    @pytest.mark.unit
    def test_creates_openai_backend(self, mock_api_key):
        """Test creating OpenAI backend via factory."""
        backend = create_llm_backend(LLMModel.GPT_4O, api_key=mock_api_key, timeout=10.0)
        assert isinstance(backend, OpenAIBackend)
        assert backend.model_name == "gpt-4o"
        assert backend.timeout == 10.0

    @pytest.mark.unit
    def test_creates_from_string_name(self, mock_api_key):
        """Test creating backend from string model name."""
        backend = create_llm_backend("gpt-3.5-turbo", api_key=mock_api_key)
        assert backend.model_name == "gpt-3.5-turbo"

    @pytest.mark.unit
    def test_unknown_model(self, mock_api_key):
        """Unknown models are rejected before any client exists."""
        with pytest.raises(ValueError):
            create_llm_backend("not-a-model", api_key=mock_api_key)


class TestGenerationResult:
    """Tests for GenerationResult dataclass."""

    @pytest.mark.unit
    def test_result_creation(self):
        """Test creating a GenerationResult."""
        result = GenerationResult(
            content='{"approved": true}',
            finish_reason="stop",
            usage={"total_tokens": 30},
            model="gpt-4-turbo",
        )
        assert result.usage["total_tokens"] == 30
        assert result.raw_response is None
