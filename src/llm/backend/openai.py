"""OpenAI chat-completion backend.

Issues one chat completion per call with a per-request timeout and no
automatic retries, so each adjudicated violation costs at most one request.
"""

import logging
from typing import Any

import openai

from ...config import EnvVar, get_environment
from .base import (
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    LLMBackend,
    LLMError,
    LLMTimeoutError,
    RateLimitError,
)
from .model_spec import DEFAULT_MODEL, LLMCapability, get_llm_spec

logger = logging.getLogger(__name__)

CONTEXT_LENGTH_MARKERS = ("context_length_exceeded", "maximum context length")


class OpenAIBackend(LLMBackend):
    """OpenAI GPT backend.

    Environment:
        OPENAI_API_KEY: API key (required if not passed to constructor).
        OPENAI_BASE_URL: Optional endpoint override.

    Example:
        >>> backend = OpenAIBackend(model="gpt-4o", timeout=30.0)
        >>> result = backend.generate("Reply with {}", system_prompt="JSON only.")
        >>> print(result.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 0,
    ):
        """Initialize OpenAI backend.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Registered model name (gpt-4-turbo, gpt-4o, etc.).
            base_url: Optional custom API endpoint. Falls back to
                OPENAI_BASE_URL env var, then the SDK default.
            timeout: Per-request timeout in seconds.
            max_retries: SDK retry attempts for transient errors.

        Raises:
            AuthenticationError: If no API key available.
            ValueError: If the model is not registered.
        """
        self._api_key = api_key or get_environment(EnvVar.OPENAI_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "OpenAI API key required. Set OPENAI_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model)
        self._base_url = base_url or get_environment(EnvVar.OPENAI_BASE_URL)
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: openai.OpenAI | None = None

    def _get_client(self) -> openai.OpenAI:
        """Lazily initialize the OpenAI client."""
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._spec.name

    @property
    def provider(self) -> str:
        """Get the provider identifier."""
        return "openai"

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self._timeout

    def _build_request(
        self, prompt: str, system_prompt: str | None, config: GenerationConfig
    ) -> dict[str, Any]:
        """Assemble chat completion arguments the model accepts."""
        messages: list[dict[str, str]] = []
        if system_prompt and self._spec.supports(LLMCapability.SYSTEM_PROMPT):
            messages.append({"role": "system", "content": system_prompt})
        elif system_prompt:
            # No system role: fold the instruction into the user turn
            prompt = f"{system_prompt}\n\n{prompt}"
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {"model": self._spec.name, "messages": messages}

        if self._spec.supports(LLMCapability.REASONING):
            kwargs["max_completion_tokens"] = config.max_tokens
        else:
            kwargs["max_tokens"] = config.max_tokens

        if self._spec.supports(LLMCapability.TEMPERATURE):
            kwargs["temperature"] = config.temperature

        return kwargs

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text using the chat completions API.

        Args:
            prompt: User prompt text.
            system_prompt: Optional system instruction.
            config: Generation configuration.

        Returns:
            GenerationResult with content and metadata.

        Raises:
            LLMError: If generation fails.
            RateLimitError: If rate limit exceeded.
            LLMTimeoutError: If the request timed out.
            ContextLengthError: If prompt too long.
            AuthenticationError: If the key is rejected.
        """
        config = config or GenerationConfig()
        client = self._get_client()
        kwargs = self._build_request(prompt, system_prompt, config)

        try:
            response = client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise self._translate_error(e) from e

        usage: dict[str, int] = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
            logger.debug(
                "Token usage: %d tokens (prompt: %d, completion: %d)",
                usage["total_tokens"],
                usage["prompt_tokens"],
                usage["completion_tokens"],
            )

        if not response.choices:
            return GenerationResult(
                content="",
                finish_reason="unknown",
                usage=usage,
                model=response.model,
                raw_response=response,
            )

        choice = response.choices[0]
        return GenerationResult(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "unknown",
            usage=usage,
            model=response.model,
            raw_response=response,
        )

    def _translate_error(self, error: openai.OpenAIError) -> LLMError:
        """Convert SDK errors to the backend exception hierarchy.

        Args:
            error: The caught SDK exception.

        Returns:
            LLMError: The matching backend exception.
        """
        if isinstance(error, openai.APITimeoutError):
            return LLMTimeoutError(
                f"OpenAI API request timed out after {self._timeout:g}s"
            )
        if isinstance(error, openai.RateLimitError):
            retry_after = error.response.headers.get("retry-after")
            try:
                seconds = float(retry_after) if retry_after is not None else None
            except ValueError:
                seconds = None
            return RateLimitError(str(error), retry_after=seconds)
        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return AuthenticationError(str(error))
        if isinstance(error, openai.BadRequestError):
            message = str(error).lower()
            if any(marker in message for marker in CONTEXT_LENGTH_MARKERS):
                return ContextLengthError(str(error))
        if isinstance(error, openai.APIStatusError):
            return LLMError(f"OpenAI API error: {error.status_code} {error.message}")
        return LLMError(f"OpenAI API request failed: {error}")


__all__ = ["OpenAIBackend"]
