"""Backend factory for creating LLM backends from model specifications."""

from .base import LLMBackend
from .model_spec import DEFAULT_MODEL, LLMModel, LLMSpec, get_llm_spec


def create_llm_backend(
    model: str | LLMModel | LLMSpec = DEFAULT_MODEL,
    *,
    api_key: str | None = None,
    base_url: str | None = None,
    **kwargs,
) -> LLMBackend:
    """Create an LLM backend from a model specification.

    Args:
        model: Model to use. Can be:
            - String model name (e.g., "gpt-4-turbo", "o1-mini")
            - LLMModel enum value (e.g., LLMModel.GPT_4O)
            - LLMSpec instance
        api_key: API key. Falls back to environment variable if not provided.
        base_url: Optional custom API endpoint.
        **kwargs: Additional arguments passed to backend constructor
            (e.g., timeout, max_retries).

    Returns:
        Configured LLMBackend instance.

    Raises:
        ValueError: If model is unknown.
        AuthenticationError: If API key required but not provided.

    Example:
        >>> backend = create_llm_backend()
        >>> backend = create_llm_backend("gpt-4o", api_key="sk-...", timeout=10.0)
    """
    spec = get_llm_spec(model)

    from .openai import OpenAIBackend

    return OpenAIBackend(
        api_key=api_key,
        model=spec.name,
        base_url=base_url,
        **kwargs,
    )


__all__ = ["create_llm_backend"]
