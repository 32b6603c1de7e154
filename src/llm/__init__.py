"""LLM integration layer for props-source adjudication.

Main components:
- evaluate_violations: Ask a chat model whether untraceable props are fine
- apply_adjudication: Fold the verdicts back into a validation report
- LLMBackend / create_llm_backend: OpenAI chat-completion backend

Example:
    >>> from src.llm import load_llm_config, evaluate_violations
    >>> config = load_llm_config()
    >>> if config.enabled:
    ...     evaluation = evaluate_violations(violations, conversation, config)
"""

from .adjudicator import (
    AggregatedEvaluation,
    EvaluationDetail,
    LlmConfig,
    apply_adjudication,
    evaluate_violations,
    load_llm_config,
)
from .backend import (
    DEFAULT_MODEL,
    AuthenticationError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    InvalidResponseError,
    LLMBackend,
    LLMCapability,
    LLMError,
    LLMModel,
    LLMSpec,
    LLMTimeoutError,
    RateLimitError,
    create_llm_backend,
    get_llm_spec,
)

__all__ = [
    # Adjudication
    "LlmConfig",
    "load_llm_config",
    "evaluate_violations",
    "apply_adjudication",
    "AggregatedEvaluation",
    "EvaluationDetail",
    # Backend types
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    "create_llm_backend",
    # Model specification
    "LLMCapability",
    "LLMSpec",
    "LLMModel",
    "get_llm_spec",
    "DEFAULT_MODEL",
    # Exceptions
    "LLMError",
    "RateLimitError",
    "LLMTimeoutError",
    "ContextLengthError",
    "InvalidResponseError",
    "AuthenticationError",
]
