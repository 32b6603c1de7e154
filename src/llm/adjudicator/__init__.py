"""LLM adjudication of untraceable component props.

Example:
    >>> from src.llm.adjudicator import (
    ...     apply_adjudication, evaluate_violations, load_llm_config,
    ... )
    >>> from src.trace import collect_props_source_violations
    >>> violations = collect_props_source_violations(conversation)
    >>> evaluation = evaluate_violations(violations, conversation, load_llm_config())
    >>> report = apply_adjudication(report, evaluation)
"""

from .context import (
    SYSTEM_PROMPT,
    EvaluationCategory,
    EvaluationContext,
    LlmEvaluationResult,
    build_evaluation_context,
    format_prompt,
    parse_llm_response,
    truncate_value,
)
from .lib import (
    AggregatedEvaluation,
    EvaluationDetail,
    EvaluationOutcome,
    LlmConfig,
    apply_adjudication,
    evaluate_violation,
    evaluate_violations,
    load_llm_config,
)

__all__ = [
    # Configuration
    "LlmConfig",
    "load_llm_config",
    # Context and prompt
    "SYSTEM_PROMPT",
    "EvaluationContext",
    "truncate_value",
    "build_evaluation_context",
    "format_prompt",
    # Verdicts
    "EvaluationCategory",
    "LlmEvaluationResult",
    "parse_llm_response",
    "EvaluationOutcome",
    "EvaluationDetail",
    "AggregatedEvaluation",
    # Evaluation
    "evaluate_violation",
    "evaluate_violations",
    "apply_adjudication",
]
