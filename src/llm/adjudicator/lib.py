"""LLM adjudication of props-source violations.

The heuristic props-source check flags values it cannot trace to a tool
result. Many of those are false positives: static labels, counts, or
reformatted fields. This module asks a chat model about each violation in
turn and folds the verdicts into an aggregate that can replace the
heuristic result in a validation report.

The layer is optional. Without an API key ``evaluate_violations`` raises
``AuthenticationError`` so callers can skip it explicitly.
"""

import logging
from dataclasses import dataclass, field

from src.config import EnvVar, get_environment
from src.schema import ConversationData
from src.trace import ViolationDetail
from src.validation import (
    CHECK_COMPONENT_PROPS_SOURCE,
    ValidationReport,
    props_source_result,
)

from ..backend import (
    AuthenticationError,
    GenerationConfig,
    InvalidResponseError,
    LLMBackend,
    create_llm_backend,
)
from ..backend.model_spec import DEFAULT_MODEL
from .context import (
    SYSTEM_PROMPT,
    EvaluationCategory,
    LlmEvaluationResult,
    build_evaluation_context,
    format_prompt,
    parse_llm_response,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class LlmConfig:
    """Settings for one adjudication run.

    Attributes:
        api_key: OpenAI API key; adjudication is disabled without one.
        model: Registered chat model name.
        temperature: Sampling temperature.
        max_tokens: Completion token cap per request.
        timeout: Per-request timeout in seconds.
        base_url: Optional OpenAI-compatible endpoint.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL.spec.name
    temperature: float = 0.1
    max_tokens: int = 1000
    timeout: float = 30.0
    base_url: str | None = None

    @property
    def enabled(self) -> bool:
        """True when an API key is configured."""
        return bool(self.api_key)

    def __repr__(self) -> str:
        key = "set" if self.api_key else "unset"
        return (
            f"LlmConfig(model={self.model!r}, api_key={key}, "
            f"temperature={self.temperature}, max_tokens={self.max_tokens}, "
            f"timeout={self.timeout})"
        )


def load_llm_config(
    *,
    api_key: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    base_url: str | None = None,
) -> LlmConfig:
    """Build an LlmConfig from explicit values, then environment, then defaults.

    Example:
        >>> config = load_llm_config(model="gpt-4o")
        >>> config.enabled
        False
    """
    return LlmConfig(
        api_key=get_environment(EnvVar.OPENAI_API_KEY, api_key),
        model=get_environment(EnvVar.LLM_MODEL, model),
        temperature=get_environment(EnvVar.LLM_TEMPERATURE, temperature),
        max_tokens=get_environment(EnvVar.LLM_MAX_TOKENS, max_tokens),
        timeout=get_environment(EnvVar.LLM_TIMEOUT, timeout),
        base_url=get_environment(EnvVar.OPENAI_BASE_URL, base_url),
    )


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class EvaluationOutcome:
    """Either a verdict or the error that prevented one."""

    violation: ViolationDetail
    result: LlmEvaluationResult | None = None
    error: Exception | None = None

    def verdict(self) -> LlmEvaluationResult:
        """The verdict, with errors turned into rejections."""
        if self.result is not None:
            return self.result
        return LlmEvaluationResult(
            approved=False,
            reasoning=f"Evaluation failed: {self.error}",
            category=EvaluationCategory.UNCLEAR,
        )


@dataclass(frozen=True)
class EvaluationDetail:
    """Per-violation entry of an aggregated evaluation."""

    violation: str
    approved: bool
    reasoning: str
    category: str


@dataclass
class AggregatedEvaluation:
    """Verdicts for a batch of violations, in input order."""

    approved_count: int = 0
    rejected_count: int = 0
    details: list[EvaluationDetail] = field(default_factory=list)

    def add(self, outcome: EvaluationOutcome) -> None:
        """Fold one outcome into the counts and details."""
        verdict = outcome.verdict()
        if verdict.approved:
            self.approved_count += 1
        else:
            self.rejected_count += 1
        self.details.append(
            EvaluationDetail(
                violation=outcome.violation.reference,
                approved=verdict.approved,
                reasoning=verdict.reasoning,
                category=verdict.category.value,
            )
        )

    @property
    def rejected(self) -> list[str]:
        """References of the violations the model rejected."""
        return [d.violation for d in self.details if not d.approved]


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_violation(
    violation: ViolationDetail,
    conversation: ConversationData,
    backend: LLMBackend,
    generation: GenerationConfig,
) -> EvaluationOutcome:
    """Ask the model about one violation.

    Any failure while building the context, calling the backend or reading
    an empty reply is captured in the outcome rather than raised, so one
    violation never aborts the batch.
    """
    logger.debug("Evaluating %s.%s", violation.component, violation.prop)
    try:
        context = build_evaluation_context(violation, conversation)
        result = backend.generate(
            format_prompt(context),
            system_prompt=SYSTEM_PROMPT,
            config=generation,
        )
        if not result.content:
            raise InvalidResponseError("Empty response from OpenAI API")
    except Exception as e:
        logger.error(
            "Error evaluating %s.%s: %s", violation.component, violation.prop, e
        )
        return EvaluationOutcome(violation=violation, error=e)

    verdict = parse_llm_response(result.content)
    logger.debug(
        "Result: %s (%s)",
        "approved" if verdict.approved else "rejected",
        verdict.category.value,
    )
    return EvaluationOutcome(violation=violation, result=verdict)


def evaluate_violations(
    violations: list[ViolationDetail],
    conversation: ConversationData,
    config: LlmConfig,
    backend: LLMBackend | None = None,
) -> AggregatedEvaluation:
    """Adjudicate violations one at a time, in order.

    Args:
        violations: Untraceable props from the heuristic walk.
        conversation: Conversation the violations came from.
        config: Adjudication settings.
        backend: Backend to use. Built from ``config`` when omitted.

    Returns:
        AggregatedEvaluation with one detail per violation.

    Raises:
        AuthenticationError: If no API key is configured.
        ValueError: If ``config.model`` is not a registered model.
    """
    if not config.enabled:
        raise AuthenticationError("OpenAI API key not configured")

    if backend is None:
        backend = create_llm_backend(
            config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
        )
    generation = GenerationConfig(
        temperature=config.temperature, max_tokens=config.max_tokens
    )

    aggregate = AggregatedEvaluation()
    for violation in violations:
        aggregate.add(evaluate_violation(violation, conversation, backend, generation))

    logger.info(
        "Complete: %d approved, %d rejected",
        aggregate.approved_count,
        aggregate.rejected_count,
    )
    return aggregate


def apply_adjudication(
    report: ValidationReport, evaluation: AggregatedEvaluation
) -> ValidationReport:
    """Return a copy of ``report`` whose props-source result keeps only rejections.

    The props-source check passes when the model approved every violation.
    Reports without a props-source result are returned unchanged.
    """
    if report.get(CHECK_COMPONENT_PROPS_SOURCE) is None:
        return report

    replacement = props_source_result(evaluation.rejected)
    results = [
        replacement if r.check == CHECK_COMPONENT_PROPS_SOURCE else r
        for r in report.results
    ]
    return ValidationReport.from_results(results)


__all__ = [
    "LlmConfig",
    "load_llm_config",
    "EvaluationOutcome",
    "EvaluationDetail",
    "AggregatedEvaluation",
    "evaluate_violation",
    "evaluate_violations",
    "apply_adjudication",
]
