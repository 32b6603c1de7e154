"""Model specification system for LLM backends.

Registry of the chat models the adjudicator may be pointed at, with the
request features each one accepts.
"""

from dataclasses import dataclass, field
from enum import Enum


class LLMCapability(Enum):
    """Request features a model may accept."""

    SYSTEM_PROMPT = "system_prompt"  # Dedicated system role
    TEMPERATURE = "temperature"  # Adjustable sampling temperature
    REASONING = "reasoning"  # Reasoning model, budgets max_completion_tokens


@dataclass(frozen=True)
class LLMSpec:
    """Specification for an LLM model.

    Attributes:
        name: Model identifier (e.g., 'gpt-4-turbo').
        capabilities: Set of supported request features.
        description: Human-readable description.
    """

    name: str
    capabilities: frozenset[LLMCapability] = field(default_factory=frozenset)
    description: str = ""

    def supports(self, capability: LLMCapability) -> bool:
        """Check if model supports a capability."""
        return capability in self.capabilities


# Common capability sets
_CHAT_FULL = frozenset({LLMCapability.SYSTEM_PROMPT, LLMCapability.TEMPERATURE})

_REASONING = frozenset({LLMCapability.REASONING})


class LLMModel(Enum):
    """Registry of models selectable for adjudication."""

    GPT_4 = LLMSpec(
        name="gpt-4",
        capabilities=_CHAT_FULL,
        description="OpenAI GPT-4, small context",
    )

    GPT_4_TURBO = LLMSpec(
        name="gpt-4-turbo",
        capabilities=_CHAT_FULL,
        description="OpenAI GPT-4 Turbo, large context",
    )

    GPT_4O = LLMSpec(
        name="gpt-4o",
        capabilities=_CHAT_FULL,
        description="OpenAI GPT-4o",
    )

    GPT_3_5_TURBO = LLMSpec(
        name="gpt-3.5-turbo",
        capabilities=_CHAT_FULL,
        description="OpenAI GPT-3.5 Turbo, cheapest",
    )

    O1_PREVIEW = LLMSpec(
        name="o1-preview",
        capabilities=_REASONING,
        description="OpenAI o1 reasoning preview",
    )

    O1_MINI = LLMSpec(
        name="o1-mini",
        capabilities=_REASONING,
        description="OpenAI o1 small reasoning model",
    )

    @property
    def spec(self) -> LLMSpec:
        """Get the LLMSpec for this model."""
        return self.value

    @classmethod
    def by_name(cls, name: str) -> "LLMModel | None":
        """Look up model by name string.

        Args:
            name: Model name to find.

        Returns:
            LLMModel if found, None otherwise.
        """
        for model in cls:
            if model.spec.name == name:
                return model
        return None

    @classmethod
    def names(cls) -> list[str]:
        """All registered model names."""
        return [m.spec.name for m in cls]


# Larger context than gpt-4 for long tool results
DEFAULT_MODEL = LLMModel.GPT_4_TURBO


def get_llm_spec(model: str | LLMModel | LLMSpec) -> LLMSpec:
    """Resolve a model reference to its LLMSpec.

    Args:
        model: Can be a model name string, LLMModel enum, or LLMSpec.

    Returns:
        The resolved LLMSpec.

    Raises:
        ValueError: If model name is not found.
    """
    if isinstance(model, LLMSpec):
        return model
    if isinstance(model, LLMModel):
        return model.spec
    found = LLMModel.by_name(model)
    if found:
        return found.spec
    raise ValueError(
        f"Unknown model: {model}. Choose one of: {', '.join(LLMModel.names())}"
    )


__all__ = [
    "LLMCapability",
    "LLMSpec",
    "LLMModel",
    "DEFAULT_MODEL",
    "get_llm_spec",
]
