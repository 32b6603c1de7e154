"""Evaluation context, prompt text and verdict parsing for adjudication.

Everything here is pure: the context is cut down from the transcript, the
prompt is rendered from the context, and the model's reply is parsed into
a verdict without touching the network.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.schema import ConversationData, Message
from src.trace import ViolationDetail

from ..backend.base import InvalidResponseError

logger = logging.getLogger(__name__)

TOOL_RESULT_LIMIT = 3
PRECEDING_MESSAGE_LIMIT = 2
MAX_TOOL_RESULT_CHARS = 2000
MAX_MESSAGE_CHARS = 1000
MAX_PROP_VALUE_CHARS = 1500

ARRAY_HEAD = 3
MAX_ARRAY_ITEMS = 4
MAX_OBJECT_KEYS = 10
TRUNCATED_MARKER = "... [truncated]"

FENCED_JSON_PATTERN = re.compile(r"```json\s*([\s\S]*?)\s*```")
RAW_JSON_PATTERN = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = "You are a code validation assistant. Respond only with valid JSON."


class EvaluationCategory(str, Enum):
    """How the model explains a prop value's origin."""

    HARDCODED = "hardcoded"
    TRANSFORMATION = "transformation"
    DERIVED = "derived"
    UNCLEAR = "unclear"


# =============================================================================
# Truncation
# =============================================================================


def truncate_value(value: Any, max_chars: float = 1000) -> Any:
    """Shrink a JSON-like value while keeping its shape.

    Strings longer than ``max_chars`` are cut and marked. Lists longer than
    four keep their first three items, an omission marker and the last item.
    Objects with more than ten keys keep the first ten plus an omission
    entry under ``"..."``. The budget halves at every nesting level.

    Args:
        value: Value to shrink.
        max_chars: Character budget for strings at this level.

    Returns:
        The truncated copy (scalars are returned unchanged).
    """
    if isinstance(value, str):
        if len(value) > max_chars:
            return value[: int(max_chars)] + TRUNCATED_MARKER
        return value

    child_budget = max_chars / 2

    if isinstance(value, list):
        if len(value) > MAX_ARRAY_ITEMS:
            omitted = len(value) - MAX_ARRAY_ITEMS
            return [
                *(truncate_value(item, child_budget) for item in value[:ARRAY_HEAD]),
                f"... [{omitted} items omitted]",
                truncate_value(value[-1], child_budget),
            ]
        return [truncate_value(item, child_budget) for item in value]

    if isinstance(value, dict):
        items = list(value.items())
        truncated = {
            key: truncate_value(item, child_budget)
            for key, item in items[:MAX_OBJECT_KEYS]
        }
        if len(items) > MAX_OBJECT_KEYS:
            truncated["..."] = f"[{len(items) - MAX_OBJECT_KEYS} more keys omitted]"
        return truncated

    return value


# =============================================================================
# Context
# =============================================================================


@dataclass
class EvaluationContext:
    """The slice of a transcript shown to the model for one violation.

    Attributes:
        component: Component name.
        prop: Prop name.
        prop_value: Truncated prop value.
        message_index: Index of the message carrying the prop.
        preceding_messages: The violating message and up to two before it,
            with their content truncated.
        tool_results: Up to three most recent earlier tool results, keyed by
            tool call id (or ``tool_<index>``).
    """

    component: str
    prop: str
    prop_value: Any
    message_index: int
    preceding_messages: list[Message] = field(default_factory=list)
    tool_results: dict[str, Any] = field(default_factory=dict)


def build_evaluation_context(
    violation: ViolationDetail, conversation: ConversationData
) -> EvaluationContext:
    """Collect the transcript context the model needs for one violation.

    Args:
        violation: The untraceable prop.
        conversation: Conversation the violation was found in.

    Returns:
        EvaluationContext limited to recent tool output and messages.
    """
    messages = conversation.messages
    index = violation.message_index

    tool_messages = [
        (position, message)
        for position, message in enumerate(messages[:index])
        if message.is_tool_result
    ][-TOOL_RESULT_LIMIT:]

    tool_results: dict[str, Any] = {}
    for position, message in tool_messages:
        key = message.tool_call_id or f"tool_{position}"
        tool_results[key] = truncate_value(
            message.decoded_content(), MAX_TOOL_RESULT_CHARS
        )

    preceding: list[Message] = []
    for message in messages[max(0, index - PRECEDING_MESSAGE_LIMIT) : index + 1]:
        if isinstance(message.content, (str, dict, list)):
            message = message.model_copy(
                update={"content": truncate_value(message.content, MAX_MESSAGE_CHARS)}
            )
        preceding.append(message)

    return EvaluationContext(
        component=violation.component,
        prop=violation.prop,
        prop_value=truncate_value(violation.value, MAX_PROP_VALUE_CHARS),
        message_index=index,
        preceding_messages=preceding,
        tool_results=tool_results,
    )


# =============================================================================
# Prompt
# =============================================================================


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


PROMPT_TEMPLATE = """Decide whether a React component prop value is traceable to the tool results below or is legitimately static data.

Judge every field and nested field on its own. A prop is approved only if all of its fields pass; one untraceable field rejects the whole prop.

Large values were truncated before being shown here. Compare structure and recognisable values rather than expecting complete matches.

COMPONENT: {component}
PROP NAME: {prop}
PROP VALUE (may be truncated): {prop_value}

PRECEDING CONVERSATION MESSAGES (most recent only, truncated):
{messages}

AVAILABLE TOOL RESULTS (last 3 only, truncated):
{tool_results}

HOW TO CHECK:

Objects and nested data:
- Inspect each key/value pair separately.
- A string that looks like a data path (for example "RESULT.items.0.title") must name something that really exists in the tool results.
- Fixed presentation text such as a caption may be static.

Arrays:
- Items should correspond to tool result data, directly or after an obvious transformation.
- String arrays are acceptable when the strings appear in the tool results or are plainly fixed UI options.

APPROVE WHEN the value is one of:
1. Hardcoded presentation data: labels, titles, placeholders, configuration constants, fixed option lists.
2. A transformation of tool data: counts, reformatted dates or numbers, filtered or mapped lists, selected fields that exist in the results.
3. Clearly derived from tool output: the results carry the raw data and every referenced field exists.

REJECT WHEN any of these holds:
- The value references a data path or field the tool results do not contain.
- Some fields are traceable and others are not.
- A field's origin cannot be explained and it is not obviously static.
- The value's shape has no counterpart in the tool results.

Respond with JSON only, in exactly this form:
{{
  "approved": true or false,
  "reasoning": "Short explanation covering every field",
  "category": "hardcoded" or "transformation" or "derived" or "unclear"
}}"""


def format_prompt(context: EvaluationContext) -> str:
    """Render the adjudication prompt for one evaluation context.

    Args:
        context: Context built by ``build_evaluation_context``.

    Returns:
        Prompt text for the user turn.
    """
    messages = "\n\n".join(
        f"[Message {position} - {message.role}]:\n{_render(message.content)}"
        for position, message in enumerate(context.preceding_messages, start=1)
    )
    tool_results = "\n\n".join(
        f"[Tool Result {key}]:\n{_render(result)}"
        for key, result in context.tool_results.items()
    )
    return PROMPT_TEMPLATE.format(
        component=context.component,
        prop=context.prop,
        prop_value=_render(context.prop_value),
        messages=messages,
        tool_results=tool_results or "(No tool results available)",
    )


# =============================================================================
# Verdict Parsing
# =============================================================================


@dataclass(frozen=True)
class LlmEvaluationResult:
    """The model's verdict on one violation.

    Attributes:
        approved: True when the model accepts the prop value's origin.
        reasoning: The model's explanation (or a parse diagnostic).
        category: Origin category.
    """

    approved: bool
    reasoning: str
    category: EvaluationCategory


def _extract_json(text: str) -> dict[str, Any]:
    fenced = FENCED_JSON_PATTERN.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        raw = RAW_JSON_PATTERN.search(text)
        if not raw:
            raise InvalidResponseError("No JSON found in LLM response")
        candidate = raw.group(0)

    parsed = json.loads(candidate)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("approved"), bool):
        raise InvalidResponseError('Missing or invalid "approved" field')
    return parsed


def _category(value: Any) -> EvaluationCategory:
    try:
        return EvaluationCategory(value)
    except ValueError:
        return EvaluationCategory.UNCLEAR


def parse_llm_response(text: str) -> LlmEvaluationResult:
    """Parse the model's reply into a verdict.

    A fenced ``json`` block is preferred; otherwise the outermost brace
    span is used. Any failure is a rejection carrying the parse error.

    Args:
        text: Raw completion text.

    Returns:
        LlmEvaluationResult; never raises.
    """
    try:
        parsed = _extract_json(text)
    except (json.JSONDecodeError, InvalidResponseError) as e:
        logger.warning("Failed to parse LLM response: %s", e)
        logger.debug("Response text: %s", text)
        return LlmEvaluationResult(
            approved=False,
            reasoning=f"LLM response parsing failed: {e}",
            category=EvaluationCategory.UNCLEAR,
        )

    reasoning = parsed.get("reasoning")
    return LlmEvaluationResult(
        approved=parsed["approved"],
        reasoning=str(reasoning) if reasoning else "No reasoning provided",
        category=_category(parsed.get("category")),
    )


__all__ = [
    "SYSTEM_PROMPT",
    "EvaluationCategory",
    "EvaluationContext",
    "LlmEvaluationResult",
    "truncate_value",
    "build_evaluation_context",
    "format_prompt",
    "parse_llm_response",
]
