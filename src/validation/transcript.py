"""Transcript checks.

Checks over the conversation itself rather than over component
definitions: where components appear relative to the user prompt and to
tool traffic, how assistant messages are shaped, whether prop values can
be traced to tool output, and how grading guidance is structured. The raw
components text is also scanned for interactive elements.
"""

import logging
import re
from typing import Any

from src.schema import ConversationData, Message
from src.trace import (
    DEFAULT_MATCHING_OPTIONS,
    MatchingOptions,
    collect_props_source_violations,
)

from .models import (
    CHECK_ASSISTANT_MESSAGE_STRUCTURE,
    CHECK_COMPONENT_PROPS_SOURCE,
    CHECK_GRADING_GUIDANCE,
    CHECK_MESSAGE_SEQUENCE,
    CHECK_NO_INTERACTIVE_ELEMENTS,
    CHECK_PROPS_BEFORE_USER_PROMPT,
    ValidationResult,
)

logger = logging.getLogger(__name__)

NO_CONVERSATION_MESSAGE = "No conversation found to validate."
MAX_SOURCE_DETAILS = 10
UNCLEAR_SOURCE_SUFFIX = (
    "Prop value source unclear (may come from tool result but not traceable)"
)

INTERACTIVE_PATTERNS = (
    (re.compile(r"<button", re.IGNORECASE), "button"),
    (re.compile(r"onClick\s*=", re.IGNORECASE), "onClick handler"),
    (re.compile(r"onSubmit\s*=", re.IGNORECASE), "onSubmit handler"),
    (re.compile(r"onChange\s*=", re.IGNORECASE), "onChange handler"),
    (re.compile(r"<input", re.IGNORECASE), "input element"),
    (re.compile(r"<select", re.IGNORECASE), "select element"),
    (re.compile(r"<textarea", re.IGNORECASE), "textarea element"),
    (re.compile(r"cursor:\s*pointer", re.IGNORECASE), "pointer cursor (clickable)"),
    (re.compile(r"role\s*=\s*[\"']button[\"']", re.IGNORECASE), "button role"),
)


def _no_conversation(check: str, conversation: ConversationData | None) -> ValidationResult | None:
    if conversation is None or conversation.conversation is None:
        return ValidationResult(check=check, passed=True, message=NO_CONVERSATION_MESSAGE)
    return None


def _has_item_of_type(message: Message, *types: str) -> bool:
    return any(item.get("type") in types for item in message.content_items())


# =============================================================================
# Checks
# =============================================================================


def check_props_before_user_prompt(conversation: ConversationData | None) -> ValidationResult:
    """Fail when components carry populated props before the first user prompt."""
    skipped = _no_conversation(CHECK_PROPS_BEFORE_USER_PROMPT, conversation)
    if skipped:
        return skipped

    messages = conversation.messages
    first_prompt = next(
        (i for i, message in enumerate(messages) if message.is_user_prompt), None
    )
    if first_prompt is None:
        return ValidationResult(
            check=CHECK_PROPS_BEFORE_USER_PROMPT,
            passed=True,
            message="No User Prompt found in conversation.",
        )

    violations = []
    for index, message in enumerate(messages[:first_prompt], start=1):
        for usage in message.components():
            populated = [k for k, v in usage.props.items() if v is not None]
            if populated:
                violations.append(
                    f"Message {index} (before UP): Component {usage.name} "
                    f"has populated props: {', '.join(populated)}"
                )

    if violations:
        return ValidationResult(
            check=CHECK_PROPS_BEFORE_USER_PROMPT,
            passed=False,
            message=(
                f"Found {len(violations)} component(s) with populated props "
                "before User Prompt."
            ),
            details=violations,
        )
    return ValidationResult(
        check=CHECK_PROPS_BEFORE_USER_PROMPT,
        passed=True,
        message="No components with populated props found before User Prompt.",
    )


def check_no_interactive_elements(components_text: str) -> ValidationResult:
    """Fail when the components text contains buttons, handlers or inputs."""
    if not components_text:
        return ValidationResult(
            check=CHECK_NO_INTERACTIVE_ELEMENTS,
            passed=True,
            message="No components content found to validate.",
        )

    violations = []
    for pattern, name in INTERACTIVE_PATTERNS:
        count = len(pattern.findall(components_text))
        if count:
            violations.append(f"Found {count} {name}(s)")

    if violations:
        return ValidationResult(
            check=CHECK_NO_INTERACTIVE_ELEMENTS,
            passed=False,
            message="Found interactive elements in components.",
            details=violations,
        )
    return ValidationResult(
        check=CHECK_NO_INTERACTIVE_ELEMENTS,
        passed=True,
        message="No interactive elements found in components.",
    )


def check_message_sequence(conversation: ConversationData | None) -> ValidationResult:
    """Check the order tool calls -> tool results -> components.

    Components may not follow a tool call before any tool result has
    arrived, and (after the opening message) may not appear before any tool
    call at all.
    """
    skipped = _no_conversation(CHECK_MESSAGE_SEQUENCE, conversation)
    if skipped:
        return skipped

    violations = []
    last_tool_call: int | None = None
    seen_tool_result = False

    for index, message in enumerate(conversation.messages):
        if message.has_tool_calls:
            last_tool_call = index
        if message.is_tool_result:
            seen_tool_result = True
        if not _has_item_of_type(message, "component"):
            continue

        if last_tool_call is not None and not seen_tool_result:
            violations.append(
                f"Message {index + 1}: Components appear before tool results "
                f"(tool calls at message {last_tool_call + 1})"
            )
        if last_tool_call is None and index > 0:
            violations.append(
                f"Message {index + 1}: Components appear but no tool calls found before them"
            )

    if violations:
        return ValidationResult(
            check=CHECK_MESSAGE_SEQUENCE,
            passed=False,
            message=(
                f"Found {len(violations)} sequence violation(s). Tool calls should "
                "come before tool results, which should come before components."
            ),
            details=violations,
        )
    return ValidationResult(
        check=CHECK_MESSAGE_SEQUENCE,
        passed=True,
        message="Message sequence is logical: tool calls -> tool results -> components.",
    )


def check_assistant_message_structure(
    conversation: ConversationData | None,
) -> ValidationResult:
    """Fail when an assistant message mixes tool calls with text or components."""
    skipped = _no_conversation(CHECK_ASSISTANT_MESSAGE_STRUCTURE, conversation)
    if skipped:
        return skipped

    violations = [
        f"Message {index}: AssistantMessage has both content/components AND tool_calls. "
        "Should separate: tool_calls first (content: null), "
        "then content/components (tool_calls: null)"
        for index, message in enumerate(conversation.messages, start=1)
        if message.role == "assistant"
        and message.has_tool_calls
        and _has_item_of_type(message, "component", "text")
    ]

    if violations:
        return ValidationResult(
            check=CHECK_ASSISTANT_MESSAGE_STRUCTURE,
            passed=False,
            message=(
                f"Found {len(violations)} AssistantMessage(s) with both "
                "content/components AND tool_calls."
            ),
            details=violations,
        )
    return ValidationResult(
        check=CHECK_ASSISTANT_MESSAGE_STRUCTURE,
        passed=True,
        message="AssistantMessages correctly separate tool_calls from content/components.",
    )


def props_source_result(references: list[str]) -> ValidationResult:
    """Build the props-source result from violation reference strings.

    Shared by the heuristic check and by LLM adjudication, which rebuilds
    the result from the violations it rejected.
    """
    if references:
        return ValidationResult(
            check=CHECK_COMPONENT_PROPS_SOURCE,
            passed=False,
            message=f"Found {len(references)} component prop(s) with unclear source.",
            details=[
                f"{reference}: {UNCLEAR_SOURCE_SUFFIX}"
                for reference in references[:MAX_SOURCE_DETAILS]
            ],
            metadata={"total_violations": len(references)},
        )
    return ValidationResult(
        check=CHECK_COMPONENT_PROPS_SOURCE,
        passed=True,
        message="Component props sources are clear and traceable.",
    )


def check_component_props_source(
    conversation: ConversationData | None,
    options: MatchingOptions = DEFAULT_MATCHING_OPTIONS,
) -> ValidationResult:
    """Fail when data-like prop values cannot be traced to a tool result."""
    skipped = _no_conversation(CHECK_COMPONENT_PROPS_SOURCE, conversation)
    if skipped:
        return skipped

    violations = collect_props_source_violations(conversation, options)
    return props_source_result([v.reference for v in violations])


def _guidance_issues(index: int, guidance: Any) -> tuple[list[str], list[str]]:
    """Violations and warnings for one message's grading guidance."""
    violations: list[str] = []
    warnings: list[str] = []
    fields = guidance if isinstance(guidance, dict) else {}

    has_criteria = "quality_criteria" in fields
    has_expected = "expected_components" in fields
    if not has_criteria and not has_expected:
        violations.append(
            f"Message {index}: grading_guidance missing both "
            "quality_criteria and expected_components"
        )
    elif not has_criteria:
        warnings.append(f"Message {index}: grading_guidance missing quality_criteria")
    elif not has_expected:
        warnings.append(f"Message {index}: grading_guidance missing expected_components")

    if fields.get("tool_calls") or fields.get("toolCalls"):
        violations.append(
            f"Message {index}: grading_guidance should NOT include tool_calls "
            "(should only have quality_criteria and expected_components)"
        )

    expected = fields.get("expected_components")
    if isinstance(expected, list):
        for position, component in enumerate(expected):
            if isinstance(component, str):
                continue
            if isinstance(component, dict) and component.get("name"):
                continue
            violations.append(
                f"Message {index}, expected_components[{position}]: Invalid format "
                "(should be string or object with 'name')"
            )

    return violations, warnings


def check_grading_guidance(conversation: ConversationData | None) -> ValidationResult:
    """Check the shape of ``grading_guidance`` on each message.

    Missing guidance on a user prompt and a single missing field are
    warnings: the check still passes but lists them as details.
    """
    skipped = _no_conversation(CHECK_GRADING_GUIDANCE, conversation)
    if skipped:
        return skipped

    violations: list[str] = []
    warnings: list[str] = []
    for index, message in enumerate(conversation.messages, start=1):
        if message.grading_guidance is None:
            if message.is_user_prompt:
                warnings.append(f"Message {index} (User Prompt): No grading_guidance found")
            continue
        found, warned = _guidance_issues(index, message.grading_guidance)
        violations.extend(found)
        warnings.extend(warned)

    if violations:
        return ValidationResult(
            check=CHECK_GRADING_GUIDANCE,
            passed=False,
            message=(
                f"Found {len(violations)} grading_guidance violation(s) "
                f"and {len(warnings)} warning(s)."
            ),
            details=violations + warnings,
        )
    if warnings:
        return ValidationResult(
            check=CHECK_GRADING_GUIDANCE,
            passed=True,
            message=f"Grading guidance structure is correct. {len(warnings)} warning(s) found.",
            details=warnings,
        )
    return ValidationResult(
        check=CHECK_GRADING_GUIDANCE,
        passed=True,
        message=(
            "Grading guidance structure is correct: has quality_criteria "
            "and expected_components, no tool_calls."
        ),
    )


__all__ = [
    "check_props_before_user_prompt",
    "check_no_interactive_elements",
    "check_message_sequence",
    "check_assistant_message_structure",
    "props_source_result",
    "check_component_props_source",
    "check_grading_guidance",
]
