"""Heuristic prop-provenance tracing.

Decides whether a component prop value emitted by the assistant can be
traced back to the content of a tool result earlier in the transcript.
Matching is deliberately fuzzy: tool output is routinely reformatted,
abbreviated or reshaped before it lands in a prop, so several strategies
are tried in turn:

- exact equality
- bidirectional substring containment
- token overlap (share of common words above a threshold)
- structural extraction (strings/numbers pulled out of nested tool output)
- numeric comparison with a float tolerance

Values that cannot be traced become ``ViolationDetail`` records, which the
transcript checks report and the LLM adjudicator may re-examine.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from src.schema import ConversationData

logger = logging.getLogger(__name__)

MAX_TRACE_DEPTH = 10
MAX_EXTRACT_DEPTH = 5

URL_MARKERS = ("http", "://")
IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z0-9_-]{8,}")
STRUCTURED_CHAR_PATTERN = re.compile(r"[.@:/\\]")
TOKEN_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class MatchingOptions:
    """Tuning knobs for value tracing.

    Attributes:
        min_string_length: Strings shorter than this are ignored unless they
            look like URLs or identifiers.
        min_complex_string_length: Strings longer than this look like data
            that probably came from a tool.
        min_token_length: Shortest word kept when tokenizing.
        token_overlap_threshold: Share of common tokens (0.0 - 1.0) needed
            for a token match.
        numeric_epsilon: Tolerance for float comparisons.
        enable_token_matching: Try token overlap matching.
        enable_structural_extraction: Match strings against strings pulled
            out of nested tool output.
    """

    min_string_length: int = 10
    min_complex_string_length: int = 30
    min_token_length: int = 3
    token_overlap_threshold: float = 0.4
    numeric_epsilon: float = 0.01
    enable_token_matching: bool = True
    enable_structural_extraction: bool = True


DEFAULT_MATCHING_OPTIONS = MatchingOptions()


@dataclass(frozen=True)
class ViolationDetail:
    """A prop whose value could not be traced to any tool result.

    Attributes:
        message_index: Zero-based index of the message carrying the prop.
        component: Component name.
        prop: Prop name.
        value: The untraceable prop value.
    """

    message_index: int
    component: str
    prop: str
    value: Any

    @property
    def reference(self) -> str:
        """Human reference, e.g. ``Message 3, Component Card.items``."""
        return f"Message {self.message_index + 1}, Component {self.component}.{self.prop}"


# =============================================================================
# Primitive matchers
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def numbers_match(a: float, b: float, epsilon: float) -> bool:
    """Exact match for integral values, ``epsilon`` tolerance otherwise."""
    if float(a).is_integer() and float(b).is_integer():
        return a == b
    return abs(a - b) <= epsilon


def should_check_short_string(value: str) -> bool:
    """True for short strings that still look traceable (URLs, ids, paths)."""
    if any(marker in value for marker in URL_MARKERS):
        return True
    if IDENTIFIER_PATTERN.fullmatch(value):
        return True
    return STRUCTURED_CHAR_PATTERN.search(value) is not None


def tokenize(value: str, min_length: int = 3) -> set[str]:
    """Lowercase alphanumeric words of at least ``min_length`` characters."""
    return {
        token
        for token in TOKEN_SPLIT_PATTERN.split(value.lower())
        if len(token) >= min_length
    }


def token_overlap(first: set[str], second: set[str]) -> float:
    """Common tokens divided by the size of the smaller set."""
    if not first or not second:
        return 0.0
    return len(first & second) / min(len(first), len(second))


def _token_match(value: str, target: str, options: MatchingOptions) -> bool:
    overlap = token_overlap(
        tokenize(value, options.min_token_length),
        tokenize(target, options.min_token_length),
    )
    return overlap >= options.token_overlap_threshold


def match_strings(
    value: str, target: str, options: MatchingOptions = DEFAULT_MATCHING_OPTIONS
) -> bool:
    """Match two strings by equality, containment or token overlap.

    Both sides must be long enough to be meaningful, unless they look like
    URLs or identifiers.
    """
    for side in (value, target):
        if len(side) < options.min_string_length and not should_check_short_string(side):
            return False

    if value == target:
        return True
    if value in target or target in value:
        return True
    if options.enable_token_matching:
        return _token_match(value, target, options)
    return False


# =============================================================================
# Structural extraction
# =============================================================================


def _children(value: Any) -> list[Any]:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, list):
        return value
    return []


def extract_strings(value: Any, depth: int = 0) -> list[str]:
    """All strings nested in ``value``, depth-first."""
    if depth > MAX_EXTRACT_DEPTH:
        return []
    if isinstance(value, str):
        return [value]
    strings: list[str] = []
    for child in _children(value):
        strings.extend(extract_strings(child, depth + 1))
    return strings


def extract_numbers(value: Any, depth: int = 0) -> list[float]:
    """All numbers (booleans excluded) nested in ``value``, depth-first."""
    if depth > MAX_EXTRACT_DEPTH:
        return []
    if _is_number(value):
        return [value]
    numbers: list[float] = []
    for child in _children(value):
        numbers.extend(extract_numbers(child, depth + 1))
    return numbers


def _structural_match(value: str, structure: Any, options: MatchingOptions) -> bool:
    for extracted in extract_strings(structure):
        if len(extracted) < options.min_string_length:
            continue
        if value in extracted or extracted in value:
            return True
        if options.enable_token_matching and _token_match(value, extracted, options):
            return True
    return False


# =============================================================================
# Value tracing
# =============================================================================


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    return type(value).__name__


def _elementwise_match(
    value: list[Any], target: list[Any], depth: int, options: MatchingOptions
) -> bool:
    for item, other in zip(value, target):
        if _is_number(item) and _is_number(other):
            if not numbers_match(item, other, options.numeric_epsilon):
                return False
        elif not value_found_in_target(item, other, options, depth + 1):
            return False
    return True


def _prefix_numbers_match(
    value: list[Any], target: Any, options: MatchingOptions
) -> bool:
    extracted = extract_numbers(target)
    if len(extracted) < len(value):
        return False
    return all(
        numbers_match(item, other, options.numeric_epsilon)
        for item, other in zip(value, extracted)
    )


def _prefix_strings_match(
    value: list[str], target: Any, options: MatchingOptions
) -> bool:
    extracted = extract_strings(target)
    if len(extracted) < len(value):
        return False
    if all(item == other for item, other in zip(value, extracted)):
        return True
    if options.enable_token_matching:
        return all(
            match_strings(item, other, options) for item, other in zip(value, extracted)
        )
    return False


def _container_match(
    value: dict | list, target: dict | list, depth: int, options: MatchingOptions
) -> bool:
    if isinstance(value, list):
        if (
            isinstance(target, list)
            and len(value) == len(target)
            and _elementwise_match(value, target, depth, options)
        ):
            return True
        if value and all(_is_number(v) for v in value):
            if _prefix_numbers_match(value, target, options):
                return True
        if value and all(isinstance(v, str) for v in value):
            if _prefix_strings_match(value, target, options):
                return True
        if value:
            # Any traceable element is enough for a list value
            return any(
                value_found_in_target(item, target, options, depth + 1) for item in value
            )
    elif isinstance(target, dict):
        # Partial object match: one traceable shared key suffices
        if any(
            key in target
            and value_found_in_target(item, target[key], options, depth + 1)
            for key, item in value.items()
        ):
            return True

    return any(
        value_found_in_target(value, child, options, depth + 1)
        for child in _children(target)
    )


def value_found_in_target(
    value: Any,
    target: Any,
    options: MatchingOptions = DEFAULT_MATCHING_OPTIONS,
    depth: int = 0,
) -> bool:
    """Check whether ``value`` (or a part of it) appears inside ``target``.

    Args:
        value: A prop value.
        target: A decoded tool result (or a nested part of one).
        options: Matching tuning.
        depth: Current recursion depth; the search stops past
            ``MAX_TRACE_DEPTH``.

    Returns:
        bool: True if any matching strategy succeeds.

    Example:
        >>> value_found_in_target("Quarterly revenue report", {"title": "Quarterly revenue report"})
        True
    """
    if depth > MAX_TRACE_DEPTH or value is None or target is None:
        return False

    if _kind(value) == _kind(target) and value == target:
        return True

    if isinstance(value, str):
        if isinstance(target, str):
            return match_strings(value, target, options)
        if _is_container(target) and options.enable_structural_extraction:
            return _structural_match(value, target, options)
        return False

    if _is_container(value) and _is_container(target):
        return _container_match(value, target, depth, options)

    if _is_number(value) and _is_number(target):
        return numbers_match(value, target, options.numeric_epsilon)

    return False


def can_trace_prop_value(
    value: Any,
    tool_results: dict[str, Any],
    options: MatchingOptions = DEFAULT_MATCHING_OPTIONS,
) -> bool:
    """Check whether a prop value appears in any collected tool result.

    Scalars other than long or structured strings are never considered
    traceable; they are too ambiguous to attribute.
    """
    if value is None or isinstance(value, bool) or _is_number(value):
        return False
    if (
        isinstance(value, str)
        and len(value) < options.min_string_length
        and not should_check_short_string(value)
    ):
        return False
    return any(
        value_found_in_target(value, result, options) for result in tool_results.values()
    )


# =============================================================================
# Transcript walk
# =============================================================================


def collect_tool_results(conversation: ConversationData) -> dict[str, Any]:
    """Decoded tool result contents keyed by tool call id.

    Results without an id are keyed ``tool_<message index>``.
    """
    results: dict[str, Any] = {}
    for index, message in enumerate(conversation.messages):
        if not message.is_tool_result or not message.content:
            continue
        key = message.tool_call_id or f"tool_{index}"
        results[key] = message.decoded_content()
    return results


def _looks_like_tool_data(value: Any, options: MatchingOptions) -> bool:
    if _is_container(value):
        return True
    return isinstance(value, str) and len(value) > options.min_complex_string_length


def iter_untraceable_props(
    conversation: ConversationData,
    options: MatchingOptions = DEFAULT_MATCHING_OPTIONS,
) -> Iterator[ViolationDetail]:
    """Yield every data-like prop value that cannot be traced to a tool result.

    Nothing is yielded for transcripts without tool results. Components in
    the first message are exempt: they may legitimately carry hardcoded
    values.
    """
    tool_results = collect_tool_results(conversation)
    if not tool_results:
        return

    for index, message in enumerate(conversation.messages):
        if index == 0:
            continue
        for usage in message.components():
            for prop, value in usage.props.items():
                if value is None or value == "":
                    continue
                if not _looks_like_tool_data(value, options):
                    continue
                if can_trace_prop_value(value, tool_results, options):
                    continue
                yield ViolationDetail(
                    message_index=index,
                    component=usage.name,
                    prop=prop,
                    value=value,
                )


def collect_props_source_violations(
    conversation: ConversationData | None,
    options: MatchingOptions = DEFAULT_MATCHING_OPTIONS,
) -> list[ViolationDetail]:
    """List untraceable props in transcript order."""
    if conversation is None or conversation.conversation is None:
        return []
    violations = list(iter_untraceable_props(conversation, options))
    logger.debug("Found %d untraceable prop value(s)", len(violations))
    return violations


__all__ = [
    "MatchingOptions",
    "DEFAULT_MATCHING_OPTIONS",
    "ViolationDetail",
    "numbers_match",
    "should_check_short_string",
    "tokenize",
    "token_overlap",
    "match_strings",
    "extract_strings",
    "extract_numbers",
    "value_found_in_target",
    "can_trace_prop_value",
    "collect_tool_results",
    "iter_untraceable_props",
    "collect_props_source_violations",
]
