"""Trace module - heuristic prop-provenance tracing.

Example usage:
    >>> from src.trace import collect_props_source_violations
    >>> for violation in collect_props_source_violations(conversation):
    ...     print(violation.reference)
"""

from .lib import (
    DEFAULT_MATCHING_OPTIONS,
    MatchingOptions,
    ViolationDetail,
    can_trace_prop_value,
    collect_props_source_violations,
    collect_tool_results,
    extract_numbers,
    extract_strings,
    iter_untraceable_props,
    match_strings,
    numbers_match,
    should_check_short_string,
    token_overlap,
    tokenize,
    value_found_in_target,
)

__all__ = [
    # Options and results
    "MatchingOptions",
    "DEFAULT_MATCHING_OPTIONS",
    "ViolationDetail",
    # Matchers
    "numbers_match",
    "should_check_short_string",
    "tokenize",
    "token_overlap",
    "match_strings",
    "extract_strings",
    "extract_numbers",
    "value_found_in_target",
    "can_trace_prop_value",
    # Transcript walk
    "collect_tool_results",
    "iter_untraceable_props",
    "collect_props_source_violations",
]
