"""Unit tests for prop-provenance tracing."""

import json

import pytest

from src.schema import load_conversation
from src.trace import (
    MatchingOptions,
    ViolationDetail,
    can_trace_prop_value,
    collect_props_source_violations,
    collect_tool_results,
    extract_numbers,
    extract_strings,
    match_strings,
    numbers_match,
    should_check_short_string,
    token_overlap,
    tokenize,
    value_found_in_target,
)

CATALOG = {"items": [{"name": "Alpha Widget Deluxe", "price": 19.99}]}


def _conversation(props, tool_content=None, tool_call_id="call_1"):
    tool_message = {
        "role": "tool",
        "content": json.dumps(CATALOG if tool_content is None else tool_content),
    }
    if tool_call_id:
        tool_message["toolCallId"] = tool_call_id
    return load_conversation(
        {
            "conversation": [
                {"role": "user", "content": "Show me the catalog"},
                tool_message,
                {
                    "role": "assistant",
                    "content": [
                        {"type": "component", "component": {"name": "Card", "props": props}}
                    ],
                },
            ]
        }
    )


class TestPrimitiveMatchers:
    """Tests for the scalar matching helpers."""

    @pytest.mark.unit
    def test_numbers_match(self):
        """Integral values match exactly, floats within epsilon."""
        assert numbers_match(1, 1, 0.01)
        assert numbers_match(1, 1.0, 0.01)
        assert not numbers_match(1, 2, 0.01)
        assert numbers_match(0.5, 0.505, 0.01)
        assert not numbers_match(0.5, 0.52, 0.01)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("http://x", True),
            ("abc12345", True),
            ("a.b", True),
            ("me@x", True),
            ("hello", False),
            ("two words", False),
        ],
    )
    def test_should_check_short_string(self, value, expected):
        """URLs, identifiers and structured strings stay checkable."""
        assert should_check_short_string(value) is expected

    @pytest.mark.unit
    def test_tokenize(self):
        """Words are lowercased and short ones dropped."""
        assert tokenize("The Quick, brown FOX! a1") == {"the", "quick", "brown", "fox"}

    @pytest.mark.unit
    def test_token_overlap(self):
        """Overlap is relative to the smaller set."""
        assert token_overlap({"a", "b"}, {"a", "b", "c", "d"}) == 1.0
        assert token_overlap({"a"}, set()) == 0.0

    @pytest.mark.unit
    def test_match_strings(self):
        """Containment and token overlap both count as a match."""
        assert match_strings("Alpha Widget", "The Alpha Widget Deluxe edition")
        assert match_strings("Monthly budget overview", "Budget overview for the month")
        assert not match_strings("short", "short")
        assert not match_strings("Completely different", "Nothing alike here at all")

    @pytest.mark.unit
    def test_token_matching_can_be_disabled(self):
        """Without token matching only containment remains."""
        options = MatchingOptions(enable_token_matching=False)
        assert not match_strings(
            "Monthly budget overview", "Budget overview for the month", options
        )


class TestExtraction:
    """Tests for structural extraction."""

    @pytest.mark.unit
    def test_extract_strings_and_numbers(self):
        """Leaves are collected depth-first; booleans are not numbers."""
        data = {"a": "x", "b": [1, {"c": "y", "d": 2.5}], "e": True}
        assert extract_strings(data) == ["x", "y"]
        assert extract_numbers(data) == [1, 2.5]

    @pytest.mark.unit
    def test_extraction_depth_limit(self):
        """Very deep values are not reached."""
        deep = "leaf"
        for _ in range(10):
            deep = [deep]
        assert extract_strings(deep) == []


class TestValueFoundInTarget:
    """Tests for recursive value tracing."""

    @pytest.mark.unit
    def test_string_in_nested_structure(self):
        """A string is found inside nested tool output."""
        assert value_found_in_target("Alpha Widget Deluxe", CATALOG)

    @pytest.mark.unit
    def test_number_list_against_records(self):
        """A list of numbers matches numbers extracted from records."""
        target = [{"count": 0}, {"count": 0}, {"count": 1}, {"count": 6}]
        assert value_found_in_target([0, 0, 1, 6], target)
        assert not value_found_in_target([0, 0, 2, 6], target)

    @pytest.mark.unit
    def test_string_list_prefix(self):
        """A list of strings matches strings extracted in order."""
        assert value_found_in_target(["Alpha Widget Deluxe"], CATALOG)

    @pytest.mark.unit
    def test_partial_object(self):
        """One traceable shared key is enough for an object."""
        value = {"name": "Alpha Widget Deluxe", "badge": "New!"}
        assert value_found_in_target(value, CATALOG)

    @pytest.mark.unit
    def test_float_tolerance_inside_lists(self):
        """Element-wise comparison tolerates float noise."""
        assert value_found_in_target([19.99, 5], [19.991, 5])

    @pytest.mark.unit
    def test_none_never_matches(self):
        """None on either side is never found."""
        assert not value_found_in_target(None, CATALOG)
        assert not value_found_in_target("Alpha Widget Deluxe", None)

    @pytest.mark.unit
    def test_structural_extraction_can_be_disabled(self):
        """Strings are not searched inside structures when disabled."""
        options = MatchingOptions(enable_structural_extraction=False)
        assert not value_found_in_target("Alpha Widget Deluxe", CATALOG, options)


class TestCanTracePropValue:
    """Tests for the prop-level entry point."""

    @pytest.mark.unit
    def test_scalars_are_not_traceable(self):
        """Numbers, booleans and short strings are never attributed."""
        results = {"call_1": {"total": 42, "ok": True, "tag": "hi"}}
        assert not can_trace_prop_value(42, results)
        assert not can_trace_prop_value(True, results)
        assert not can_trace_prop_value("hi", results)

    @pytest.mark.unit
    def test_traceable_value(self):
        """Values found in any result are traceable."""
        results = {"a": {"other": "unrelated text here"}, "b": CATALOG}
        assert can_trace_prop_value("Alpha Widget Deluxe", results)


class TestTranscriptWalk:
    """Tests for collecting untraceable props from a transcript."""

    @pytest.mark.unit
    def test_collect_tool_results(self):
        """Tool results are decoded and keyed by id or position."""
        with_id = collect_tool_results(_conversation({}))
        assert with_id == {"call_1": CATALOG}

        without_id = collect_tool_results(_conversation({}, tool_call_id=None))
        assert without_id == {"tool_1": CATALOG}

    @pytest.mark.unit
    def test_untraceable_prop_reported(self):
        """Only data-like props that cannot be traced are reported."""
        props = {
            "items": ["Alpha Widget Deluxe"],
            "title": "Totally invented heading text nobody returned",
            "count": 3,
            "label": "Hi",
            "empty": "",
        }
        violations = collect_props_source_violations(_conversation(props))
        assert violations == [
            ViolationDetail(
                message_index=2,
                component="Card",
                prop="title",
                value="Totally invented heading text nobody returned",
            )
        ]
        assert violations[0].reference == "Message 3, Component Card.title"

    @pytest.mark.unit
    def test_no_tool_results_no_violations(self):
        """Without tool results nothing can be judged untraceable."""
        data = load_conversation(
            {
                "conversation": [
                    {"role": "user", "content": "hi"},
                    {
                        "role": "assistant",
                        "content": [
                            {
                                "type": "component",
                                "component": {
                                    "name": "Card",
                                    "props": {"rows": [{"a": "invented value here"}]},
                                },
                            }
                        ],
                    },
                ]
            }
        )
        assert collect_props_source_violations(data) == []

    @pytest.mark.unit
    def test_first_message_exempt(self):
        """Components in the first message may carry hardcoded data."""
        data = load_conversation(
            {
                "conversation": [
                    {
                        "role": "assistant",
                        "content": [
                            {
                                "type": "component",
                                "component": {"name": "Intro", "props": {"rows": [1, 2]}},
                            }
                        ],
                    },
                    {"role": "tool", "content": '{"x": 1}', "toolCallId": "c"},
                ]
            }
        )
        assert collect_props_source_violations(data) == []

    @pytest.mark.unit
    def test_missing_conversation(self):
        """No document or no transcript yields nothing."""
        assert collect_props_source_violations(None) == []
        assert collect_props_source_violations(load_conversation({})) == []
