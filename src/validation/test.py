"""Unit tests for validation module."""

import json

import pytest

from src.interface import parse_components
from src.schema import load_conversation
from src.validation import (
    ALL_CHECKS,
    CHECK_COMPONENT_PROPS_SOURCE,
    Mismatch,
    SafeReason,
    ValidationReport,
    ValidationResult,
    check_assistant_message_structure,
    check_component_props_source,
    check_grading_guidance,
    check_message_sequence,
    check_no_export_interface,
    check_no_interactive_elements,
    check_no_react_node,
    check_props_before_user_prompt,
    check_props_match_schema,
    check_schema_match,
    reconcile_component,
    validate_components,
)

WIDGET_TEXT = "interface WidgetProps { id: string; label?: string; }"


def _schema(name="Widget", properties=None, required=None, additional=None):
    props = {"properties": properties or {}}
    if required is not None:
        props["required"] = required
    if additional is not None:
        props["additionalProperties"] = additional
    return {name: {"properties": {"props": props}}}


def _document(defs=None, messages=None):
    data = {}
    if defs is not None:
        data["componentsSchema"] = {"$defs": defs}
    if messages is not None:
        data["conversation"] = messages
    return load_conversation(data)


def _component_message(name, props, role="assistant", **extra):
    return {
        "role": role,
        "content": [{"type": "component", "component": {"name": name, "props": props}}],
        **extra,
    }


class TestNoExportInterface:
    """Tests for the export modifier check."""

    @pytest.mark.unit
    def test_single_occurrence(self):
        """An exported interface fails with a count of one."""
        result = check_no_export_interface("export interface FooProps {}")
        assert not result.passed
        assert result.message.startswith('Found 1 "export interface"')
        assert result.details == ["Occurrence 1"]

    @pytest.mark.unit
    def test_multiple_occurrences_whitespace_tolerant(self):
        """Any whitespace between the keywords is matched."""
        text = "export interface AProps {}\nexport\n  interface BProps {}"
        assert check_no_export_interface(text).details == ["Occurrence 1", "Occurrence 2"]

    @pytest.mark.unit
    def test_plain_interface_passes(self):
        """Plain interfaces pass."""
        result = check_no_export_interface(WIDGET_TEXT)
        assert result.passed
        assert result.details is None


class TestNoReactNode:
    """Tests for the opaque UI node check."""

    @pytest.mark.unit
    def test_flags_opaque_types(self):
        """ReactNode-like types are listed per prop."""
        components = parse_components(
            "interface CardProps { body: React.ReactNode; icon: JSX.Element; "
            "footer?: reactnode; title: string; }"
        )
        result = check_no_react_node(components)
        assert not result.passed
        assert result.message == "Found 3 ReactNode attribute(s)."
        assert result.details == [
            "Card.body: React.ReactNode",
            "Card.icon: JSX.Element",
            "Card.footer: reactnode",
        ]

    @pytest.mark.unit
    def test_serializable_props_pass(self):
        """Plain data types pass."""
        assert check_no_react_node(parse_components(WIDGET_TEXT)).passed


class TestSchemaMatch:
    """Tests for interface/schema reconciliation."""

    @pytest.mark.unit
    def test_scenario_optional_prop_is_safe(self):
        """An optional prop missing from the schema is ignored but counted."""
        data = _document(_schema(properties={"id": {}}, required=["id"]))
        result = check_schema_match(data, parse_components(WIDGET_TEXT))
        assert result.passed
        assert "1 safe-to-filter props not in schema were ignored" in result.message
        assert result.metadata == {
            "total_safe_mismatches": 1,
            "total_unsafe_mismatches": 0,
        }

    @pytest.mark.unit
    def test_scenario_required_prop_missing(self):
        """A required, scalar, mandatory prop is the only unsafe kind."""
        data = _document(_schema(properties={}, required=["id"]))
        result = check_schema_match(data, parse_components(WIDGET_TEXT))
        assert not result.passed
        assert result.message == "Found 1 mismatch(es) between interface and schema."
        assert result.details == ["Widget.id: In interface but not in schema"]
        assert result.metadata == {
            "total_safe_mismatches": 1,
            "total_unsafe_mismatches": 1,
        }

    @pytest.mark.unit
    def test_scenario_redundant_escapes_count_once(self):
        """Array, record and not-required escapes together stay one mismatch."""
        data = _document(_schema(name="List", properties={}))
        components = parse_components("interface ListProps { items: SomeObject[]; }")
        result = check_schema_match(data, components)
        assert result.passed
        assert result.metadata["total_safe_mismatches"] == 1

        (mismatch,) = reconcile_component(components[0], data.schema_defs)
        assert mismatch.safe
        assert set(mismatch.reasons) == {
            SafeReason.ARRAY,
            SafeReason.RECORD,
            SafeReason.NOT_REQUIRED,
        }

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "declaration",
        [
            "a?: string;",
            "a: string[];",
            "a: Array<number>;",
            "a: array;",
            "a: Record<string, number>;",
            "a: Map<string, number>;",
            "a: Dictionary;",
            "a: object;",
        ],
    )
    def test_each_escape_alone_is_safe(self, declaration):
        """Each escape condition suffices on its own."""
        data = _document(_schema(name="Thing", properties={}, required=["a"]))
        components = parse_components(f"interface ThingProps {{ {declaration} }}")
        assert check_schema_match(data, components).passed

    @pytest.mark.unit
    def test_not_required_is_safe(self):
        """A scalar prop the schema does not require is safe."""
        data = _document(_schema(name="Thing", properties={}, required=[]))
        components = parse_components("interface ThingProps { a: string; }")
        assert check_schema_match(data, components).passed

    @pytest.mark.unit
    def test_unmatched_component(self):
        """A component without a schema is a component-level mismatch."""
        data = _document({})
        result = check_schema_match(data, parse_components(WIDGET_TEXT))
        assert not result.passed
        assert result.details == ["Widget: No matching schema found"]
        assert result.metadata["total_unsafe_mismatches"] == 1

    @pytest.mark.unit
    def test_fuzzy_schema_key(self):
        """Suffixed and case-folded keys are matched."""
        data = _document(_schema(name="widgetprops", properties={"id": {}, "label": {}}))
        result = check_schema_match(data, parse_components(WIDGET_TEXT))
        assert result.passed
        assert result.message == "All interface attributes match component schema."

    @pytest.mark.unit
    def test_nothing_to_validate(self):
        """Missing schema or components pass vacuously."""
        components = parse_components(WIDGET_TEXT)
        assert check_schema_match(None, components).message == (
            "No component schema found to validate against."
        )
        assert check_schema_match(_document(), components).passed
        result = check_schema_match(_document(_schema()), [])
        assert result.passed
        assert result.message == "No components parsed to validate."
        assert result.metadata is None

    @pytest.mark.unit
    def test_mismatch_detail(self):
        """Detail lines name the component and prop."""
        assert Mismatch("Card").detail == "Card: No matching schema found"
        assert Mismatch("Card", "title").detail == (
            "Card.title: In interface but not in schema"
        )
        assert not Mismatch("Card", "title").safe


class TestPropsMatchSchema:
    """Tests for runtime prop usage."""

    @pytest.mark.unit
    def test_closed_schema_flags_unknown_props(self):
        """Undeclared props fail when additional properties are forbidden."""
        data = _document(
            _schema(properties={"id": {}}, additional=False),
            [
                {"role": "user", "content": "hi"},
                _component_message("Widget", {"id": 1, "extra": 2}),
            ],
        )
        result = check_props_match_schema(data)
        assert not result.passed
        assert result.details == ["Message 2, Widget.extra: Not in schema params"]

    @pytest.mark.unit
    def test_permissive_schema(self):
        """Unspecified additionalProperties accepts anything."""
        data = _document(
            _schema(properties={"id": {}}),
            [_component_message("Widget", {"id": 1, "extra": 2})],
        )
        result = check_props_match_schema(data)
        assert result.passed
        assert result.message == "All props in conversation match component schema params."

    @pytest.mark.unit
    def test_unknown_component(self):
        """Components without a schema are reported per message."""
        data = _document(
            _schema(),
            [{"role": "user", "content": "hi"}, _component_message("Ghost", {})],
        )
        assert check_props_match_schema(data).details == [
            "Message 2, Component Ghost: No schema found"
        ]

    @pytest.mark.unit
    def test_independent_of_interface_check(self):
        """Runtime usage can fail while the interface check passes."""
        data = _document(
            _schema(properties={"id": {}, "label": {}}, additional=False),
            [_component_message("Widget", {"id": 1, "colour": "red"})],
        )
        assert check_schema_match(data, parse_components(WIDGET_TEXT)).passed
        assert not check_props_match_schema(data).passed

    @pytest.mark.unit
    def test_nothing_to_validate(self):
        """Missing schema or transcript passes."""
        expected = "No conversation or schema found to validate against."
        assert check_props_match_schema(None).message == expected
        assert check_props_match_schema(_document(_schema())).message == expected
        assert check_props_match_schema(_document(messages=[])).message == expected


class TestPropsBeforeUserPrompt:
    """Tests for components ahead of the first user prompt."""

    @pytest.mark.unit
    def test_populated_props_before_prompt(self):
        """Non-null props before the prompt are flagged."""
        data = _document(
            messages=[
                _component_message("Card", {"a": 1, "b": None}),
                {"role": "user", "content": "hi"},
                _component_message("Card", {"a": 2}),
            ]
        )
        result = check_props_before_user_prompt(data)
        assert not result.passed
        assert result.details == [
            "Message 1 (before UP): Component Card has populated props: a"
        ]

    @pytest.mark.unit
    def test_empty_props_before_prompt(self):
        """Skeleton components before the prompt are fine."""
        data = _document(
            messages=[
                _component_message("Card", {"a": None}),
                {"role": "human", "content": "hi"},
            ]
        )
        assert check_props_before_user_prompt(data).passed

    @pytest.mark.unit
    def test_no_user_prompt(self):
        """Transcripts without a prompt pass."""
        data = _document(messages=[_component_message("Card", {"a": 1})])
        result = check_props_before_user_prompt(data)
        assert result.passed
        assert result.message == "No User Prompt found in conversation."


class TestNoInteractiveElements:
    """Tests for the interactive element scan."""

    @pytest.mark.unit
    def test_counts_each_kind(self):
        """Each pattern found is reported with its count."""
        text = (
            '<button onClick={go}>Go</button>\n<BUTTON role="button">'
            "\nstyle={{ cursor: pointer }}"
        )
        result = check_no_interactive_elements(text)
        assert not result.passed
        assert result.details == [
            "Found 2 button(s)",
            "Found 1 onClick handler(s)",
            "Found 1 pointer cursor (clickable)(s)",
            "Found 1 button role(s)",
        ]

    @pytest.mark.unit
    def test_plain_interfaces_pass(self):
        """Interface text alone passes; empty text passes vacuously."""
        assert check_no_interactive_elements(WIDGET_TEXT).passed
        assert check_no_interactive_elements("").message == (
            "No components content found to validate."
        )


class TestMessageSequence:
    """Tests for tool call, tool result and component ordering."""

    @pytest.mark.unit
    def test_components_before_tool_result(self):
        """Components right after a tool call are flagged."""
        data = _document(
            messages=[
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": None, "toolCalls": [{"id": "c"}]},
                _component_message("Card", {}),
            ]
        )
        assert check_message_sequence(data).details == [
            "Message 3: Components appear before tool results (tool calls at message 2)"
        ]

    @pytest.mark.unit
    def test_components_without_tool_calls(self):
        """Components after the first message need a preceding tool call."""
        data = _document(
            messages=[{"role": "user", "content": "hi"}, _component_message("Card", {})]
        )
        assert check_message_sequence(data).details == [
            "Message 2: Components appear but no tool calls found before them"
        ]

    @pytest.mark.unit
    def test_logical_order(self, widget_conversation):
        """Call, result, components passes; so does an opening component."""
        assert check_message_sequence(load_conversation(widget_conversation)).passed
        opening = _document(messages=[_component_message("Card", {})])
        assert check_message_sequence(opening).passed


class TestAssistantMessageStructure:
    """Tests for mixed assistant messages."""

    @pytest.mark.unit
    def test_mixed_message(self):
        """Tool calls alongside text are flagged."""
        data = _document(
            messages=[
                {
                    "role": "assistant",
                    "content": [{"type": "text", "text": "Fetching"}],
                    "tool_calls": [{"id": "c"}],
                }
            ]
        )
        result = check_assistant_message_structure(data)
        assert not result.passed
        assert result.details[0].startswith("Message 1: AssistantMessage has both")

    @pytest.mark.unit
    def test_separated_messages(self, widget_conversation):
        """Tool calls with null content pass."""
        data = load_conversation(widget_conversation)
        assert check_assistant_message_structure(data).passed


class TestComponentPropsSource:
    """Tests for the prop provenance check."""

    @pytest.mark.unit
    def test_details_capped(self):
        """Details list at most ten violations; the count covers all."""
        props = {f"p{i}": f"Invented narrative text number {i} nobody fetched" for i in range(12)}
        data = _document(
            messages=[
                {"role": "user", "content": "hi"},
                {"role": "tool", "content": json.dumps({"n": 1}), "toolCallId": "c"},
                _component_message("Story", props),
            ]
        )
        result = check_component_props_source(data)
        assert not result.passed
        assert result.message == "Found 12 component prop(s) with unclear source."
        assert len(result.details) == 10
        assert result.details[0] == (
            "Message 3, Component Story.p0: Prop value source unclear "
            "(may come from tool result but not traceable)"
        )
        assert result.metadata == {"total_violations": 12}

    @pytest.mark.unit
    def test_traceable_props(self, widget_conversation):
        """Traceable or scalar props pass."""
        data = load_conversation(widget_conversation)
        result = check_component_props_source(data)
        assert result.passed
        assert result.check == CHECK_COMPONENT_PROPS_SOURCE


class TestGradingGuidance:
    """Tests for grading guidance structure."""

    @pytest.mark.unit
    def test_violations_and_warnings(self):
        """Structural problems fail; missing guidance on prompts warns."""
        data = _document(
            messages=[
                {"role": "user", "content": "first"},
                {
                    "role": "user",
                    "content": "second",
                    "grading_guidance": {
                        "quality_criteria": [],
                        "expected_components": ["A", {"name": "B"}, {"x": 1}, 3],
                        "tool_calls": [{"id": "c"}],
                    },
                },
                {"role": "assistant", "content": "ok", "grading_guidance": {}},
            ]
        )
        result = check_grading_guidance(data)
        assert not result.passed
        assert result.message == "Found 4 grading_guidance violation(s) and 1 warning(s)."
        assert result.details == [
            "Message 2: grading_guidance should NOT include tool_calls "
            "(should only have quality_criteria and expected_components)",
            "Message 2, expected_components[2]: Invalid format "
            "(should be string or object with 'name')",
            "Message 2, expected_components[3]: Invalid format "
            "(should be string or object with 'name')",
            "Message 3: grading_guidance missing both quality_criteria "
            "and expected_components",
            "Message 1 (User Prompt): No grading_guidance found",
        ]

    @pytest.mark.unit
    def test_warnings_only_pass(self):
        """A single missing field is a warning, not a failure."""
        data = _document(
            messages=[
                {
                    "role": "user",
                    "content": "hi",
                    "grading_guidance": {"quality_criteria": ["clear"]},
                }
            ]
        )
        result = check_grading_guidance(data)
        assert result.passed
        assert result.details == [
            "Message 1: grading_guidance missing expected_components"
        ]


class TestValidateComponents:
    """Tests for the full report."""

    @pytest.mark.unit
    def test_clean_data_point(self, widget_components_text, widget_conversation):
        """A well-formed data point passes every check, in order."""
        report = validate_components(
            load_conversation(widget_conversation),
            parse_components(widget_components_text),
            widget_components_text,
        )
        assert [r.check for r in report.results] == list(ALL_CHECKS)
        assert report.all_passed, report.failed_checks

    @pytest.mark.unit
    def test_missing_everything_passes(self):
        """No conversation and no components is vacuously valid."""
        report = validate_components(None, [], "")
        assert report.all_passed
        assert len(report.results) == len(ALL_CHECKS)

    @pytest.mark.unit
    def test_failures_carry_details(self, widget_conversation):
        """Every failed check explains itself."""
        text = "export interface WidgetProps { id: string; body: ReactNode; }"
        widget_conversation["componentsSchema"]["$defs"]["Widget"]["properties"][
            "props"
        ]["required"] = ["id", "body"]
        report = validate_components(
            load_conversation(widget_conversation), parse_components(text), text
        )
        assert not report.all_passed
        assert report.failed_checks == [
            "No export interface",
            "No ReactNode attributes",
            "Interface matches schema",
        ]
        for check in report.failed_checks:
            assert report.get(check).details

    @pytest.mark.unit
    def test_report_serializes(self):
        """Reports round-trip through JSON."""
        report = ValidationReport.from_results(
            [ValidationResult(check="x", passed=False, message="m", details=["d"])]
        )
        assert ValidationReport.model_validate_json(report.model_dump_json()) == report
        assert report.get("missing") is None
