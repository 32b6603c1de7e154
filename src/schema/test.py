"""Tests for conversation documents and schema lookups."""

import json

import pytest
from pydantic import ValidationError

from .lib import (
    ConversationData,
    Message,
    PropsContract,
    find_schema_key,
    load_conversation,
    names_equivalent,
    props_contract,
)


class TestNamesEquivalent:
    """Tests for the shared fuzzy name predicate."""

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["Foo", "FooProps", "foo", "FOO", "fooprops"])
    def test_equivalent_keys(self, key):
        """Exact, suffixed and case-folded keys all resolve to Foo."""
        assert names_equivalent(key, "Foo")

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["Bar", "FooBar", "Fo", "PropsFoo"])
    def test_unrelated_keys(self, key):
        """Keys naming other components do not match."""
        assert not names_equivalent(key, "Foo")

    @pytest.mark.unit
    def test_symmetric_resolution(self):
        """Each key form resolves a lone definition to the same component."""
        for key in ("Foo", "FooProps", "foo"):
            assert find_schema_key({key: {}}, "Foo") == key


class TestFindSchemaKey:
    """Tests for $defs lookup."""

    @pytest.mark.unit
    def test_first_match_wins(self):
        """Document order decides between equivalent keys."""
        defs = {"Other": {}, "widgetprops": {}, "Widget": {}}
        assert find_schema_key(defs, "Widget") == "widgetprops"

    @pytest.mark.unit
    def test_no_match(self):
        """Unknown components yield None."""
        assert find_schema_key({"Other": {}}, "Widget") is None
        assert find_schema_key({}, "Widget") is None


class TestPropsContract:
    """Tests for schema definition summaries."""

    @pytest.mark.unit
    def test_full_definition(self):
        """Declared, required and additionalProperties are read."""
        contract = props_contract(
            {
                "properties": {
                    "props": {
                        "properties": {"id": {}, "label": {}},
                        "required": ["id"],
                        "additionalProperties": False,
                    }
                }
            }
        )
        assert contract == PropsContract(
            declared=frozenset({"id", "label"}),
            required=frozenset({"id"}),
            additional_allowed=False,
        )
        assert contract.accepts("label")
        assert not contract.accepts("extra")

    @pytest.mark.unit
    def test_additional_properties_defaults_to_permissive(self):
        """Unspecified additionalProperties accepts unknown props."""
        contract = props_contract({"properties": {"props": {"properties": {}}}})
        assert contract.additional_allowed is True
        assert contract.accepts("anything")

    @pytest.mark.unit
    def test_additional_properties_schema_object_is_permissive(self):
        """Only a literal false closes the props object."""
        contract = props_contract(
            {"properties": {"props": {"additionalProperties": {"type": "string"}}}}
        )
        assert contract.additional_allowed is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "schema_def",
        [None, "Widget", {}, {"properties": []}, {"properties": {"props": 3}}],
    )
    def test_malformed_definitions(self, schema_def):
        """Malformed nodes read as empty and permissive."""
        contract = props_contract(schema_def)
        assert contract.declared == frozenset()
        assert contract.required == frozenset()
        assert contract.additional_allowed is True


class TestConversationData:
    """Tests for the document models."""

    @pytest.mark.unit
    def test_aliases(self):
        """JSON keys with $ and camelCase map onto fields."""
        data = load_conversation(
            {
                "componentsSchema": {"$defs": {"Widget": {}}, "$ref": "#/$defs/Widget"},
                "conversation": [
                    {"role": "assistant", "content": None, "toolCalls": [{"id": "c1"}]},
                    {"role": "tool", "content": "{}", "toolCallId": "c1"},
                ],
            }
        )
        assert data.schema_defs == {"Widget": {}}
        assert data.components_schema.ref == "#/$defs/Widget"
        assert data.messages[0].has_tool_calls
        assert data.messages[1].tool_call_id == "c1"
        assert data.messages[1].is_tool_result

    @pytest.mark.unit
    def test_snake_case_tool_fields(self):
        """Snake case tool keys are accepted as well."""
        message = Message.model_validate(
            {"role": "tool", "content": "x", "tool_call_id": "c9", "tool_calls": []}
        )
        assert message.tool_call_id == "c9"
        assert not message.has_tool_calls

    @pytest.mark.unit
    def test_missing_schema(self):
        """Absent componentsSchema reads as no $defs."""
        data = ConversationData.model_validate({"conversation": []})
        assert data.schema_defs is None
        assert data.messages == []

    @pytest.mark.unit
    def test_from_json_text(self):
        """JSON text is decoded before validation."""
        data = load_conversation(json.dumps({"componentsSchema": {"$defs": {}}}))
        assert data.schema_defs == {}

    @pytest.mark.unit
    def test_invalid_json_raises(self):
        """Non-JSON text raises a decode error."""
        with pytest.raises(json.JSONDecodeError):
            load_conversation("not json")

    @pytest.mark.unit
    def test_invalid_shape_raises(self):
        """A document that is not a JSON object is rejected."""
        with pytest.raises(ValidationError):
            load_conversation([{"role": "user"}])

    @pytest.mark.unit
    def test_non_list_conversation_reads_as_absent(self):
        """A conversation that is not a list keeps the schema usable."""
        data = load_conversation(
            {"componentsSchema": {"$defs": {"Widget": {}}}, "conversation": "hello"}
        )
        assert data.schema_defs == {"Widget": {}}
        assert data.conversation is None

    @pytest.mark.unit
    def test_non_object_messages_keep_positions(self):
        """Stray entries become empty messages so indices stay aligned."""
        data = load_conversation({"conversation": ["stray", {"role": "user"}]})
        assert [m.role for m in data.messages] == ["", "user"]

    @pytest.mark.unit
    @pytest.mark.parametrize("defs", [[], "Widget", 3])
    def test_malformed_defs_declare_nothing(self, defs):
        """A present but malformed $defs is an empty map, not an absent one."""
        data = load_conversation({"componentsSchema": {"$defs": defs}})
        assert data.schema_defs == {}

    @pytest.mark.unit
    def test_null_defs_is_absent(self):
        """An explicit null $defs reads as no schema."""
        data = load_conversation({"componentsSchema": {"$defs": None}})
        assert data.schema_defs is None


class TestMessage:
    """Tests for message helpers."""

    @pytest.mark.unit
    def test_components(self):
        """Only well-formed component items are yielded."""
        message = Message(
            role="assistant",
            content=[
                {"type": "text", "text": "Here you go"},
                {"type": "component", "component": {"name": "Card", "props": {"a": 1}}},
                {"type": "component", "component": {"name": "Bare"}},
                {"type": "component", "component": {"props": {}}},
                {"type": "component"},
                "stray string",
            ],
        )
        usages = list(message.components())
        assert [(u.name, u.props) for u in usages] == [("Card", {"a": 1}), ("Bare", {})]

    @pytest.mark.unit
    def test_string_content_has_no_components(self):
        """String content carries no component items."""
        assert list(Message(role="user", content="hi").components()) == []

    @pytest.mark.unit
    def test_decoded_content(self):
        """JSON strings decode; other strings stay as-is."""
        assert Message(role="tool", content='{"a": 1}').decoded_content() == {"a": 1}
        assert Message(role="tool", content="plain").decoded_content() == "plain"
        assert Message(role="tool", content=[1]).decoded_content() == [1]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [(7, "7"), ("c1", "c1"), (1.5, "1.5"), (True, None), ({"id": 1}, None)],
    )
    def test_tool_call_id_coercion(self, raw, expected):
        """Scalar ids are kept as strings; other shapes read as missing."""
        message = Message.model_validate({"role": "tool", "toolCallId": raw})
        assert message.tool_call_id == expected

    @pytest.mark.unit
    def test_non_string_role(self):
        """A null or numeric role reads as empty."""
        assert Message.model_validate({"role": None}).role == ""
        assert Message.model_validate({"role": 3}).role == ""

    @pytest.mark.unit
    @pytest.mark.parametrize("tool_calls", [{"id": "c1"}, "call", 1, [], None])
    def test_tool_calls_must_be_a_non_empty_list(self, tool_calls):
        """Only a non-empty list counts as requesting tool calls."""
        message = Message.model_validate({"role": "assistant", "toolCalls": tool_calls})
        assert not message.has_tool_calls

    @pytest.mark.unit
    def test_user_roles(self):
        """Both user and human roles are user prompts."""
        assert Message(role="user").is_user_prompt
        assert Message(role="human").is_user_prompt
        assert not Message(role="assistant").is_user_prompt
