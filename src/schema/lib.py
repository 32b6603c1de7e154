"""Conversation documents and component schema lookups.

A data point's ``conversation.json`` carries two things: a JSON-Schema-like
``componentsSchema`` whose ``$defs`` describe each component's props, and
the ``conversation`` transcript in which those components were emitted.
This module models that document and provides the schema queries shared by
every check that needs them:

- ``names_equivalent``: the single fuzzy name predicate
- ``find_schema_key``: first ``$defs`` key matching a component name
- ``props_contract``: declared/required/additional-properties summary
"""

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

PROPS_SUFFIX = "Props"
USER_ROLES = frozenset({"user", "human"})


# =============================================================================
# Document Models
# =============================================================================


class ComponentsSchema(BaseModel):
    """The ``componentsSchema`` node of a conversation document."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    defs: dict[str, Any] | None = Field(default=None, alias="$defs")
    ref: Any = Field(default=None, alias="$ref")

    @field_validator("defs", mode="before")
    @classmethod
    def _coerce_defs(cls, value: Any) -> dict[str, Any] | None:
        # A present but malformed map declares nothing.
        if value is None or isinstance(value, dict):
            return value
        return {}


class ComponentUsage(BaseModel):
    """A component instance emitted inside a message."""

    model_config = ConfigDict(extra="allow")

    name: str
    props: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """One transcript message.

    ``content`` is left untyped: user and assistant messages carry a string
    or a list of content items, tool messages carry whatever the tool
    returned (often a JSON string). Fields of an unexpected JSON type are
    coerced instead of rejected, so one odd message never discards the
    whole document.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    role: str = ""
    content: Any = None
    grading_guidance: Any = None
    tool_calls: Any = Field(
        default=None, validation_alias=AliasChoices("toolCalls", "tool_calls")
    )
    tool_call_id: str | None = Field(
        default=None, validation_alias=AliasChoices("tool_call_id", "toolCallId")
    )

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("tool_call_id", mode="before")
    @classmethod
    def _coerce_tool_call_id(cls, value: Any) -> str | None:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        return str(value)

    @property
    def is_user_prompt(self) -> bool:
        """True for user/human messages."""
        return self.role in USER_ROLES

    @property
    def is_tool_result(self) -> bool:
        """True for tool result messages."""
        return self.role == "tool"

    @property
    def has_tool_calls(self) -> bool:
        """True when the message requests at least one tool call."""
        return isinstance(self.tool_calls, list) and len(self.tool_calls) > 0

    def content_items(self) -> list[dict[str, Any]]:
        """Dict items of list-valued content; empty for any other content."""
        if not isinstance(self.content, list):
            return []
        return [item for item in self.content if isinstance(item, dict)]

    def components(self) -> Iterator[ComponentUsage]:
        """Yield the component instances carried by this message."""
        for item in self.content_items():
            if item.get("type") != "component":
                continue
            component = item.get("component")
            if not isinstance(component, dict) or "name" not in component:
                continue
            props = component.get("props")
            yield ComponentUsage(
                name=str(component["name"]),
                props=props if isinstance(props, dict) else {},
            )

    def decoded_content(self) -> Any:
        """Content with JSON strings decoded; other strings returned as-is."""
        if isinstance(self.content, str):
            try:
                return json.loads(self.content)
            except json.JSONDecodeError:
                return self.content
        return self.content


class ConversationData(BaseModel):
    """A parsed ``conversation.json`` document."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    components_schema: ComponentsSchema | None = Field(
        default=None, alias="componentsSchema"
    )
    conversation: list[Message] | None = None

    @field_validator("components_schema", mode="before")
    @classmethod
    def _coerce_components_schema(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, ComponentsSchema)) else None

    @field_validator("conversation", mode="before")
    @classmethod
    def _coerce_conversation(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        # Non-object entries become empty messages so indices stay aligned.
        return [item if isinstance(item, (dict, Message)) else {} for item in value]

    @property
    def schema_defs(self) -> dict[str, Any] | None:
        """The ``$defs`` map, or None when the document has none."""
        if self.components_schema is None:
            return None
        return self.components_schema.defs

    @property
    def messages(self) -> list[Message]:
        """Transcript messages (empty when absent)."""
        return self.conversation or []


# =============================================================================
# Name Matching
# =============================================================================


def _strip_suffix(value: str, suffix: str) -> str:
    if suffix and value.endswith(suffix):
        return value[: -len(suffix)]
    return value


def names_equivalent(schema_key: str, component_name: str) -> bool:
    """Check whether a ``$defs`` key refers to a component.

    Any one of these equivalences suffices:
        - exact equality
        - key minus a trailing ``Props`` equals the name
        - case-folded key equals the case-folded name, with or without a
          trailing ``props`` on the key

    Example:
        >>> names_equivalent("WidgetProps", "Widget")
        True
        >>> names_equivalent("widget", "Widget")
        True
    """
    if schema_key == component_name:
        return True
    if _strip_suffix(schema_key, PROPS_SUFFIX) == component_name:
        return True

    key = schema_key.casefold()
    name = component_name.casefold()
    suffix = PROPS_SUFFIX.casefold()
    return key == name or key == name + suffix or _strip_suffix(key, suffix) == name


def find_schema_key(defs: dict[str, Any], component_name: str) -> str | None:
    """Return the first ``$defs`` key equivalent to ``component_name``."""
    for key in defs:
        if names_equivalent(key, component_name):
            return key
    return None


# =============================================================================
# Props Contract
# =============================================================================


@dataclass(frozen=True)
class PropsContract:
    """What a schema definition says about a component's props.

    Attributes:
        declared: Prop names under ``properties.props.properties``.
        required: Prop names under ``properties.props.required``.
        additional_allowed: False only when ``additionalProperties`` is
            literally false; unspecified means permissive.
    """

    declared: frozenset[str]
    required: frozenset[str]
    additional_allowed: bool = True

    def declares(self, prop_name: str) -> bool:
        """True when the schema declares ``prop_name``."""
        return prop_name in self.declared

    def requires(self, prop_name: str) -> bool:
        """True when the schema lists ``prop_name`` as required."""
        return prop_name in self.required

    def accepts(self, prop_name: str) -> bool:
        """True when a runtime prop named ``prop_name`` is allowed."""
        return self.declares(prop_name) or self.additional_allowed


def _props_node(schema_def: Any) -> dict[str, Any]:
    if not isinstance(schema_def, dict):
        return {}
    properties = schema_def.get("properties")
    if not isinstance(properties, dict):
        return {}
    props = properties.get("props")
    return props if isinstance(props, dict) else {}


def props_contract(schema_def: Any) -> PropsContract:
    """Summarise a schema definition node.

    Tolerates malformed nodes: anything missing reads as empty/permissive.
    """
    node = _props_node(schema_def)

    declared = node.get("properties")
    required = node.get("required")

    return PropsContract(
        declared=frozenset(declared) if isinstance(declared, dict) else frozenset(),
        required=(
            frozenset(r for r in required if isinstance(r, str))
            if isinstance(required, list)
            else frozenset()
        ),
        additional_allowed=node.get("additionalProperties") is not False,
    )


def load_conversation(raw: str | bytes | dict[str, Any]) -> ConversationData:
    """Build ConversationData from JSON text or an already-decoded dict.

    Raises:
        json.JSONDecodeError: If ``raw`` is text that is not JSON.
        pydantic.ValidationError: If the document shape is unusable.
    """
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return ConversationData.model_validate(raw)


__all__ = [
    "ComponentsSchema",
    "ComponentUsage",
    "Message",
    "ConversationData",
    "PropsContract",
    "names_equivalent",
    "find_schema_key",
    "props_contract",
    "load_conversation",
]
