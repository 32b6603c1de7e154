"""Component schema validation checks and reports."""

from src.validation.lib import (
    check_no_export_interface,
    check_no_react_node,
    check_props_match_schema,
    check_schema_match,
    reconcile_component,
    safe_reasons,
    validate_components,
)
from src.validation.models import (
    ALL_CHECKS,
    CHECK_ASSISTANT_MESSAGE_STRUCTURE,
    CHECK_COMPONENT_PROPS_SOURCE,
    CHECK_GRADING_GUIDANCE,
    CHECK_INTERFACE_MATCHES_SCHEMA,
    CHECK_MESSAGE_SEQUENCE,
    CHECK_NO_EXPORT_INTERFACE,
    CHECK_NO_INTERACTIVE_ELEMENTS,
    CHECK_NO_REACT_NODE,
    CHECK_PROPS_BEFORE_USER_PROMPT,
    CHECK_PROPS_MATCH_SCHEMA,
    Mismatch,
    SafeReason,
    ValidationReport,
    ValidationResult,
)
from src.validation.transcript import (
    check_assistant_message_structure,
    check_component_props_source,
    check_grading_guidance,
    check_message_sequence,
    check_no_interactive_elements,
    check_props_before_user_prompt,
    props_source_result,
)

__all__ = [
    # Models
    "ValidationResult",
    "ValidationReport",
    "SafeReason",
    "Mismatch",
    # Check names
    "ALL_CHECKS",
    "CHECK_NO_EXPORT_INTERFACE",
    "CHECK_NO_REACT_NODE",
    "CHECK_INTERFACE_MATCHES_SCHEMA",
    "CHECK_PROPS_MATCH_SCHEMA",
    "CHECK_PROPS_BEFORE_USER_PROMPT",
    "CHECK_NO_INTERACTIVE_ELEMENTS",
    "CHECK_MESSAGE_SEQUENCE",
    "CHECK_ASSISTANT_MESSAGE_STRUCTURE",
    "CHECK_COMPONENT_PROPS_SOURCE",
    "CHECK_GRADING_GUIDANCE",
    # Component checks
    "check_no_export_interface",
    "check_no_react_node",
    "safe_reasons",
    "reconcile_component",
    "check_schema_match",
    "check_props_match_schema",
    # Transcript checks
    "check_props_before_user_prompt",
    "check_no_interactive_elements",
    "check_message_sequence",
    "check_assistant_message_structure",
    "check_component_props_source",
    "props_source_result",
    "check_grading_guidance",
    # Entry point
    "validate_components",
]
