"""Component schema validation.

Runs the checks that decide whether a data point's component definitions
are usable:

    1. No export interface        (raw components text)
    2. No ReactNode attributes    (parsed props)
    3. Interface matches schema   (parsed props vs ``$defs``)
    4. Props match schema         (runtime props vs ``$defs``)

followed by the transcript checks in ``src.validation.transcript``. Every
check is total: it never raises and always returns a ``ValidationResult``,
passing vacuously when there is nothing to check.
"""

import logging
import re

from src.interface import ParsedComponent, ParsedProp
from src.schema import (
    ConversationData,
    PropsContract,
    find_schema_key,
    props_contract,
)

from .models import (
    CHECK_INTERFACE_MATCHES_SCHEMA,
    CHECK_NO_EXPORT_INTERFACE,
    CHECK_NO_REACT_NODE,
    CHECK_PROPS_MATCH_SCHEMA,
    Mismatch,
    SafeReason,
    ValidationReport,
    ValidationResult,
)
from .transcript import (
    check_assistant_message_structure,
    check_component_props_source,
    check_grading_guidance,
    check_message_sequence,
    check_no_interactive_elements,
    check_props_before_user_prompt,
)

logger = logging.getLogger(__name__)

EXPORT_INTERFACE_PATTERN = re.compile(r"export\s+interface")
# Types denoting an arbitrary renderable subtree rather than serializable data
OPAQUE_UI_PATTERN = re.compile(
    r"ReactNode|React\.ReactNode|ReactElement|JSX\.Element", re.IGNORECASE
)
ARRAY_TYPE_PATTERN = re.compile(r"\[\]|Array<|array", re.IGNORECASE)
RECORD_TYPE_PATTERN = re.compile(
    r"Record<|object|Object|Dictionary|Map<", re.IGNORECASE
)


# =============================================================================
# Structural checks
# =============================================================================


def check_no_export_interface(components_text: str) -> ValidationResult:
    """Fail when interfaces are declared with ``export interface``."""
    count = len(EXPORT_INTERFACE_PATTERN.findall(components_text or ""))
    if count:
        return ValidationResult(
            check=CHECK_NO_EXPORT_INTERFACE,
            passed=False,
            message=(
                f'Found {count} "export interface" declaration(s). '
                'Should use "interface" instead.'
            ),
            details=[f"Occurrence {i}" for i in range(1, count + 1)],
        )
    return ValidationResult(
        check=CHECK_NO_EXPORT_INTERFACE,
        passed=True,
        message='No "export interface" found. All interfaces use "interface" only.',
    )


def check_no_react_node(components: list[ParsedComponent]) -> ValidationResult:
    """Fail when any prop is typed as an opaque UI node."""
    violations = [
        f"{component.name}.{prop.name}: {prop.type_text}"
        for component in components
        for prop in component.props
        if OPAQUE_UI_PATTERN.search(prop.type_text)
    ]
    if violations:
        return ValidationResult(
            check=CHECK_NO_REACT_NODE,
            passed=False,
            message=f"Found {len(violations)} ReactNode attribute(s).",
            details=violations,
        )
    return ValidationResult(
        check=CHECK_NO_REACT_NODE,
        passed=True,
        message="No ReactNode attributes found.",
    )


# =============================================================================
# Schema reconciliation
# =============================================================================


def safe_reasons(prop: ParsedProp, contract: PropsContract) -> tuple[SafeReason, ...]:
    """Every condition under which a missing prop may be ignored.

    Args:
        prop: Interface prop absent from the schema's declared props.
        contract: Summary of the matched schema definition.

    Returns:
        tuple[SafeReason, ...]: Applicable reasons in enum order; empty when
        the mismatch must be flagged.
    """
    checks = {
        SafeReason.OPTIONAL: prop.optional,
        SafeReason.ARRAY: ARRAY_TYPE_PATTERN.search(prop.type_text) is not None,
        SafeReason.RECORD: RECORD_TYPE_PATTERN.search(prop.type_text) is not None,
        SafeReason.NOT_REQUIRED: not contract.requires(prop.name),
    }
    return tuple(reason for reason, applies in checks.items() if applies)


def reconcile_component(
    component: ParsedComponent, defs: dict
) -> list[Mismatch]:
    """Diff one parsed component against its schema definition.

    A component without a matching ``$defs`` key yields a single unsafe
    component-level mismatch and no prop-level analysis.
    """
    key = find_schema_key(defs, component.name)
    if key is None:
        return [Mismatch(component=component.name)]

    contract = props_contract(defs[key])
    mismatches = []
    for name in component.prop_names:
        if contract.declares(name):
            continue
        prop = component.get_prop(name)
        mismatches.append(
            Mismatch(
                component=component.name,
                prop=name,
                type_text=prop.type_text,
                optional=prop.optional,
                reasons=safe_reasons(prop, contract),
            )
        )
    return mismatches


def check_schema_match(
    conversation: ConversationData | None, components: list[ParsedComponent]
) -> ValidationResult:
    """Check that interface props are declared by the matched schemas.

    Safe-to-filter mismatches never fail the check but are counted in the
    metadata and named in the success message.
    """
    defs = conversation.schema_defs if conversation is not None else None
    if defs is None:
        return ValidationResult(
            check=CHECK_INTERFACE_MATCHES_SCHEMA,
            passed=True,
            message="No component schema found to validate against.",
        )
    if not components:
        return ValidationResult(
            check=CHECK_INTERFACE_MATCHES_SCHEMA,
            passed=True,
            message="No components parsed to validate.",
        )

    mismatches = [m for component in components for m in reconcile_component(component, defs)]
    safe = [m for m in mismatches if m.safe]
    unsafe = [m for m in mismatches if not m.safe]
    for mismatch in safe:
        logger.debug(
            "Ignoring %s.%s (%s)",
            mismatch.component,
            mismatch.prop,
            ", ".join(r.value for r in mismatch.reasons),
        )

    metadata = {
        "total_safe_mismatches": len(safe),
        "total_unsafe_mismatches": len(unsafe),
    }
    if unsafe:
        return ValidationResult(
            check=CHECK_INTERFACE_MATCHES_SCHEMA,
            passed=False,
            message=f"Found {len(unsafe)} mismatch(es) between interface and schema.",
            details=[m.detail for m in unsafe],
            metadata=metadata,
        )

    if safe:
        message = (
            "All interface attributes match component schema "
            f"({len(safe)} safe-to-filter props not in schema were ignored)."
        )
    else:
        message = "All interface attributes match component schema."
    return ValidationResult(
        check=CHECK_INTERFACE_MATCHES_SCHEMA,
        passed=True,
        message=message,
        metadata=metadata,
    )


# =============================================================================
# Runtime prop usage
# =============================================================================


def check_props_match_schema(conversation: ConversationData | None) -> ValidationResult:
    """Check every runtime prop key against the matched schema."""
    defs = conversation.schema_defs if conversation is not None else None
    if defs is None or conversation.conversation is None:
        return ValidationResult(
            check=CHECK_PROPS_MATCH_SCHEMA,
            passed=True,
            message="No conversation or schema found to validate against.",
        )

    violations: list[str] = []
    for index, message in enumerate(conversation.messages, start=1):
        for usage in message.components():
            key = find_schema_key(defs, usage.name)
            if key is None:
                violations.append(f"Message {index}, Component {usage.name}: No schema found")
                continue
            contract = props_contract(defs[key])
            violations.extend(
                f"Message {index}, {usage.name}.{prop}: Not in schema params"
                for prop in usage.props
                if not contract.accepts(prop)
            )

    if violations:
        return ValidationResult(
            check=CHECK_PROPS_MATCH_SCHEMA,
            passed=False,
            message=(
                f"Found {len(violations)} prop(s) in conversation "
                "that don't match schema params."
            ),
            details=violations,
        )
    return ValidationResult(
        check=CHECK_PROPS_MATCH_SCHEMA,
        passed=True,
        message="All props in conversation match component schema params.",
    )


# =============================================================================
# Entry point
# =============================================================================


def validate_components(
    conversation: ConversationData | None,
    components: list[ParsedComponent],
    components_text: str,
) -> ValidationReport:
    """Run every check against one data point.

    Deterministic and free of I/O: the caller reads and parses the files.

    Args:
        conversation: Parsed ``conversation.json``, or None if unavailable.
        components: Output of ``parse_components`` on the components text.
        components_text: Raw components text.

    Returns:
        ValidationReport: Results in fixed check order.

    Example:
        >>> text = path.read_text()
        >>> report = validate_components(data, parse_components(text), text)
        >>> report.all_passed
        True
    """
    results = [
        check_no_export_interface(components_text),
        check_no_react_node(components),
        check_schema_match(conversation, components),
        check_props_match_schema(conversation),
        check_props_before_user_prompt(conversation),
        check_no_interactive_elements(components_text),
        check_message_sequence(conversation),
        check_assistant_message_structure(conversation),
        check_component_props_source(conversation),
        check_grading_guidance(conversation),
    ]
    report = ValidationReport.from_results(results)
    logger.debug(
        "Validated %d component(s): %d/%d checks passed",
        len(components),
        sum(r.passed for r in results),
        len(results),
    )
    return report


__all__ = [
    "check_no_export_interface",
    "check_no_react_node",
    "safe_reasons",
    "reconcile_component",
    "check_schema_match",
    "check_props_match_schema",
    "validate_components",
]
