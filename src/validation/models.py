"""Validation result models.

``ValidationResult`` and ``ValidationReport`` are pydantic models so that
reports serialize straight to JSON for the batch tooling. ``Mismatch`` is a
plain value object produced while reconciling interfaces against schemas.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

# Check names, in report order
CHECK_NO_EXPORT_INTERFACE = "No export interface"
CHECK_NO_REACT_NODE = "No ReactNode attributes"
CHECK_INTERFACE_MATCHES_SCHEMA = "Interface matches schema"
CHECK_PROPS_MATCH_SCHEMA = "Props match schema"
CHECK_PROPS_BEFORE_USER_PROMPT = "Props not before User Prompt"
CHECK_NO_INTERACTIVE_ELEMENTS = "No interactive elements"
CHECK_MESSAGE_SEQUENCE = "Message sequence"
CHECK_ASSISTANT_MESSAGE_STRUCTURE = "Assistant message structure"
CHECK_COMPONENT_PROPS_SOURCE = "Component props source"
CHECK_GRADING_GUIDANCE = "Grading guidance structure"

ALL_CHECKS = (
    CHECK_NO_EXPORT_INTERFACE,
    CHECK_NO_REACT_NODE,
    CHECK_INTERFACE_MATCHES_SCHEMA,
    CHECK_PROPS_MATCH_SCHEMA,
    CHECK_PROPS_BEFORE_USER_PROMPT,
    CHECK_NO_INTERACTIVE_ELEMENTS,
    CHECK_MESSAGE_SEQUENCE,
    CHECK_ASSISTANT_MESSAGE_STRUCTURE,
    CHECK_COMPONENT_PROPS_SOURCE,
    CHECK_GRADING_GUIDANCE,
)


class ValidationResult(BaseModel):
    """Outcome of a single check.

    Attributes:
        check: Check name.
        passed: Whether the check passed.
        message: One-line summary.
        details: Per-finding lines; present on every failure that has
            prop- or message-level findings.
        metadata: Counters attached by checks that track them.
    """

    check: str
    passed: bool
    message: str
    details: list[str] | None = None
    metadata: dict[str, int] | None = None


class ValidationReport(BaseModel):
    """Ordered check results for one data point."""

    all_passed: bool
    results: list[ValidationResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[ValidationResult]) -> "ValidationReport":
        """Build a report, deriving ``all_passed`` from the results."""
        return cls(all_passed=all(r.passed for r in results), results=results)

    def get(self, check: str) -> ValidationResult | None:
        """Return the result for ``check`` if it ran."""
        for result in self.results:
            if result.check == check:
                return result
        return None

    @property
    def failed_checks(self) -> list[str]:
        """Names of the checks that failed, in report order."""
        return [r.check for r in self.results if not r.passed]


class SafeReason(str, Enum):
    """Why an interface prop missing from the schema may be ignored."""

    OPTIONAL = "optional"
    ARRAY = "array"
    RECORD = "record"
    NOT_REQUIRED = "not_required"


@dataclass(frozen=True)
class Mismatch:
    """An interface prop (or whole component) without a schema counterpart.

    Attributes:
        component: Component name.
        prop: Prop name, or None when the component has no schema at all.
        type_text: Raw interface type of the prop.
        optional: Whether the prop is optional in the interface.
        reasons: Every safe-to-filter condition that applies.
    """

    component: str
    prop: str | None = None
    type_text: str | None = None
    optional: bool = False
    reasons: tuple[SafeReason, ...] = ()

    @property
    def safe(self) -> bool:
        """True when at least one safe-to-filter condition applies."""
        return bool(self.reasons)

    @property
    def detail(self) -> str:
        """Report line for this mismatch."""
        if self.prop is None:
            return f"{self.component}: No matching schema found"
        return f"{self.component}.{self.prop}: In interface but not in schema"


__all__ = [
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
    "ALL_CHECKS",
    "ValidationResult",
    "ValidationReport",
    "SafeReason",
    "Mismatch",
]
