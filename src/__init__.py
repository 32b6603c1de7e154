"""genui-validator: component schema validation for generative-UI data points."""

from src.interface import ParseMode, parse_components
from src.schema import ConversationData, load_conversation
from src.validation import ValidationReport, ValidationResult, validate_components

__all__ = [
    # Parsing
    "ParseMode",
    "parse_components",
    "load_conversation",
    "ConversationData",
    # Validation
    "validate_components",
    "ValidationReport",
    "ValidationResult",
]
