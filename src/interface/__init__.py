"""Interface parsing for component definition files."""

from src.interface.lib import (
    ParsedComponent,
    ParsedProp,
    ParseMode,
    component_name,
    parse_components,
)

__all__ = [
    "ParseMode",
    "ParsedProp",
    "ParsedComponent",
    "component_name",
    "parse_components",
]
