"""Schema module - conversation documents and component schema lookups.

Example usage:
    >>> from src.schema import find_schema_key, load_conversation, props_contract
    >>> data = load_conversation(path.read_text())
    >>> key = find_schema_key(data.schema_defs, "Widget")
    >>> contract = props_contract(data.schema_defs[key])
"""

from .lib import (
    ComponentsSchema,
    ComponentUsage,
    ConversationData,
    Message,
    PropsContract,
    find_schema_key,
    load_conversation,
    names_equivalent,
    props_contract,
)

__all__ = [
    # Document models
    "ComponentsSchema",
    "ComponentUsage",
    "Message",
    "ConversationData",
    "load_conversation",
    # Schema lookups
    "PropsContract",
    "names_equivalent",
    "find_schema_key",
    "props_contract",
]
