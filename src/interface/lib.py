"""Interface parser for component definition files.

Turns the ad-hoc TypeScript found in a data point's ``components.ts`` into
``ParsedComponent`` records. This is a scanner over a small syntactic
subset (``interface <Name>Props { ... }`` blocks and their fields), not a
TypeScript parser: prop types are kept as raw text.

Two block-matching modes exist:

- ``ParseMode.BALANCED`` closes a block at the brace matching its opening
  brace, ignoring braces inside comments and string literals, and splits
  members on ``;`` at nesting depth zero. Inline object types such as
  ``meta: { id: string; tags: string[] };`` parse as a single prop.
- ``ParseMode.LEGACY`` reproduces the flat matching the dataset was
  first checked with: a block body runs to the first ``}``, so a nested object
  type truncates the interface.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

PROPS_SUFFIX = "Props"

# Names the comment-free pass never treats as fields
RESERVED_NAMES = frozenset({"type", "interface"})

INTERFACE_HEADER_PATTERN = re.compile(r"\binterface\s+(\w+Props)\s*\{")
LEGACY_INTERFACE_PATTERN = re.compile(r"interface\s+(\w+Props)\s*\{([^}]+)\}")
LEGACY_COMMENTED_PROP_PATTERN = re.compile(r"//\s*(.+?)\n\s*(\w+)(\??):\s*([^;]+);")
LEGACY_SIMPLE_PROP_PATTERN = re.compile(r"(\w+)(\??):\s*([^;]+);")
MEMBER_PATTERN = re.compile(r"^(?:readonly\s+)?(\w+)(\?)?:\s*(.+)$", re.DOTALL)

_OPENERS = "{[("
_CLOSERS = "}])"
_QUOTES = "\"'`"


class ParseMode(str, Enum):
    """Block matching strategy for ``parse_components``."""

    BALANCED = "balanced"
    LEGACY = "legacy"


@dataclass(frozen=True)
class ParsedProp:
    """A single field declared on a props interface.

    Attributes:
        name: Field identifier.
        type_text: Raw type annotation, whitespace-trimmed.
        optional: True iff the name is directly followed by ``?``.
        description: Text of the ``//`` comment line right above the field.
    """

    name: str
    type_text: str
    optional: bool = False
    description: str | None = None


@dataclass(frozen=True)
class ParsedComponent:
    """A component recovered from one ``interface <Name>Props`` block.

    Attributes:
        name: Interface name without the trailing ``Props``.
        props: Fields in declaration order.
        raw_definition: Source text from ``interface`` to the closing brace.
    """

    name: str
    props: tuple[ParsedProp, ...] = ()
    raw_definition: str = ""

    @property
    def prop_names(self) -> list[str]:
        """Distinct prop names in declaration order."""
        return list(dict.fromkeys(p.name for p in self.props))

    def get_prop(self, name: str) -> ParsedProp | None:
        """Return the first prop declared with ``name``."""
        for prop in self.props:
            if prop.name == name:
                return prop
        return None


@dataclass(frozen=True)
class _Member:
    comment: str | None
    text: str


def component_name(interface_name: str) -> str:
    """Strip the trailing ``Props`` suffix from an interface name."""
    if interface_name.endswith(PROPS_SUFFIX):
        return interface_name[: -len(PROPS_SUFFIX)]
    return interface_name


def parse_components(
    text: str, mode: ParseMode = ParseMode.BALANCED
) -> list[ParsedComponent]:
    """Parse every ``interface <Name>Props { ... }`` block in ``text``.

    Never raises: text without recognisable blocks yields an empty list and
    blocks without recognisable fields yield components with no props.

    Args:
        text: Raw contents of a components file.
        mode: Block matching strategy.

    Returns:
        One ParsedComponent per matched block, in source order.

    Example:
        >>> [c.name for c in parse_components("interface CardProps { id: string; }")]
        ['Card']
    """
    if not text:
        return []

    if mode is ParseMode.LEGACY:
        components = _parse_legacy(text)
    else:
        components = _parse_balanced(text)

    logger.debug("Parsed %d component(s) in %s mode", len(components), mode.value)
    return components


# =============================================================================
# Balanced scanner
# =============================================================================


def _parse_balanced(text: str) -> list[ParsedComponent]:
    components: list[ParsedComponent] = []
    position = 0

    while True:
        match = INTERFACE_HEADER_PATTERN.search(text, position)
        if match is None:
            break

        open_index = match.end() - 1
        close_index = _find_block_end(text, open_index)
        if close_index is None:
            logger.debug("Unterminated interface block: %s", match.group(1))
            break

        body = text[open_index + 1 : close_index]
        components.append(
            ParsedComponent(
                name=component_name(match.group(1)),
                props=tuple(_extract_props(_split_members(body))),
                raw_definition=text[match.start() : close_index + 1],
            )
        )
        position = close_index + 1

    return components


def _skip_string(text: str, start: int) -> int:
    """Return the index just past the string literal opening at ``start``."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        if text[i] == "\n" and quote != "`":
            # Unterminated single-line literal
            return i
        i += 1
    return len(text)


def _skip_comment(text: str, start: int) -> int:
    """Return the index just past the comment starting at ``start``."""
    if text.startswith("//", start):
        end = text.find("\n", start)
        return len(text) if end == -1 else end
    end = text.find("*/", start + 2)
    return len(text) if end == -1 else end + 2


def _find_block_end(text: str, open_index: int) -> int | None:
    """Find the brace closing the block opened at ``open_index``."""
    depth = 0
    i = open_index
    while i < len(text):
        if text.startswith("//", i) or text.startswith("/*", i):
            i = _skip_comment(text, i)
            continue
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _split_members(body: str) -> list[_Member]:
    """Split an interface body into ``;``-terminated members at depth zero.

    Each member remembers the last ``//`` comment line seen at depth zero
    before its first code character. Text after the final ``;`` is dropped.
    """
    members: list[_Member] = []
    code: list[str] = []
    comment: str | None = None
    depth = 0
    i = 0

    while i < len(body):
        if body.startswith("//", i):
            end = _skip_comment(body, i)
            if depth == 0 and not "".join(code).strip():
                comment = body[i + 2 : end].strip()
            i = end
            continue
        if body.startswith("/*", i):
            i = _skip_comment(body, i)
            continue

        ch = body[i]
        if ch in _QUOTES:
            end = _skip_string(body, i)
            code.append(body[i:end])
            i = end
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == ";" and depth == 0:
            members.append(_Member(comment=comment, text="".join(code).strip()))
            code = []
            comment = None
            i += 1
            continue

        code.append(ch)
        i += 1

    return members


def _member_to_prop(member: _Member) -> ParsedProp | None:
    match = MEMBER_PATTERN.match(member.text)
    if match is None:
        return None
    return ParsedProp(
        name=match.group(1),
        type_text=match.group(3).strip(),
        optional=match.group(2) == "?",
        description=member.comment or None,
    )


def _extract_props(members: list[_Member]) -> list[ParsedProp]:
    """Apply the commented-field pass, then the comment-free fallback."""
    commented = []
    for member in members:
        if member.comment is None:
            continue
        prop = _member_to_prop(member)
        if prop is not None:
            commented.append(prop)
    if commented:
        return commented

    props = []
    for member in members:
        prop = _member_to_prop(member)
        if prop is None or prop.name in RESERVED_NAMES:
            continue
        props.append(ParsedProp(prop.name, prop.type_text, prop.optional))
    return props


# =============================================================================
# Legacy flat matcher
# =============================================================================


def _parse_legacy(text: str) -> list[ParsedComponent]:
    components: list[ParsedComponent] = []

    for match in LEGACY_INTERFACE_PATTERN.finditer(text):
        body = match.group(2)
        props = [
            ParsedProp(
                name=m.group(2),
                type_text=m.group(4).strip(),
                optional=m.group(3) == "?",
                description=m.group(1).strip(),
            )
            for m in LEGACY_COMMENTED_PROP_PATTERN.finditer(body)
        ]

        if not props:
            props = [
                ParsedProp(
                    name=m.group(1),
                    type_text=m.group(3).strip(),
                    optional=m.group(2) == "?",
                )
                for m in LEGACY_SIMPLE_PROP_PATTERN.finditer(body)
                if m.group(1) not in RESERVED_NAMES
            ]

        components.append(
            ParsedComponent(
                name=component_name(match.group(1)),
                props=tuple(props),
                raw_definition=match.group(0),
            )
        )

    return components


__all__ = [
    "ParseMode",
    "ParsedProp",
    "ParsedComponent",
    "component_name",
    "parse_components",
]
