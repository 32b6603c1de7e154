"""Unit tests for the interface parser."""

import pytest

from src.interface import (
    ParsedComponent,
    ParsedProp,
    ParseMode,
    component_name,
    parse_components,
)

COMMENTED_CARD = """
interface CardProps {
  // Heading shown at the top of the card
  title: string;

  // Optional secondary line
  subtitle?: string;
}
"""

NESTED_OBJECT = """
interface MetaProps {
  meta: { id: string; tags: string[] };
  count: number;
}
"""

BRACE_IN_COMMENT = """
interface ChartProps {
  // Example: [{ x: 1, y: 2 }]
  points: Point[];
  // Chart title
  title: string;
}
"""


class TestParseComponents:
    """Tests for parse_components in the default balanced mode."""

    @pytest.mark.unit
    def test_simple_interface(self):
        """Comment-free fields are picked up by the fallback pass."""
        components = parse_components(
            "interface WidgetProps { id: string; label?: string; }"
        )
        assert len(components) == 1
        widget = components[0]
        assert widget.name == "Widget"
        assert widget.props == (
            ParsedProp(name="id", type_text="string", optional=False),
            ParsedProp(name="label", type_text="string", optional=True),
        )

    @pytest.mark.unit
    def test_multiple_blocks(self):
        """One component per block, named without the Props suffix."""
        text = """
interface AlphaProps { a: string; }
interface BetaProps { b: number; }
interface GammaProps { c: boolean; }
"""
        names = [c.name for c in parse_components(text)]
        assert names == ["Alpha", "Beta", "Gamma"]

    @pytest.mark.unit
    def test_commented_fields_capture_description(self):
        """A comment line right above a field becomes its description."""
        card = parse_components(COMMENTED_CARD)[0]
        assert [p.name for p in card.props] == ["title", "subtitle"]
        assert card.props[0].description == "Heading shown at the top of the card"
        assert card.props[1].description == "Optional secondary line"
        assert card.props[1].optional is True

    @pytest.mark.unit
    def test_multi_line_comment_keeps_last_line(self):
        """Only the comment line adjacent to the field is kept."""
        text = """
interface ListProps {
  // Items to render.
  // Example: ["a", "b"]
  items: string[];
}
"""
        prop = parse_components(text)[0].props[0]
        assert prop.description == 'Example: ["a", "b"]'

    @pytest.mark.unit
    def test_uncommented_fields_dropped_when_others_commented(self):
        """The fallback pass only runs when no commented field exists."""
        text = """
interface MixedProps {
  // Documented
  documented: string;
  bare: number;
}
"""
        assert parse_components(text)[0].prop_names == ["documented"]

    @pytest.mark.unit
    def test_fallback_skips_reserved_names(self):
        """Fields named type or interface are ignored by the fallback pass."""
        text = "interface OddProps { type: string; interface: string; kind: string; }"
        assert parse_components(text)[0].prop_names == ["kind"]

    @pytest.mark.unit
    def test_declaration_order_preserved(self):
        """Props keep source order."""
        text = "interface OrderProps { z: string; a: string; m?: number; }"
        assert parse_components(text)[0].prop_names == ["z", "a", "m"]

    @pytest.mark.unit
    def test_raw_definition(self):
        """Raw definition spans the whole block."""
        card = parse_components(COMMENTED_CARD)[0]
        assert card.raw_definition.startswith("interface CardProps {")
        assert card.raw_definition.endswith("}")

    @pytest.mark.unit
    def test_multi_line_union_type(self):
        """Type text may span lines until the terminating semicolon."""
        text = """
interface BadgeProps {
  tone:
    | "info"
    | "warning";
}
"""
        prop = parse_components(text)[0].props[0]
        assert prop.name == "tone"
        assert prop.type_text.startswith("|")
        assert '"warning"' in prop.type_text

    @pytest.mark.unit
    def test_ignores_interfaces_without_props_suffix(self):
        """Helper interfaces are not components."""
        text = "interface Point { x: number; }\ninterface MapProps { points: Point[]; }"
        assert [c.name for c in parse_components(text)] == ["Map"]

    @pytest.mark.unit
    def test_strips_only_trailing_suffix(self):
        """Props appearing earlier in the name survive."""
        text = "interface PropsTableProps { rows: string[]; }"
        assert parse_components(text)[0].name == "PropsTable"

    @pytest.mark.unit
    def test_export_interface_still_parsed(self):
        """The export modifier does not hide the block from the parser."""
        components = parse_components("export interface FooProps { a: string; }")
        assert [c.name for c in components] == ["Foo"]

    @pytest.mark.unit
    def test_empty_and_garbage_input(self):
        """Text without blocks yields nothing and never raises."""
        assert parse_components("") == []
        assert parse_components("const x = 1;\nfunction f() {}") == []

    @pytest.mark.unit
    def test_unterminated_block(self):
        """A block without its closing brace is skipped."""
        assert parse_components("interface BrokenProps { a: string;") == []

    @pytest.mark.unit
    def test_idempotent(self):
        """Parsing twice yields equal output."""
        assert parse_components(COMMENTED_CARD) == parse_components(COMMENTED_CARD)


class TestBalancedScanning:
    """Nested braces no longer truncate an interface in balanced mode."""

    @pytest.mark.unit
    def test_nested_object_type(self):
        """Inline object types stay inside one prop."""
        meta = parse_components(NESTED_OBJECT)[0]
        assert meta.prop_names == ["meta", "count"]
        assert meta.get_prop("meta").type_text == "{ id: string; tags: string[] }"

    @pytest.mark.unit
    def test_brace_inside_comment(self):
        """Braces in comments do not close the block."""
        chart = parse_components(BRACE_IN_COMMENT)[0]
        assert chart.prop_names == ["points", "title"]
        assert chart.get_prop("points").description == "Example: [{ x: 1, y: 2 }]"

    @pytest.mark.unit
    def test_brace_inside_string_literal(self):
        """Braces in string literal types do not close the block."""
        text = 'interface GlyphProps { open: "{"; close: "}"; size: number; }'
        glyph = parse_components(text)[0]
        assert glyph.prop_names == ["open", "close", "size"]
        assert glyph.get_prop("close").type_text == '"}"'

    @pytest.mark.unit
    def test_empty_body(self):
        """An empty block is a component without props."""
        components = parse_components("interface FooProps {}")
        assert components == [
            ParsedComponent(name="Foo", props=(), raw_definition="interface FooProps {}")
        ]

    @pytest.mark.unit
    def test_method_signature_skipped(self):
        """Members that are not name-colon-type fields are ignored."""
        text = "interface ClickProps { onSelect(id: string): void; label: string; }"
        assert parse_components(text)[0].prop_names == ["label"]


class TestLegacyMode:
    """The flat matcher keeps the first-brace truncation."""

    @pytest.mark.unit
    def test_simple_interface_matches_balanced(self):
        """Flat and balanced modes agree when nothing is nested."""
        text = "interface WidgetProps { id: string; label?: string; }"
        legacy = parse_components(text, ParseMode.LEGACY)
        assert [c.props for c in legacy] == [
            c.props for c in parse_components(text, ParseMode.BALANCED)
        ]

    @pytest.mark.unit
    def test_commented_fields(self):
        """Descriptions are captured the same way."""
        card = parse_components(COMMENTED_CARD, ParseMode.LEGACY)[0]
        assert card.prop_names == ["title", "subtitle"]
        assert card.props[0].description == "Heading shown at the top of the card"

    @pytest.mark.unit
    def test_nested_object_truncates(self):
        """The first closing brace ends the block."""
        meta = parse_components(NESTED_OBJECT, ParseMode.LEGACY)[0]
        assert meta.prop_names == ["meta"]
        assert meta.props[0].type_text == "{ id: string"

    @pytest.mark.unit
    def test_brace_in_comment_truncates(self):
        """A brace inside a comment cuts the block short."""
        chart = parse_components(BRACE_IN_COMMENT, ParseMode.LEGACY)[0]
        assert chart.props == ()

    @pytest.mark.unit
    def test_empty_body_not_matched(self):
        """The flat matcher needs a non-empty body."""
        assert parse_components("interface FooProps {}", ParseMode.LEGACY) == []


class TestComponentName:
    """Tests for suffix stripping."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("interface_name", "expected"),
        [
            ("WidgetProps", "Widget"),
            ("PropsTableProps", "PropsTable"),
            ("Widget", "Widget"),
        ],
    )
    def test_component_name(self, interface_name, expected):
        """Only a trailing Props is removed."""
        assert component_name(interface_name) == expected
