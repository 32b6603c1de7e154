"""Tests for data point loading and batch reports."""

import json

import pytest

from src.validation import (
    ALL_CHECKS,
    CHECK_INTERFACE_MATCHES_SCHEMA,
    CHECK_MESSAGE_SEQUENCE,
    CHECK_NO_REACT_NODE,
    ValidationReport,
    ValidationResult,
)

from .lib import (
    BatchReport,
    build_batch_report,
    categorize,
    discover_data_points,
    load_data_point,
    render_markdown,
    validate_data_point,
)


def _report(failing=(), safe_mismatches=0, unsafe_mismatches=0):
    results = []
    for check in ALL_CHECKS:
        result = ValidationResult(check=check, passed=check not in failing, message="")
        if check == CHECK_INTERFACE_MATCHES_SCHEMA:
            result.metadata = {
                "total_safe_mismatches": safe_mismatches,
                "total_unsafe_mismatches": unsafe_mismatches,
            }
        results.append(result)
    return ValidationReport.from_results(results)


def _write_point(root, name, components_text, conversation):
    folder = root / name
    folder.mkdir()
    if components_text is not None:
        (folder / "components.ts").write_text(components_text, encoding="utf-8")
    if conversation is not None:
        (folder / "conversation.json").write_text(json.dumps(conversation), encoding="utf-8")
    return folder


class TestLoadDataPoint:
    """Tests for load_data_point and validate_data_point."""

    @pytest.mark.integration
    def test_load(self, data_point_folder):
        """Both files are picked up."""
        point = load_data_point(data_point_folder)
        assert point.folder_name == "show_widget_20250101_120000"
        assert point.conversation is not None
        assert point.conversation.schema_defs is not None
        assert point.components_path == data_point_folder / "components.ts"

    @pytest.mark.integration
    def test_invalid_conversation_json(self, data_point_folder):
        """Unreadable conversation files count as absent."""
        (data_point_folder / "conversation.json").write_text("{not json", encoding="utf-8")
        assert load_data_point(data_point_folder).conversation is None

    @pytest.mark.integration
    @pytest.mark.parametrize(
        "field, value",
        [("toolCallId", 7), ("role", None), ("toolCalls", {"id": "call_1"})],
    )
    def test_odd_message_fields_keep_the_document(
        self, tmp_path, widget_components_text, widget_conversation, field, value
    ):
        """One oddly typed message field does not empty the conversation checks."""
        widget_conversation["conversation"][2][field] = value
        folder = _write_point(tmp_path, "odd_field", widget_components_text, widget_conversation)

        point = load_data_point(folder)
        assert point.conversation is not None
        assert point.conversation.schema_defs is not None

        report = validate_data_point(point)
        messages = [r.message for r in report.results]
        assert "No component schema found to validate against." not in messages
        assert "No conversation or schema found to validate against." not in messages

    @pytest.mark.integration
    def test_validate(self, data_point_folder):
        """The sample data point passes every check."""
        report = validate_data_point(load_data_point(data_point_folder))
        assert report.all_passed
        assert [r.check for r in report.results] == list(ALL_CHECKS)

    @pytest.mark.integration
    def test_validate_without_components(self, tmp_path, widget_conversation):
        """A folder without components.ts cannot be validated."""
        folder = _write_point(tmp_path, "only_conversation", None, widget_conversation)
        with pytest.raises(FileNotFoundError):
            validate_data_point(load_data_point(folder))


class TestDiscoverDataPoints:
    """Tests for discover_data_points."""

    @pytest.mark.integration
    def test_discovery(self, tmp_path, widget_components_text, widget_conversation):
        """Only visible folders with a data file are returned, sorted."""
        _write_point(tmp_path, "b_point", widget_components_text, None)
        _write_point(tmp_path, "a_point", None, widget_conversation)
        _write_point(tmp_path, ".hidden", widget_components_text, widget_conversation)
        (tmp_path / "empty").mkdir()
        (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

        assert [p.name for p in discover_data_points(tmp_path)] == ["a_point", "b_point"]


class TestCategorize:
    """Tests for tier assignment."""

    @pytest.mark.unit
    def test_tier1(self):
        """All checks passing is tier 1."""
        assignment = categorize(_report())
        assert assignment.tier == 1
        assert assignment.reason == "All checks passed"

    @pytest.mark.unit
    def test_tier1_notes_safe_mismatches(self):
        """Ignored safe mismatches are mentioned."""
        assignment = categorize(_report(safe_mismatches=2))
        assert assignment.tier == 1
        assert "2 safe-to-filter props" in assignment.reason

    @pytest.mark.unit
    def test_tier2(self):
        """A schema failure made only of safe mismatches is tier 2."""
        assignment = categorize(
            _report(failing=(CHECK_INTERFACE_MATCHES_SCHEMA,), safe_mismatches=2)
        )
        assert assignment.tier == 2
        assert assignment.reason == "Only schema match issues (2 safe-to-filter mismatches)"

    @pytest.mark.unit
    def test_tier2_alongside_other_non_critical_failures(self):
        """Other non-critical failures do not demote a safe schema failure."""
        assignment = categorize(
            _report(
                failing=(CHECK_INTERFACE_MATCHES_SCHEMA, CHECK_MESSAGE_SEQUENCE),
                safe_mismatches=1,
            )
        )
        assert assignment.tier == 2

    @pytest.mark.unit
    def test_unsafe_schema_mismatch_is_tier3(self):
        """Any unsafe schema mismatch is tier 3 even with critical checks passing."""
        assignment = categorize(
            _report(
                failing=(CHECK_INTERFACE_MATCHES_SCHEMA,),
                safe_mismatches=3,
                unsafe_mismatches=1,
            )
        )
        assert assignment.tier == 3
        assert assignment.reason == "Non-critical checks failed: Interface matches schema"

    @pytest.mark.unit
    def test_schema_failure_without_counts_is_tier3(self):
        """A schema failure with no recorded safe mismatches is tier 3."""
        assignment = categorize(_report(failing=(CHECK_INTERFACE_MATCHES_SCHEMA,)))
        assert assignment.tier == 3

    @pytest.mark.unit
    def test_other_non_critical_failure_is_tier3(self):
        """A non-schema, non-critical failure is tier 3."""
        assignment = categorize(_report(failing=(CHECK_MESSAGE_SEQUENCE,)))
        assert assignment.tier == 3
        assert CHECK_MESSAGE_SEQUENCE in assignment.reason

    @pytest.mark.unit
    def test_tier3(self):
        """A critical failure is tier 3."""
        assignment = categorize(_report(failing=(CHECK_NO_REACT_NODE,)))
        assert assignment.tier == 3
        assert assignment.reason == "Critical validation failures"

    @pytest.mark.integration
    def test_required_prop_missing_from_schema(
        self, tmp_path, widget_components_text, widget_conversation
    ):
        """An interface prop the schema requires but never declares is tier 3."""
        widget_conversation["componentsSchema"]["$defs"]["Widget"]["properties"]["props"][
            "required"
        ] = ["id", "count"]
        text = widget_components_text.replace(
            "  id: string;\n", "  id: string;\n\n  // Number of items shown\n  count: number;\n"
        )
        folder = _write_point(tmp_path, "required_count", text, widget_conversation)

        report = validate_data_point(load_data_point(folder))
        assert report.failed_checks == [CHECK_INTERFACE_MATCHES_SCHEMA]
        assert categorize(report).tier == 3


class TestBatchReport:
    """Tests for build_batch_report and render_markdown."""

    @pytest.fixture
    def batch(self, tmp_path, widget_components_text, widget_conversation):
        _write_point(tmp_path, "clean", widget_components_text, widget_conversation)
        _write_point(
            tmp_path,
            "clickable",
            widget_components_text + "\nconst cta = '<button>Go</button>';\n",
            widget_conversation,
        )
        _write_point(
            tmp_path,
            "exported",
            "export " + widget_components_text,
            widget_conversation,
        )
        _write_point(tmp_path, "no_components", None, widget_conversation)
        return build_batch_report(tmp_path)

    @pytest.mark.integration
    def test_tiers(self, batch):
        """Folders land in the expected buckets."""
        assert batch.total_folders == 4
        assert [r.folder_name for r in batch.tier1] == ["clean"]
        assert batch.tier2 == []
        assert [r.folder_name for r in batch.tier3] == [
            "clickable",
            "exported",
            "no_components",
        ]

    @pytest.mark.integration
    def test_non_critical_failure_issues(self, batch):
        """Tier 3 entries list every failed check."""
        clickable = batch.tier3[0]
        assert clickable.reason == "Non-critical checks failed: No interactive elements"
        assert [issue.message for issue in clickable.critical_issues] == [
            "Found interactive elements in components."
        ]

    @pytest.mark.integration
    def test_validation_error_entry(self, batch):
        """Folders that cannot be validated get a Validation Error issue."""
        failed = batch.tier3[2]
        assert failed.report is None
        assert failed.error is not None
        assert failed.critical_issues[0].check == "Validation Error"

    @pytest.mark.integration
    def test_json_round_trip(self, batch):
        """Batch reports serialise to JSON and back."""
        restored = BatchReport.model_validate_json(batch.model_dump_json())
        assert restored.tier1[0].report.all_passed

    @pytest.mark.integration
    def test_markdown(self, batch):
        """The Markdown report has a summary and one section per tier."""
        text = render_markdown(batch)
        assert text.startswith("# Validation Report\n")
        assert "| Tier 1 (High Confidence) | 1 |" in text
        assert "| Total | 4 |" in text
        assert "## Tier 3 (Low Confidence)" in text
        assert "- **exported**: Critical validation failures" in text
        assert "  - Validation Error: " in text

    @pytest.mark.integration
    def test_empty_root(self, tmp_path):
        """An empty root yields empty tiers."""
        batch = build_batch_report(tmp_path)
        assert batch.total_folders == 0
        assert "_None_" in render_markdown(batch)
