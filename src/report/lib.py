"""Data point loading, tier categorisation and batch reports.

A data point is a folder holding ``components.ts`` (the generated prop
interfaces) and ``conversation.json`` (schema plus transcript). Batch
reports validate every data point under a root folder and bucket them by
confidence:

- Tier 1: every check passed
- Tier 2: the critical checks passed and the schema check failed only on
  safe-to-filter mismatches
- Tier 3: anything else that failed, or a folder that could not be validated
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from src.interface import ParseMode, parse_components
from src.schema import ConversationData, load_conversation
from src.validation import (
    CHECK_INTERFACE_MATCHES_SCHEMA,
    CHECK_NO_EXPORT_INTERFACE,
    CHECK_NO_REACT_NODE,
    CHECK_PROPS_MATCH_SCHEMA,
    ValidationReport,
    validate_components,
)

logger = logging.getLogger(__name__)

CONVERSATION_FILE = "conversation.json"
COMPONENTS_FILE = "components.ts"

CRITICAL_CHECKS = (
    CHECK_NO_EXPORT_INTERFACE,
    CHECK_NO_REACT_NODE,
    CHECK_PROPS_MATCH_SCHEMA,
)

TIER_TITLES = {
    1: "Tier 1 (High Confidence)",
    2: "Tier 2 (Medium Confidence)",
    3: "Tier 3 (Low Confidence)",
}


# =============================================================================
# Data Points
# =============================================================================


class DataPoint(BaseModel):
    """One data point folder.

    Attributes:
        folder_name: Folder name, used as the data point's identifier.
        path: Folder path.
        conversation: Parsed conversation document, or None when the file
            is missing or unreadable.
        components_path: Path of ``components.ts`` if present.
    """

    folder_name: str
    path: Path
    conversation: ConversationData | None = None
    components_path: Path | None = None


def load_data_point(folder: Path | str) -> DataPoint:
    """Load a data point folder.

    An unreadable ``conversation.json`` is logged and treated as absent, so
    the conversation checks pass vacuously instead of aborting the run.

    Args:
        folder: Data point folder.

    Returns:
        DataPoint for the folder.
    """
    path = Path(folder)
    conversation: ConversationData | None = None

    conversation_path = path / CONVERSATION_FILE
    if conversation_path.is_file():
        try:
            conversation = load_conversation(conversation_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable %s in %s: %s", CONVERSATION_FILE, path.name, e)

    components_path = path / COMPONENTS_FILE
    return DataPoint(
        folder_name=path.name,
        path=path,
        conversation=conversation,
        components_path=components_path if components_path.is_file() else None,
    )


def validate_data_point(
    data_point: DataPoint, mode: ParseMode = ParseMode.BALANCED
) -> ValidationReport:
    """Parse a data point's components file and run every check.

    Raises:
        FileNotFoundError: If the folder has no ``components.ts``.
    """
    if data_point.components_path is None:
        raise FileNotFoundError(f"No {COMPONENTS_FILE} in {data_point.path}")

    text = data_point.components_path.read_text(encoding="utf-8")
    return validate_components(data_point.conversation, parse_components(text, mode), text)


def discover_data_points(root: Path | str) -> list[Path]:
    """Data point folders directly under ``root``, sorted by name.

    Hidden folders and folders holding neither data file are skipped.
    """
    root = Path(root)
    folders = [
        child
        for child in root.iterdir()
        if child.is_dir()
        and not child.name.startswith(".")
        and ((child / CONVERSATION_FILE).is_file() or (child / COMPONENTS_FILE).is_file())
    ]
    return sorted(folders, key=lambda p: p.name)


# =============================================================================
# Tiers
# =============================================================================


class TierAssignment(BaseModel):
    """Confidence tier for one validated data point."""

    tier: int
    reason: str


def _mismatch_counts(report: ValidationReport) -> tuple[int, int]:
    result = report.get(CHECK_INTERFACE_MATCHES_SCHEMA)
    if result is None or not result.metadata:
        return 0, 0
    return (
        result.metadata.get("total_safe_mismatches", 0),
        result.metadata.get("total_unsafe_mismatches", 0),
    )


def categorize(report: ValidationReport) -> TierAssignment:
    """Assign a confidence tier to a validation report.

    Tier 2 is reserved for a data point whose critical checks pass and whose
    ``Interface matches schema`` check failed on safe-to-filter mismatches
    only. Any other failing report is tier 3.

    Example:
        >>> categorize(report)
        TierAssignment(tier=1, reason='All checks passed')
    """
    safe, unsafe = _mismatch_counts(report)
    if report.all_passed:
        if safe:
            return TierAssignment(
                tier=1,
                reason=(
                    f"All checks passed ({safe} safe-to-filter props not in "
                    "schema were ignored)"
                ),
            )
        return TierAssignment(tier=1, reason="All checks passed")

    critical_passed = all(
        (result := report.get(check)) is not None and result.passed
        for check in CRITICAL_CHECKS
    )
    failed = report.failed_checks
    if not critical_passed:
        return TierAssignment(tier=3, reason="Critical validation failures")

    if CHECK_INTERFACE_MATCHES_SCHEMA in failed and unsafe == 0 and safe > 0:
        return TierAssignment(
            tier=2,
            reason=f"Only schema match issues ({safe} safe-to-filter mismatches)",
        )

    return TierAssignment(
        tier=3, reason=f"Non-critical checks failed: {', '.join(failed)}"
    )


# =============================================================================
# Batch Reports
# =============================================================================


class IssueSummary(BaseModel):
    """A failed check (or a validation error) recorded for a tier 3 folder."""

    check: str
    message: str
    details: list[str] | None = None


class FolderResult(BaseModel):
    """Outcome of validating one folder in a batch."""

    folder_name: str
    tier: int
    reason: str
    report: ValidationReport | None = None
    error: str | None = None
    filtered_issues: list[str] = Field(default_factory=list)
    critical_issues: list[IssueSummary] = Field(default_factory=list)


class BatchReport(BaseModel):
    """Tiered validation results for every data point under a root folder."""

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    root: str
    total_folders: int = 0
    tier1: list[FolderResult] = Field(default_factory=list)
    tier2: list[FolderResult] = Field(default_factory=list)
    tier3: list[FolderResult] = Field(default_factory=list)

    def add(self, result: FolderResult) -> None:
        """Append a folder result to its tier bucket."""
        getattr(self, f"tier{result.tier}").append(result)

    def tiers(self) -> dict[int, list[FolderResult]]:
        """Buckets keyed by tier number."""
        return {1: self.tier1, 2: self.tier2, 3: self.tier3}


def _folder_result(folder_name: str, report: ValidationReport) -> FolderResult:
    assignment = categorize(report)
    result = FolderResult(
        folder_name=folder_name,
        tier=assignment.tier,
        reason=assignment.reason,
        report=report,
    )
    if assignment.tier == 2:
        result.filtered_issues = [
            f"{r.check}: {r.message}" for r in report.results if not r.passed
        ]
    elif assignment.tier == 3:
        result.critical_issues = [
            IssueSummary(check=r.check, message=r.message, details=r.details)
            for r in report.results
            if not r.passed
        ]
    return result


def build_batch_report(
    root: Path | str, mode: ParseMode = ParseMode.BALANCED
) -> BatchReport:
    """Validate every data point under ``root`` and bucket them by tier.

    Folders that cannot be validated land in tier 3 with a
    ``Validation Error`` issue instead of aborting the batch.

    Args:
        root: Folder containing data point folders.
        mode: Interface parser mode.

    Returns:
        BatchReport with one FolderResult per data point.
    """
    folders = discover_data_points(root)
    batch = BatchReport(root=str(root), total_folders=len(folders))
    logger.info("Found %d data point folder(s) in %s", len(folders), root)

    for position, folder in enumerate(folders, start=1):
        logger.info("[%d/%d] Validating %s", position, len(folders), folder.name)
        try:
            report = validate_data_point(load_data_point(folder), mode)
        except (OSError, ValueError) as e:
            logger.error("Error validating %s: %s", folder.name, e)
            batch.add(
                FolderResult(
                    folder_name=folder.name,
                    tier=3,
                    reason="Validation error",
                    error=str(e),
                    critical_issues=[
                        IssueSummary(check="Validation Error", message=str(e))
                    ],
                )
            )
            continue
        batch.add(_folder_result(folder.name, report))

    logger.info(
        "Tier 1: %d, Tier 2: %d, Tier 3: %d",
        len(batch.tier1),
        len(batch.tier2),
        len(batch.tier3),
    )
    return batch


def render_markdown(batch: BatchReport) -> str:
    """Render a batch report as Markdown: a summary then one section per tier."""
    lines = [
        "# Validation Report",
        "",
        f"Generated: {batch.generated_at.isoformat()}",
        f"Root: `{batch.root}`",
        "",
        "## Summary",
        "",
        "| Tier | Folders |",
        "| --- | --- |",
    ]
    for tier, results in batch.tiers().items():
        lines.append(f"| {TIER_TITLES[tier]} | {len(results)} |")
    lines.append(f"| Total | {batch.total_folders} |")

    for tier, results in batch.tiers().items():
        lines += ["", f"## {TIER_TITLES[tier]}", ""]
        if not results:
            lines.append("_None_")
            continue
        for result in results:
            lines.append(f"- **{result.folder_name}**: {result.reason}")
            for issue in result.filtered_issues:
                lines.append(f"  - {issue}")
            for issue in result.critical_issues:
                lines.append(f"  - {issue.check}: {issue.message}")
                for detail in issue.details or []:
                    lines.append(f"    - {detail}")

    return "\n".join(lines) + "\n"


__all__ = [
    "CRITICAL_CHECKS",
    "DataPoint",
    "load_data_point",
    "validate_data_point",
    "discover_data_points",
    "TierAssignment",
    "categorize",
    "IssueSummary",
    "FolderResult",
    "BatchReport",
    "build_batch_report",
    "render_markdown",
]
