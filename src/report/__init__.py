"""Data point loading and tiered batch validation reports."""

from .lib import (
    CRITICAL_CHECKS,
    BatchReport,
    DataPoint,
    FolderResult,
    IssueSummary,
    TierAssignment,
    build_batch_report,
    categorize,
    discover_data_points,
    load_data_point,
    render_markdown,
    validate_data_point,
)

__all__ = [
    # Data points
    "DataPoint",
    "load_data_point",
    "validate_data_point",
    "discover_data_points",
    # Tiers
    "CRITICAL_CHECKS",
    "TierAssignment",
    "categorize",
    # Batch reports
    "IssueSummary",
    "FolderResult",
    "BatchReport",
    "build_batch_report",
    "render_markdown",
]
