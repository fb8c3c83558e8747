"""Merge engine exposed for CLI and library consumers."""

from .ranges import EntityIdRange, extract_id_ranges
from .renumber import compute_shifts, log_range_report, range_report
from .run import (
    MergeConfig,
    merge_datasets,
    parse_merge_kinds,
    read_merge_config,
    run_merge,
)
from .timepoints import TimePointUnifier
from .types import RenumberingPlan, ViewSetupMergeResult

__all__ = [
    "EntityIdRange",
    "extract_id_ranges",
    "compute_shifts",
    "range_report",
    "log_range_report",
    "RenumberingPlan",
    "ViewSetupMergeResult",
    "TimePointUnifier",
    "MergeConfig",
    "parse_merge_kinds",
    "read_merge_config",
    "merge_datasets",
    "run_merge",
]
