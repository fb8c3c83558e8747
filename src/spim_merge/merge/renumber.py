"""Attribute id renumbering across source datasets."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping, Sequence

import pandas as pd

from spim_merge.merge.ranges import EntityIdRange
from spim_merge.merge.types import RenumberingPlan
from spim_merge.types.dataset import AttributeKind

logger = logging.getLogger(__name__)

RANGE_REPORT_COLUMNS = ["dataset", "kind", "id_min", "id_max", "shift"]


def compute_shifts(
    ranges_per_dataset: Sequence[Mapping[AttributeKind, EntityIdRange]],
    merge_kinds: Collection[AttributeKind] = (),
) -> RenumberingPlan:
    """Compute the id shift of every (dataset, attribute kind) pair.

    Datasets are processed in the given order: the first dataset to use a
    kind keeps its ids, later ones are pushed past everything already
    occupied. Kinds in ``merge_kinds`` are never shifted, so equal ids in
    different datasets denote the same entity.
    """
    merge_kinds = frozenset(merge_kinds)
    occupied: dict[AttributeKind, EntityIdRange] = {}
    shifts: list[dict[AttributeKind, int]] = []

    for index, ranges in enumerate(ranges_per_dataset):
        dataset_shifts: dict[AttributeKind, int] = {}
        for kind, id_range in ranges.items():
            current = occupied.get(kind)
            if kind in merge_kinds:
                delta = 0
                occupied[kind] = (
                    id_range if current is None else EntityIdRange.merge(current, id_range)
                )
            elif current is not None:
                delta = id_range.shift_to_avoid(current)
                occupied[kind] = EntityIdRange.merge(id_range.shifted(delta), current)
            else:
                delta = 0
                occupied[kind] = id_range
            dataset_shifts[kind] = delta
            if delta:
                logger.debug(
                    "Dataset #%d: shifting %s ids by %d", index, kind.value, delta
                )
        shifts.append(dataset_shifts)

    return RenumberingPlan(
        ranges=[dict(ranges) for ranges in ranges_per_dataset],
        shifts=shifts,
        occupied=occupied,
        merge_kinds=merge_kinds,
    )


def range_report(
    plan: RenumberingPlan, labels: Sequence[str], renumbered: bool = True
) -> pd.DataFrame:
    """Tabulate the id range of each dataset and kind."""
    ranges_per_dataset = plan.renumbered_ranges() if renumbered else plan.ranges
    rows = []
    for label, ranges, shifts in zip(labels, ranges_per_dataset, plan.shifts):
        for kind, id_range in ranges.items():
            rows.append(
                {
                    "dataset": label,
                    "kind": kind.value,
                    "id_min": id_range.id_min,
                    "id_max": id_range.id_max,
                    "shift": shifts.get(kind, 0) if renumbered else 0,
                }
            )
    return pd.DataFrame(rows, columns=RANGE_REPORT_COLUMNS)


def log_range_report(report: pd.DataFrame, title: str) -> None:
    """Log a range report; never raises."""
    try:
        if report.empty:
            logger.info("%s: no attributes", title)
        else:
            logger.info("%s:\n%s", title, report.to_string(index=False))
    except Exception as exc:  # pragma: no cover - diagnostics only
        logger.debug("Could not format id range report: %s", exc)


__all__ = ["compute_shifts", "range_report", "log_range_report"]
