"""Which (time point, view-setup) combinations exist in the merged dataset."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from spim_merge.merge.timepoints import TimePointUnifier
from spim_merge.merge.types import ViewSetupMergeResult
from spim_merge.types.dataset import SourceDataset, ViewId

logger = logging.getLogger(__name__)


def build_presence_table(
    datasets: Sequence[SourceDataset],
    view_setups: ViewSetupMergeResult,
    time_points: TimePointUnifier,
) -> np.ndarray:
    """Boolean (time point x view-setup) table of present views.

    A view is present only if its source registered it and did not list it
    as missing. Every other cell, including combinations no source ever
    covered, stays absent.
    """
    present = np.zeros((len(time_points), len(view_setups)), dtype=bool)

    for dataset_index, dataset in enumerate(datasets):
        # Resolve missing entries too so dangling references fail loudly
        for view_id in dataset.missing_views:
            view_setups.new_id(dataset_index, view_id.view_setup)

        for registration in dataset.registrations:
            view_id = registration.view_id
            column = view_setups.new_id(dataset_index, view_id.view_setup)
            row = time_points.row_of(time_points.get(view_id.time_point).id)
            present[row, column] = not dataset.is_missing(view_id)

    return present


def resolve_missing_views(
    datasets: Sequence[SourceDataset],
    view_setups: ViewSetupMergeResult,
    time_points: TimePointUnifier,
) -> list[ViewId]:
    """Missing views of the merged dataset, ordered by time point then view-setup."""
    present = build_presence_table(datasets, view_setups, time_points)
    axis = time_points.time_points
    rows, columns = np.nonzero(~present)
    missing = [
        ViewId(axis[row].id, int(column)) for row, column in zip(rows, columns)
    ]
    logger.info(
        "%d of %d view(s) are missing in the merged dataset",
        len(missing),
        present.size,
    )
    return missing


__all__ = ["build_presence_table", "resolve_missing_views"]
