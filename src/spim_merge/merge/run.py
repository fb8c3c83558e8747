"""Merge several multi-view datasets into one with a unified id space."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence, Set
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from tqdm.auto import tqdm

from spim_merge.errors import PersistenceError
from spim_merge.io.dataset_yaml import load_dataset_yaml, save_dataset_yaml
from spim_merge.merge.presence import resolve_missing_views
from spim_merge.merge.ranges import extract_id_ranges
from spim_merge.merge.renumber import compute_shifts, log_range_report, range_report
from spim_merge.merge.timepoints import TimePointUnifier
from spim_merge.merge.types import ViewSetupMergeResult
from spim_merge.merge.view_setups import merge_view_setups
from spim_merge.types.dataset import (
    AttributeKind,
    MergedDataset,
    SourceDataset,
    ViewId,
    ViewRegistration,
)

logger = logging.getLogger(__name__)

DatasetLoader = Callable[[Path], SourceDataset]
DatasetWriter = Callable[[MergedDataset, Path], None]


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class MergeConfig:
    """Inputs, output and merge policy of one merge run."""

    inputs: list[Path]
    output: Path
    merge_kinds: frozenset[AttributeKind] = field(default_factory=frozenset)
    verbose: bool = False


def parse_merge_kinds(values: Iterable[Any] | None) -> frozenset[AttributeKind]:
    """Normalize attribute kind names (e.g. 'channel', 'Tiles')."""
    if values is None:
        return frozenset()
    if isinstance(values, (str, AttributeKind)):
        values = [values]
    return frozenset(AttributeKind.parse(value) for value in values)


def read_merge_config(path: Path) -> MergeConfig:
    """Load a merge configuration YAML.

    Relative input and output paths are resolved against the directory of
    the configuration file.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse merge config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Merge config YAML must contain a mapping at the top level")

    inputs = data.get("inputs")
    if not isinstance(inputs, list) or not inputs:
        raise ValueError("Merge config YAML must include a non-empty 'inputs' list")
    output = data.get("output")
    if not output:
        raise ValueError("Merge config YAML must include an 'output' path")

    base_dir = path.parent

    def resolve(value: Any) -> Path:
        candidate = Path(str(value)).expanduser()
        return candidate if candidate.is_absolute() else base_dir / candidate

    verbose = data.get("verbose", False)
    if not isinstance(verbose, bool):
        raise ValueError(
            f"Merge config 'verbose' must be true or false, got {verbose!r}"
        )

    return MergeConfig(
        inputs=[resolve(value) for value in inputs],
        output=resolve(output),
        merge_kinds=parse_merge_kinds(data.get("merge")),
        verbose=verbose,
    )


# =============================================================================
# MERGE
# =============================================================================


def _ordered(datasets: Sequence[SourceDataset]) -> list[SourceDataset]:
    # Output numbering depends on dataset order
    if isinstance(datasets, (Set, Mapping)):
        raise TypeError("Datasets must be given as an ordered sequence")
    return list(datasets)


def _remap_registrations(
    datasets: Sequence[SourceDataset],
    view_setups: ViewSetupMergeResult,
    time_points: TimePointUnifier,
) -> list[ViewRegistration]:
    registrations: list[ViewRegistration] = []
    for dataset_index, dataset in enumerate(datasets):
        seen: set[ViewId] = set()
        for registration in dataset.registrations:
            view_id = registration.view_id
            if view_id in seen:
                raise ValueError(
                    f"Duplicate registration for time point {view_id.time_point}, "
                    f"view-setup {view_id.view_setup} in {dataset.label}"
                )
            seen.add(view_id)
            new_setup = view_setups.new_id(dataset_index, view_id.view_setup)
            if dataset.is_missing(view_id):
                logger.debug(
                    "Skipping registration of missing view %s in %s",
                    view_id,
                    dataset.label,
                )
                continue
            time_point = time_points.get(view_id.time_point)
            registrations.append(
                ViewRegistration(
                    view_id=ViewId(time_point.id, new_setup),
                    transforms=list(registration.transforms),
                )
            )
    registrations.sort(key=lambda registration: registration.view_id)
    return registrations


def merge_datasets(
    datasets: Sequence[SourceDataset],
    merge_kinds: Iterable[AttributeKind] = (),
) -> MergedDataset:
    """Fold the given datasets, in order, into one merged dataset.

    Attribute kinds listed in ``merge_kinds`` keep their ids across datasets
    (equal ids are the same entity); all other kinds are renumbered so that
    no two datasets share an id. View-setups get fresh ids 0..N-1 and
    registrations are copied with their transforms unchanged.
    """
    datasets = _ordered(datasets)
    if not datasets:
        raise ValueError("At least one dataset is required for a merge")
    merge_kinds = parse_merge_kinds(merge_kinds)
    labels = [dataset.label for dataset in datasets]

    logger.info(
        "Merging %d dataset(s); shared attribute kinds: %s",
        len(datasets),
        sorted(kind.value for kind in merge_kinds) or "none",
    )

    plan = compute_shifts([extract_id_ranges(d) for d in datasets], merge_kinds)
    log_range_report(
        range_report(plan, labels, renumbered=False), "Initial numbering of attributes"
    )
    final_ranges = range_report(plan, labels, renumbered=True)
    log_range_report(final_ranges, "Final numbering of attributes")

    time_points = TimePointUnifier()
    for dataset in datasets:
        time_points.add_dataset(dataset)

    view_setups = merge_view_setups(datasets, plan)
    registrations = _remap_registrations(datasets, view_setups, time_points)
    missing_views = resolve_missing_views(datasets, view_setups, time_points)

    logger.info(
        "Merged dataset: %d time point(s), %d view-setup(s), %d registration(s)",
        len(time_points),
        len(view_setups),
        len(registrations),
    )
    return MergedDataset(
        time_points=time_points.time_points,
        view_setups=view_setups.view_setups,
        registrations=registrations,
        missing_views=missing_views,
        sources=view_setups.sources,
        id_ranges=final_ranges,
    )


def run_merge(
    inputs: Sequence[Path],
    output: Path,
    merge_kinds: Iterable[AttributeKind] = (),
    loader: DatasetLoader = load_dataset_yaml,
    writer: DatasetWriter = save_dataset_yaml,
    progress: bool = False,
) -> MergedDataset:
    """Load, merge and write datasets; nothing is written if any step fails."""
    if isinstance(inputs, (Set, Mapping)):
        raise TypeError("Input datasets must be given as an ordered sequence")

    datasets = [
        loader(Path(path))
        for path in tqdm(
            list(inputs),
            desc="Loading datasets",
            unit="dataset",
            leave=False,
            disable=not progress,
        )
    ]
    merged = merge_datasets(datasets, merge_kinds)

    output = Path(output)
    logger.info("Saving merged dataset %s", output)
    try:
        writer(merged, output)
    except PersistenceError:
        raise
    except OSError as exc:
        raise PersistenceError(f"Failed to write merged dataset to {output}: {exc}") from exc
    return merged


__all__ = [
    "MergeConfig",
    "parse_merge_kinds",
    "read_merge_config",
    "merge_datasets",
    "run_merge",
]
