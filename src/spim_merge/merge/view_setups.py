"""Rebuild the view-setups of all source datasets into one id space."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from spim_merge.errors import MalformedViewSetupError
from spim_merge.merge.types import RenumberingPlan, ViewSetupMergeResult
from spim_merge.types.dataset import (
    REQUIRED_KINDS,
    AttributeInstance,
    AttributeKind,
    SourceDataset,
    ViewSetup,
    ViewSetupSource,
)

logger = logging.getLogger(__name__)


def _attributes_by_kind(
    setup: ViewSetup, dataset: SourceDataset
) -> dict[AttributeKind, AttributeInstance]:
    by_kind: dict[AttributeKind, AttributeInstance] = {}
    for attribute in setup.attributes:
        if attribute.kind in by_kind:
            raise MalformedViewSetupError(
                f"View-setup {setup.id} of {dataset.label} has more than one "
                f"{attribute.kind.value} attribute"
            )
        by_kind[attribute.kind] = attribute
    return by_kind


def renumber_view_setup(
    setup: ViewSetup,
    new_id: int,
    dataset: SourceDataset,
    dataset_index: int,
    plan: RenumberingPlan,
) -> ViewSetup:
    """Copy of ``setup`` with a new id and shifted attribute ids.

    Channel, angle and illumination are always present afterwards (as
    undefined placeholders if the source lacked them). Tile is kept only if
    the source view-setup had one.
    """
    attributes = _attributes_by_kind(setup, dataset)

    renumbered: dict[AttributeKind, AttributeInstance] = {}
    for kind, attribute in attributes.items():
        if attribute.is_undefined:
            renumbered[kind] = attribute
            continue
        id_range = plan.range_for(dataset_index, kind)
        renumbered[kind] = id_range.renumber(
            attribute, plan.shift_for(dataset_index, kind)
        )
    for kind in REQUIRED_KINDS:
        renumbered.setdefault(kind, AttributeInstance.undefined(kind))

    return ViewSetup(
        id=new_id,
        name=setup.name,
        size=setup.size,
        voxel_size=setup.voxel_size,
        attributes=[renumbered[kind] for kind in AttributeKind if kind in renumbered],
    )


def merge_view_setups(
    datasets: Sequence[SourceDataset], plan: RenumberingPlan
) -> ViewSetupMergeResult:
    """Renumber and concatenate the view-setups of every dataset.

    New ids come from a single counter that starts at 0 and follows dataset
    order, then each dataset's own view-setup order.
    """
    view_setups: list[ViewSetup] = []
    id_maps: list[dict[int, int]] = []
    sources: dict[int, ViewSetupSource] = {}

    for dataset_index, dataset in enumerate(datasets):
        id_map: dict[int, int] = {}
        for setup in dataset.view_setups:
            if setup.id in id_map:
                raise MalformedViewSetupError(
                    f"View-setup id {setup.id} appears twice in {dataset.label}"
                )
            new_id = len(view_setups)
            view_setups.append(
                renumber_view_setup(setup, new_id, dataset, dataset_index, plan)
            )
            id_map[setup.id] = new_id
            sources[new_id] = ViewSetupSource(
                dataset_index=dataset_index,
                dataset_label=dataset.label,
                view_setup=setup.id,
            )
        id_maps.append(id_map)
        logger.info(
            "Added %d view-setup(s) from %s", len(id_map), dataset.label
        )

    return ViewSetupMergeResult(view_setups=view_setups, id_maps=id_maps, sources=sources)


__all__ = ["renumber_view_setup", "merge_view_setups"]
