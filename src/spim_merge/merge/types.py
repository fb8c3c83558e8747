"""Intermediate results passed between merge stages."""

from __future__ import annotations

from dataclasses import dataclass, field

from spim_merge.errors import EmptyAttributeSetError, UnresolvedViewSetupMappingError
from spim_merge.merge.ranges import EntityIdRange
from spim_merge.types.dataset import AttributeKind, ViewSetup, ViewSetupSource


@dataclass
class RenumberingPlan:
    """Per-dataset id shifts for every attribute kind."""

    ranges: list[dict[AttributeKind, EntityIdRange]]
    shifts: list[dict[AttributeKind, int]]
    occupied: dict[AttributeKind, EntityIdRange] = field(default_factory=dict)
    merge_kinds: frozenset[AttributeKind] = frozenset()

    def range_for(self, dataset_index: int, kind: AttributeKind) -> EntityIdRange:
        try:
            return self.ranges[dataset_index][kind]
        except KeyError:
            raise EmptyAttributeSetError(
                f"Dataset #{dataset_index} has no {kind.value} id range"
            ) from None

    def shift_for(self, dataset_index: int, kind: AttributeKind) -> int:
        try:
            return self.shifts[dataset_index][kind]
        except KeyError:
            raise EmptyAttributeSetError(
                f"Dataset #{dataset_index} has no {kind.value} id shift"
            ) from None

    def renumbered_ranges(self) -> list[dict[AttributeKind, EntityIdRange]]:
        return [
            {
                kind: id_range.shifted(shifts[kind])
                for kind, id_range in ranges.items()
            }
            for ranges, shifts in zip(self.ranges, self.shifts)
        ]


@dataclass
class ViewSetupMergeResult:
    """Merged view-setups and the old-to-new id map of every dataset."""

    view_setups: list[ViewSetup]
    id_maps: list[dict[int, int]]
    sources: dict[int, ViewSetupSource] = field(default_factory=dict)

    def new_id(self, dataset_index: int, old_id: int) -> int:
        try:
            return self.id_maps[dataset_index][old_id]
        except (IndexError, KeyError):
            raise UnresolvedViewSetupMappingError(
                f"View-setup {old_id} of dataset #{dataset_index} "
                "has no id in the merged dataset"
            ) from None

    def __len__(self) -> int:
        return len(self.view_setups)
