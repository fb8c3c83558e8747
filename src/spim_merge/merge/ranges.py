"""Id ranges occupied by an attribute kind within one source dataset."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from spim_merge.errors import EmptyAttributeSetError
from spim_merge.types.dataset import AttributeInstance, AttributeKind, SourceDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntityIdRange:
    """Bounding interval ``[id_min, id_max]`` of one attribute kind's ids.

    The whole interval counts as occupied even when the ids inside it are
    sparse. Shifts computed against it can therefore be larger than needed,
    never smaller.
    """

    kind: AttributeKind
    id_min: int
    id_max: int

    def __post_init__(self) -> None:
        if self.id_min > self.id_max:
            raise ValueError(
                f"Invalid {self.kind.value} id range [{self.id_min}, {self.id_max}]"
            )

    @classmethod
    def from_instances(
        cls, kind: AttributeKind, instances: Iterable[AttributeInstance]
    ) -> "EntityIdRange":
        ids: list[int] = []
        for instance in instances:
            if instance.kind is not kind:
                raise ValueError(
                    f"Cannot add a {instance.kind.value} attribute to a {kind.value} range"
                )
            ids.append(instance.id)
        if not ids:
            raise EmptyAttributeSetError(
                f"No {kind.value} attributes to compute an id range from"
            )
        return cls(kind, min(ids), max(ids))

    @staticmethod
    def merge(a: "EntityIdRange", b: "EntityIdRange") -> "EntityIdRange":
        """Smallest interval covering both ranges."""
        if a.kind is not b.kind:
            raise ValueError(
                f"Cannot merge a {a.kind.value} range with a {b.kind.value} range"
            )
        return EntityIdRange(a.kind, min(a.id_min, b.id_min), max(a.id_max, b.id_max))

    def shift_to_avoid(self, occupied: "EntityIdRange | None") -> int:
        """Shift that moves this range past ``occupied``.

        Ranges are only ever appended after the occupied maximum, never
        slotted into gaps below it.
        """
        if occupied is None:
            return 0
        if occupied.kind is not self.kind:
            raise ValueError(
                f"Cannot compare a {self.kind.value} range with a {occupied.kind.value} range"
            )
        if self.id_min <= occupied.id_max:
            return occupied.id_max + 1 - self.id_min
        return 0

    def shifted(self, delta: int) -> "EntityIdRange":
        return EntityIdRange(self.kind, self.id_min + delta, self.id_max + delta)

    def renumber(self, instance: AttributeInstance, delta: int) -> AttributeInstance:
        """Copy of ``instance`` with its id moved by ``delta``.

        Undefined placeholders keep their id.
        """
        if instance.kind is not self.kind:
            raise ValueError(
                f"Cannot renumber a {instance.kind.value} attribute with a {self.kind.value} range"
            )
        if delta == 0 or instance.is_undefined:
            return instance
        return dataclasses.replace(instance, id=instance.id + delta)


def extract_id_ranges(dataset: SourceDataset) -> dict[AttributeKind, EntityIdRange]:
    """Compute the id range of every attribute kind used by a dataset.

    Undefined placeholders are ignored. Kinds are returned in enum order so
    that the result does not depend on view-setup ordering.
    """
    by_kind: dict[AttributeKind, list[AttributeInstance]] = defaultdict(list)
    for setup in dataset.view_setups:
        for attribute in setup.attributes:
            if not attribute.is_undefined:
                by_kind[attribute.kind].append(attribute)

    ranges: dict[AttributeKind, EntityIdRange] = {}
    for kind in AttributeKind:
        if kind in by_kind:
            ranges[kind] = EntityIdRange.from_instances(kind, by_kind[kind])
    logger.debug(
        "Dataset %s uses attribute kinds: %s",
        dataset.label,
        [kind.value for kind in ranges],
    )
    return ranges


__all__ = ["EntityIdRange", "extract_id_ranges"]
