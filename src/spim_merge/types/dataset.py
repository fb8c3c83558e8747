"""Dataclasses describing multi-view datasets and their merged aggregate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

UNDEFINED_ID = -1


class AttributeKind(str, Enum):
    """Category of view-setup attribute."""

    TILE = "tile"
    CHANNEL = "channel"
    ANGLE = "angle"
    ILLUMINATION = "illumination"

    @classmethod
    def parse(cls, value: Any) -> "AttributeKind":
        """Accept an enum member or its name/value in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text.endswith("s") and text[:-1] in cls._value2member_map_:
            text = text[:-1]
        try:
            return cls(text)
        except ValueError as exc:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(
                f"Unknown attribute kind '{value}' (expected one of: {choices})"
            ) from exc


# Every merged view-setup carries these kinds; tile is optional.
REQUIRED_KINDS: tuple[AttributeKind, ...] = (
    AttributeKind.CHANNEL,
    AttributeKind.ANGLE,
    AttributeKind.ILLUMINATION,
)


@dataclass(frozen=True, slots=True)
class AttributeInstance:
    """One attribute value attached to a view-setup.

    ``payload`` holds kind-specific extras (e.g. a tile location) that are
    carried through renumbering untouched. Only ``undefined()`` creates
    placeholders; any id, including ``UNDEFINED_ID``, is a real id otherwise.
    """

    kind: AttributeKind
    id: int
    name: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)
    defined: bool = True

    @classmethod
    def undefined(cls, kind: AttributeKind) -> "AttributeInstance":
        """Placeholder for a kind the view-setup never had."""
        return cls(kind=kind, id=UNDEFINED_ID, name=None, defined=False)

    @property
    def is_undefined(self) -> bool:
        return not self.defined


@dataclass(frozen=True, slots=True)
class VoxelSize:
    unit: str
    dimensions: tuple[float, ...]


@dataclass(slots=True)
class ViewSetup:
    """A time-independent acquisition setup (tile/channel/angle/illumination)."""

    id: int
    name: str | None = None
    size: tuple[int, ...] | None = None
    voxel_size: VoxelSize | None = None
    attributes: list[AttributeInstance] = field(default_factory=list)

    def get_attribute(self, kind: AttributeKind) -> AttributeInstance | None:
        for attribute in self.attributes:
            if attribute.kind is kind:
                return attribute
        return None


@dataclass(frozen=True, slots=True, order=True)
class TimePoint:
    id: int


@dataclass(frozen=True, slots=True, order=True)
class ViewId:
    """A single (time point, view-setup) observation."""

    time_point: int
    view_setup: int


@dataclass(slots=True, eq=False)
class ViewTransform:
    """A named affine transform stored as a 3x4 row-major matrix."""

    name: str | None
    affine: np.ndarray

    def __post_init__(self) -> None:
        matrix = np.asarray(self.affine, dtype=np.float64)
        if matrix.shape == (4, 4):
            if not np.array_equal(matrix[3], [0.0, 0.0, 0.0, 1.0]):
                raise ValueError(
                    f"4x4 transform must end in [0, 0, 0, 1], got {matrix[3].tolist()}"
                )
            matrix = matrix[:3]
        if matrix.size != 12:
            raise ValueError(
                f"Affine transform must have 12 values, got {matrix.size}"
            )
        self.affine = matrix.reshape(3, 4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ViewTransform):
            return NotImplemented
        return self.name == other.name and np.array_equal(self.affine, other.affine)


@dataclass(slots=True)
class ViewRegistration:
    view_id: ViewId
    transforms: list[ViewTransform] = field(default_factory=list)


@dataclass(slots=True)
class SourceDataset:
    """One input dataset as handed over by the loading collaborator."""

    label: str
    view_setups: list[ViewSetup]
    registrations: list[ViewRegistration] = field(default_factory=list)
    missing_views: frozenset[ViewId] = frozenset()
    time_points: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.missing_views = frozenset(self.missing_views)

    def all_time_points(self) -> list[int]:
        """Declared time points plus any referenced by a view."""
        ids = set(self.time_points)
        ids.update(registration.view_id.time_point for registration in self.registrations)
        ids.update(view_id.time_point for view_id in self.missing_views)
        return sorted(ids)

    def is_missing(self, view_id: ViewId) -> bool:
        return view_id in self.missing_views


@dataclass(frozen=True, slots=True)
class ViewSetupSource:
    """Where a merged view-setup came from."""

    dataset_index: int
    dataset_label: str
    view_setup: int


@dataclass(slots=True)
class MergedDataset:
    """The unified dataset produced by a merge."""

    time_points: list[TimePoint]
    view_setups: list[ViewSetup]
    registrations: list[ViewRegistration]
    missing_views: list[ViewId]
    sources: dict[int, ViewSetupSource] = field(default_factory=dict)
    id_ranges: pd.DataFrame | None = None

    def time_point_ids(self) -> list[int]:
        return [time_point.id for time_point in self.time_points]

    def view_ids(self) -> Iterable[ViewId]:
        """Every (time point, view-setup) combination of the merged dataset."""
        for time_point in self.time_points:
            for setup in self.view_setups:
                yield ViewId(time_point.id, setup.id)


__all__ = [
    "UNDEFINED_ID",
    "AttributeKind",
    "REQUIRED_KINDS",
    "AttributeInstance",
    "VoxelSize",
    "ViewSetup",
    "TimePoint",
    "ViewId",
    "ViewTransform",
    "ViewRegistration",
    "SourceDataset",
    "ViewSetupSource",
    "MergedDataset",
]
