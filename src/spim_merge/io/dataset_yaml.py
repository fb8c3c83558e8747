"""
Dataset descriptor YAML - loading source datasets and writing merged ones.
"""

import logging
import os
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from spim_merge.types.dataset import (
    UNDEFINED_ID,
    AttributeInstance,
    AttributeKind,
    MergedDataset,
    SourceDataset,
    ViewId,
    ViewRegistration,
    ViewSetup,
    ViewTransform,
    VoxelSize,
)

logger = logging.getLogger(__name__)

_ATTRIBUTE_CORE_KEYS = {"kind", "id", "name"}


# =============================================================================
# PUBLIC API - LOADING
# =============================================================================


def load_dataset_yaml(file_path: Path) -> SourceDataset:
    """Load a source dataset descriptor."""
    file_path = Path(file_path)
    try:
        with file_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to load dataset YAML {file_path}: {e}") from e

    if not isinstance(data, Mapping):
        raise ValueError(f"Dataset YAML {file_path} must contain a mapping")

    try:
        return parse_dataset(data, label=str(file_path))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid dataset YAML {file_path}: {e}") from e


def parse_dataset(data: Mapping[str, Any], label: str) -> SourceDataset:
    """Build a ``SourceDataset`` from an already parsed descriptor mapping."""
    raw_setups = data.get("view_setups")
    if not isinstance(raw_setups, Sequence) or isinstance(raw_setups, (str, bytes)):
        raise ValueError("'view_setups' must be a list")

    view_setups = [_parse_view_setup(entry) for entry in raw_setups]

    registrations: list[ViewRegistration] = []
    seen: set[ViewId] = set()
    for entry in data.get("registrations") or []:
        registration = _parse_registration(entry)
        if registration.view_id in seen:
            raise ValueError(
                f"Duplicate registration for time point {registration.view_id.time_point}, "
                f"view-setup {registration.view_id.view_setup}"
            )
        seen.add(registration.view_id)
        registrations.append(registration)

    missing_views = frozenset(
        _parse_view_id(entry) for entry in data.get("missing_views") or []
    )
    time_points = [int(value) for value in data.get("time_points") or []]

    return SourceDataset(
        label=label,
        view_setups=view_setups,
        registrations=registrations,
        missing_views=missing_views,
        time_points=time_points,
    )


# =============================================================================
# PUBLIC API - WRITING
# =============================================================================


def serialize_merged_dataset(merged: MergedDataset) -> dict[str, Any]:
    """Convert a merged dataset to a YAML-safe dictionary."""
    return {
        "time_points": merged.time_point_ids(),
        "view_setups": [_serialize_view_setup(setup) for setup in merged.view_setups],
        "registrations": [
            {
                "time_point": registration.view_id.time_point,
                "view_setup": registration.view_id.view_setup,
                "transforms": [
                    {
                        "name": transform.name,
                        "affine": transform.affine.ravel().tolist(),
                    }
                    for transform in registration.transforms
                ],
            }
            for registration in merged.registrations
        ],
        "missing_views": [
            [view_id.time_point, view_id.view_setup] for view_id in merged.missing_views
        ],
        "sources": [
            {
                "view_setup": setup_id,
                "dataset": source.dataset_label,
                "original_view_setup": source.view_setup,
            }
            for setup_id, source in sorted(merged.sources.items())
        ],
    }


def save_dataset_yaml(merged: MergedDataset, file_path: Path) -> None:
    """Write a merged dataset descriptor.

    The YAML is written to a temporary file next to the target and moved into
    place, so a failed write leaves no partial descriptor behind.

    Raises:
        OSError: If the file cannot be written
    """
    file_path = Path(file_path)
    payload = serialize_merged_dataset(merged)

    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{file_path.name}.", suffix=".tmp", dir=file_path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                payload,
                f,
                sort_keys=False,
                default_flow_style=None,
                allow_unicode=True,
            )
        os.replace(tmp_name, file_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote merged dataset to %s", file_path)


# =============================================================================
# PRIVATE HELPER FUNCTIONS
# =============================================================================


def _parse_attribute(entry: Mapping[str, Any]) -> AttributeInstance:
    kind = AttributeKind.parse(entry["kind"])
    attribute_id = int(entry["id"])
    if attribute_id == UNDEFINED_ID:
        return AttributeInstance.undefined(kind)
    name = entry.get("name")
    payload = {k: v for k, v in entry.items() if k not in _ATTRIBUTE_CORE_KEYS}
    return AttributeInstance(
        kind=kind,
        id=attribute_id,
        name=None if name is None else str(name),
        payload=payload,
    )


def _parse_view_setup(entry: Mapping[str, Any]) -> ViewSetup:
    if not isinstance(entry, Mapping):
        raise ValueError("Each view-setup must be a mapping")

    size = entry.get("size")
    voxel_size = entry.get("voxel_size")
    if voxel_size is not None:
        voxel_size = VoxelSize(
            unit=str(voxel_size.get("unit", "")),
            dimensions=tuple(float(v) for v in voxel_size.get("dimensions", [])),
        )
    name = entry.get("name")

    return ViewSetup(
        id=int(entry["id"]),
        name=None if name is None else str(name),
        size=None if size is None else tuple(int(v) for v in size),
        voxel_size=voxel_size,
        attributes=[_parse_attribute(a) for a in entry.get("attributes") or []],
    )


def _parse_view_id(entry: Any) -> ViewId:
    if isinstance(entry, Mapping):
        return ViewId(int(entry["time_point"]), int(entry["view_setup"]))
    if isinstance(entry, Sequence) and not isinstance(entry, (str, bytes)):
        if len(entry) != 2:
            raise ValueError(f"View id must be [time_point, view_setup], got {entry!r}")
        return ViewId(int(entry[0]), int(entry[1]))
    raise ValueError(f"Invalid view id {entry!r}")


def _parse_registration(entry: Mapping[str, Any]) -> ViewRegistration:
    transforms = [
        ViewTransform(name=t.get("name"), affine=np.asarray(t["affine"], dtype=np.float64))
        for t in entry.get("transforms") or []
    ]
    return ViewRegistration(view_id=_parse_view_id(entry), transforms=transforms)


def _serialize_value(obj: Any) -> Any:
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, Mapping):
        return {str(k): _serialize_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize_value(v) for v in obj]
    return obj


def _serialize_view_setup(setup: ViewSetup) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": setup.id, "name": setup.name}
    if setup.size is not None:
        payload["size"] = list(setup.size)
    if setup.voxel_size is not None:
        payload["voxel_size"] = {
            "unit": setup.voxel_size.unit,
            "dimensions": list(setup.voxel_size.dimensions),
        }
    attributes = []
    for attribute in setup.attributes:
        item: dict[str, Any] = {
            "kind": attribute.kind.value,
            "id": UNDEFINED_ID if attribute.is_undefined else attribute.id,
        }
        if attribute.name is not None:
            item["name"] = attribute.name
        item.update(_serialize_value(attribute.payload))
        attributes.append(item)
    payload["attributes"] = attributes
    return payload


__all__ = [
    "load_dataset_yaml",
    "parse_dataset",
    "serialize_merged_dataset",
    "save_dataset_yaml",
]
