"""Tests for view-setup renumbering."""

import pytest

from spim_merge.errors import MalformedViewSetupError
from spim_merge.merge.ranges import extract_id_ranges
from spim_merge.merge.renumber import compute_shifts
from spim_merge.merge.view_setups import merge_view_setups
from spim_merge.types.dataset import (
    UNDEFINED_ID,
    AttributeInstance,
    AttributeKind,
    SourceDataset,
    ViewSetup,
    VoxelSize,
)


def _setup(setup_id: int, **attributes: int) -> ViewSetup:
    return ViewSetup(
        id=setup_id,
        name=f"setup {setup_id}",
        size=(64, 64, 16),
        voxel_size=VoxelSize("um", (0.1, 0.1, 0.5)),
        attributes=[
            AttributeInstance(AttributeKind(kind), value)
            for kind, value in attributes.items()
        ],
    )


def _merge(datasets, merge_kinds=()):
    plan = compute_shifts([extract_id_ranges(d) for d in datasets], merge_kinds)
    return merge_view_setups(datasets, plan)


def test_ids_are_assigned_sequentially_across_datasets():
    a = SourceDataset("a", [_setup(0, channel=0), _setup(1, channel=1)])
    b = SourceDataset("b", [_setup(4, channel=0), _setup(2, channel=1), _setup(3, channel=2)])

    result = _merge([a, b])

    assert [setup.id for setup in result.view_setups] == [0, 1, 2, 3, 4]
    assert result.id_maps == [{0: 0, 1: 1}, {4: 2, 2: 3, 3: 4}]
    assert result.new_id(1, 2) == 3
    assert result.sources[2].dataset_label == "b"
    assert result.sources[2].view_setup == 4


def test_attributes_are_renumbered_with_dataset_shift():
    a = SourceDataset("a", [_setup(0, channel=0), _setup(1, channel=1)])
    b = SourceDataset("b", [_setup(0, channel=0), _setup(1, channel=1)])

    result = _merge([a, b])

    channels = [
        setup.get_attribute(AttributeKind.CHANNEL).id for setup in result.view_setups
    ]
    assert channels == [0, 1, 2, 3]


def test_missing_required_kinds_are_filled_with_undefined():
    result = _merge([SourceDataset("a", [_setup(0, channel=2)])])
    setup = result.view_setups[0]

    assert [attribute.kind for attribute in setup.attributes] == [
        AttributeKind.CHANNEL,
        AttributeKind.ANGLE,
        AttributeKind.ILLUMINATION,
    ]
    assert setup.get_attribute(AttributeKind.ANGLE).id == UNDEFINED_ID
    assert setup.get_attribute(AttributeKind.ILLUMINATION).is_undefined
    assert setup.get_attribute(AttributeKind.TILE) is None


def test_tile_is_kept_only_where_the_source_had_one():
    a = SourceDataset("a", [_setup(0, tile=0, channel=0)])
    b = SourceDataset("b", [_setup(0, channel=0)])

    result = _merge([a, b])

    assert result.view_setups[0].get_attribute(AttributeKind.TILE).id == 0
    assert result.view_setups[1].get_attribute(AttributeKind.TILE) is None


def test_view_setup_metadata_is_preserved():
    source = _setup(7, channel=0)
    result = _merge([SourceDataset("a", [source])])
    merged = result.view_setups[0]

    assert merged.name == "setup 7"
    assert merged.size == (64, 64, 16)
    assert merged.voxel_size == VoxelSize("um", (0.1, 0.1, 0.5))


def test_duplicate_attribute_kind_is_rejected():
    setup = ViewSetup(
        0,
        attributes=[
            AttributeInstance(AttributeKind.CHANNEL, 0),
            AttributeInstance(AttributeKind.CHANNEL, 1),
        ],
    )
    with pytest.raises(MalformedViewSetupError, match="more than one channel"):
        _merge([SourceDataset("a", [setup])])


def test_duplicate_view_setup_id_is_rejected():
    dataset = SourceDataset("a", [_setup(0, channel=0), _setup(0, channel=1)])
    with pytest.raises(MalformedViewSetupError, match="appears twice"):
        _merge([dataset])
