"""Tests for attribute id ranges."""

import pytest

from spim_merge.errors import EmptyAttributeSetError
from spim_merge.merge.ranges import EntityIdRange, extract_id_ranges
from spim_merge.types.dataset import (
    AttributeInstance,
    AttributeKind,
    SourceDataset,
    ViewSetup,
)

CHANNEL = AttributeKind.CHANNEL
TILE = AttributeKind.TILE


def _channel(channel_id: int, name: str | None = None) -> AttributeInstance:
    return AttributeInstance(CHANNEL, channel_id, name=name)


def test_from_instances_uses_min_and_max():
    id_range = EntityIdRange.from_instances(
        CHANNEL, [_channel(4), _channel(1), _channel(7)]
    )
    assert id_range == EntityIdRange(CHANNEL, 1, 7)


def test_from_instances_rejects_empty_input():
    with pytest.raises(EmptyAttributeSetError, match="channel"):
        EntityIdRange.from_instances(CHANNEL, [])


def test_from_instances_rejects_other_kinds():
    with pytest.raises(ValueError):
        EntityIdRange.from_instances(CHANNEL, [AttributeInstance(TILE, 0)])


def test_range_requires_min_not_above_max():
    with pytest.raises(ValueError):
        EntityIdRange(CHANNEL, 3, 2)


def test_merge_is_bounding_interval_and_order_independent():
    a = EntityIdRange(CHANNEL, 0, 2)
    b = EntityIdRange(CHANNEL, 5, 6)
    c = EntityIdRange(CHANNEL, -3, 1)

    assert EntityIdRange.merge(a, b) == EntityIdRange(CHANNEL, 0, 6)
    assert EntityIdRange.merge(a, b) == EntityIdRange.merge(b, a)
    assert EntityIdRange.merge(EntityIdRange.merge(a, b), c) == EntityIdRange.merge(
        a, EntityIdRange.merge(b, c)
    )


def test_merge_rejects_different_kinds():
    with pytest.raises(ValueError):
        EntityIdRange.merge(EntityIdRange(CHANNEL, 0, 1), EntityIdRange(TILE, 0, 1))


class TestShiftToAvoid:
    def test_no_occupied_range(self):
        assert EntityIdRange(CHANNEL, 0, 3).shift_to_avoid(None) == 0

    def test_overlapping_range_is_appended(self):
        occupied = EntityIdRange(CHANNEL, 0, 1)
        assert EntityIdRange(CHANNEL, 0, 1).shift_to_avoid(occupied) == 2
        assert EntityIdRange(CHANNEL, 1, 4).shift_to_avoid(occupied) == 1

    def test_range_above_occupied_is_kept(self):
        occupied = EntityIdRange(CHANNEL, 0, 1)
        assert EntityIdRange(CHANNEL, 2, 5).shift_to_avoid(occupied) == 0

    def test_range_below_occupied_is_not_slotted_into_gap(self):
        occupied = EntityIdRange(CHANNEL, 5, 9)
        assert EntityIdRange(CHANNEL, 0, 1).shift_to_avoid(occupied) == 10

    def test_shifted_range_never_overlaps(self):
        occupied = EntityIdRange(CHANNEL, 2, 8)
        id_range = EntityIdRange(CHANNEL, 3, 4)
        shifted = id_range.shifted(id_range.shift_to_avoid(occupied))
        assert shifted.id_min > occupied.id_max


def test_renumber_keeps_name_and_payload():
    tile = AttributeInstance(TILE, 2, name="tile 2", payload={"location": [1.0, 2.0, 3.0]})
    renumbered = EntityIdRange(TILE, 0, 2).renumber(tile, 5)

    assert renumbered.id == 7
    assert renumbered.name == "tile 2"
    assert renumbered.payload == {"location": [1.0, 2.0, 3.0]}
    assert tile.id == 2


def test_renumber_leaves_undefined_attribute_alone():
    undefined = AttributeInstance.undefined(CHANNEL)
    assert EntityIdRange(CHANNEL, 0, 1).renumber(undefined, 3) is undefined


def test_extract_id_ranges_skips_undefined_and_orders_by_kind():
    dataset = SourceDataset(
        label="a",
        view_setups=[
            ViewSetup(0, attributes=[_channel(3), AttributeInstance(TILE, 1)]),
            ViewSetup(
                1,
                attributes=[
                    _channel(5),
                    AttributeInstance(TILE, 0),
                    AttributeInstance.undefined(AttributeKind.ANGLE),
                ],
            ),
        ],
    )

    ranges = extract_id_ranges(dataset)

    assert list(ranges) == [TILE, CHANNEL]
    assert ranges[TILE] == EntityIdRange(TILE, 0, 1)
    assert ranges[CHANNEL] == EntityIdRange(CHANNEL, 3, 5)


def test_extract_id_ranges_counts_real_minus_one_ids():
    dataset = SourceDataset(
        label="a",
        view_setups=[ViewSetup(0, attributes=[_channel(-1)]), ViewSetup(1, attributes=[_channel(2)])],
    )

    assert extract_id_ranges(dataset)[CHANNEL] == EntityIdRange(CHANNEL, -1, 2)
