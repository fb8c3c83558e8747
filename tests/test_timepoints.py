"""Tests for the unified time axis."""

import pytest

from spim_merge.merge.timepoints import TimePointUnifier
from spim_merge.types.dataset import SourceDataset, ViewId


def test_same_id_yields_same_time_point():
    unifier = TimePointUnifier()
    first = unifier.get(3)
    assert unifier.get(3) is first
    assert len(unifier) == 1


def test_time_axis_is_sorted_union_of_datasets():
    unifier = TimePointUnifier()
    unifier.add_dataset(SourceDataset("a", [], time_points=[4, 0, 1]))
    unifier.add_dataset(SourceDataset("b", [], time_points=[1, 2]))

    assert [tp.id for tp in unifier.time_points] == [0, 1, 2, 4]
    assert unifier.row_of(4) == 3
    assert 2 in unifier
    assert 3 not in unifier


def test_time_points_of_missing_views_join_the_axis():
    dataset = SourceDataset("a", [], missing_views={ViewId(5, 0)}, time_points=[0])
    unifier = TimePointUnifier()
    unifier.add_dataset(dataset)

    assert [tp.id for tp in unifier.time_points] == [0, 5]


def test_rows_follow_late_additions():
    unifier = TimePointUnifier()
    unifier.get(2)
    assert unifier.row_of(2) == 0
    unifier.get(0)
    assert unifier.row_of(2) == 1


def test_negative_time_point_is_rejected():
    with pytest.raises(ValueError, match="non-negative"):
        TimePointUnifier().get(-1)
