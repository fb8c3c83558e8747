"""Unified time axis across source datasets."""

from __future__ import annotations

from spim_merge.types.dataset import SourceDataset, TimePoint


class TimePointUnifier:
    """Maps time point ids to a single shared ``TimePoint`` each.

    Time points are not renumbered: id 5 in one dataset and id 5 in another
    are the same moment.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, TimePoint] = {}
        self._rows: dict[int, int] | None = None

    def get(self, time_point_id: int) -> TimePoint:
        """Return the time point for ``time_point_id``, creating it on first use."""
        time_point = self._by_id.get(time_point_id)
        if time_point is None:
            if int(time_point_id) != time_point_id or time_point_id < 0:
                raise ValueError(
                    f"Time point ids must be non-negative integers, got {time_point_id!r}"
                )
            time_point = TimePoint(int(time_point_id))
            self._by_id[time_point.id] = time_point
            self._rows = None
        return time_point

    def add_dataset(self, dataset: SourceDataset) -> None:
        for time_point_id in dataset.all_time_points():
            self.get(time_point_id)

    @property
    def time_points(self) -> list[TimePoint]:
        return [self._by_id[key] for key in sorted(self._by_id)]

    def row_of(self, time_point_id: int) -> int:
        """Position of a time point on the sorted unified axis."""
        if self._rows is None:
            self._rows = {key: row for row, key in enumerate(sorted(self._by_id))}
        return self._rows[time_point_id]

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, time_point_id: object) -> bool:
        return time_point_id in self._by_id
