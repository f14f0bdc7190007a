from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd

GRID_COLUMNS = ["day_start", "bucket_start", "bucket_index", "value"]


def to_instant(value: datetime) -> pd.Timestamp:
    """UTC instant for `value`; naive datetimes are read as UTC."""
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        return stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC")


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def ordered(self) -> TimeRange:
        """Both ends as UTC instants, earliest first."""
        start = to_instant(self.start)
        end = to_instant(self.end)
        if start <= end:
            return TimeRange(start=start, end=end)
        return TimeRange(start=end, end=start)


@dataclass(frozen=True)
class BucketConfig:
    """Engine-facing bucketization settings.

    `daily_interval_minutes` is measured in wall-clock minutes since local
    midnight, `0 <= start <= end <= 1440`.
    """

    timezone: str
    daily_interval_minutes: tuple[float, float]
    bucket_count: int
    aggregation: str
    time_range: TimeRange


@dataclass(frozen=True)
class BucketCell:
    day_start: datetime
    bucket_start: datetime
    bucket_index: int
    value: float


@dataclass(frozen=True)
class BucketGrid:
    cells: tuple[BucketCell, ...]
    days: tuple[datetime, ...]
    bucket_count: int
    daily_interval_minutes: tuple[float, float]
    timezone: str
    _lookup: dict[tuple[datetime, int], float] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for cell in self.cells:
            self._lookup[(cell.day_start, cell.bucket_index)] = cell.value

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def bucket_minutes(self) -> float:
        start, end = self.daily_interval_minutes
        return (end - start) / self.bucket_count

    def values(self) -> list[float]:
        return [cell.value for cell in self.cells]

    def value_at(self, day_start: datetime, bucket_index: int) -> float | None:
        return self._lookup.get((day_start, bucket_index))

    def to_frame(self) -> pd.DataFrame:
        if not self.cells:
            return pd.DataFrame(columns=GRID_COLUMNS)
        return pd.DataFrame(
            [
                {
                    "day_start": cell.day_start,
                    "bucket_start": cell.bucket_start,
                    "bucket_index": cell.bucket_index,
                    "value": cell.value,
                }
                for cell in self.cells
            ],
            columns=GRID_COLUMNS,
        )
