from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from tod_heatmap.bucketize import (
    bucket_boundaries,
    bucket_index,
    bucketize,
    daily_interval_from_hours,
    enumerate_days,
    resolve_timezone,
)
from tod_heatmap.models import BucketConfig, TimeRange

UTC = timezone.utc


def _config(
    start: datetime,
    end: datetime,
    timezone_name: str = "UTC",
    interval: tuple[float, float] = (0.0, 1440.0),
    bucket_count: int = 4,
    aggregation: str = "mean",
) -> BucketConfig:
    return BucketConfig(
        timezone=timezone_name,
        daily_interval_minutes=interval,
        bucket_count=bucket_count,
        aggregation=aggregation,
        time_range=TimeRange(start=start, end=end),
    )


def _hourly(start: datetime, hours: int) -> list[datetime]:
    return [start + timedelta(hours=offset) for offset in range(hours)]


def test_two_days_of_hourly_samples_fill_eight_six_hour_cells() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    timestamps = _hourly(start, 48)
    values = [float(idx) for idx in range(48)]

    grid = bucketize(timestamps, values, _config(start, timestamps[-1]))

    assert len(grid) == 8
    assert grid.values() == [2.5, 8.5, 14.5, 20.5, 26.5, 32.5, 38.5, 44.5]
    assert [cell.bucket_index for cell in grid.cells] == [0, 1, 2, 3, 0, 1, 2, 3]
    assert grid.cells[1].bucket_start == pd.Timestamp("2026-01-05 06:00", tz="UTC")
    assert grid.cells[4].day_start == pd.Timestamp("2026-01-06 00:00", tz="UTC")
    assert grid.bucket_minutes == 360.0


def test_grid_is_sparse() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    end = datetime(2026, 1, 6, 23, tzinfo=UTC)
    timestamps = [datetime(2026, 1, 6, 13, tzinfo=UTC), datetime(2026, 1, 6, 14, tzinfo=UTC)]

    grid = bucketize(timestamps, [1.0, 0.0], _config(start, end))

    assert len(grid.days) == 2
    assert len(grid) == 1
    assert grid.cells[0].bucket_index == 2
    assert grid.cells[0].value == 0.5
    assert grid.value_at(grid.days[0], 2) is None
    assert grid.value_at(grid.days[1], 2) == 0.5


def test_missing_values_produce_no_cell() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    timestamps = [start + timedelta(hours=1), start + timedelta(hours=7)]

    grid = bucketize(timestamps, [None, 3.0], _config(start, start + timedelta(hours=23)))

    assert [(cell.bucket_index, cell.value) for cell in grid.cells] == [(1, 3.0)]


def test_zero_valued_cell_is_distinct_from_absent() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)

    grid = bucketize([start], [0.0], _config(start, start + timedelta(hours=23)))

    assert grid.values() == [0.0]


def test_same_local_wall_time_in_different_encodings_bucketizes_identically() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    instants = _hourly(start, 30)
    values = [float(idx % 7) for idx in range(30)]
    config = _config(start, instants[-1], timezone_name="Europe/Berlin", bucket_count=6)
    plus_five = timezone(timedelta(hours=5))

    as_utc = bucketize(instants, values, config)
    as_offset = bucketize([moment.astimezone(plus_five) for moment in instants], values, config)
    as_epoch_ms = bucketize([int(moment.timestamp() * 1000) for moment in instants], values, config)
    as_strings = bucketize([moment.isoformat() for moment in instants], values, config)

    expected = as_utc.to_frame()
    pd.testing.assert_frame_equal(as_offset.to_frame(), expected)
    pd.testing.assert_frame_equal(as_epoch_ms.to_frame(), expected)
    pd.testing.assert_frame_equal(as_strings.to_frame(), expected)


def test_buckets_follow_local_wall_clock() -> None:
    # 23:30 UTC is 08:30 the next day in Tokyo.
    moment = datetime(2026, 1, 5, 23, 30, tzinfo=UTC)
    config = _config(moment, moment, timezone_name="Asia/Tokyo", bucket_count=24)

    grid = bucketize([moment], [1.0], config)

    assert len(grid.days) == 1
    assert grid.days[0] == pd.Timestamp("2026-01-06 00:00", tz="Asia/Tokyo")
    assert grid.cells[0].bucket_index == 8


def test_bucket_edges_are_closed_left_and_final_bucket_closed_right() -> None:
    day = datetime(2026, 1, 5, tzinfo=UTC)
    timestamps = [
        day + timedelta(hours=7, minutes=59),
        day + timedelta(hours=8),
        day + timedelta(hours=10),
        day + timedelta(hours=12),
        day + timedelta(hours=12, minutes=1),
    ]
    config = _config(
        day,
        day + timedelta(hours=23),
        interval=daily_interval_from_hours(8, 12),
        bucket_count=2,
        aggregation="count",
    )

    grid = bucketize(timestamps, [1.0] * len(timestamps), config)

    assert [(cell.bucket_index, cell.value) for cell in grid.cells] == [(0, 1.0), (1, 2.0)]


def test_fractional_bucket_width_compares_real_minutes() -> None:
    assert bucket_index([0.0, 33.0, 33.4, 34.0, 99.9, 100.0], 0.0, 100.0 / 3.0, 3).tolist() == [
        0,
        0,
        1,
        1,
        2,
        2,
    ]


def test_samples_outside_the_range_are_excluded() -> None:
    start = datetime(2026, 1, 5, 12, tzinfo=UTC)
    end = datetime(2026, 1, 5, 18, tzinfo=UTC)
    timestamps = [
        datetime(2026, 1, 5, 11, tzinfo=UTC),
        datetime(2026, 1, 5, 13, tzinfo=UTC),
        datetime(2026, 1, 5, 19, tzinfo=UTC),
    ]

    grid = bucketize(timestamps, [100.0, 1.0, 100.0], _config(start, end, aggregation="sum"))

    assert grid.values() == [1.0]


def test_range_mixing_naive_and_aware_ends_reads_naive_as_utc() -> None:
    naive_start = datetime(2026, 1, 5)
    aware_end = datetime(2026, 1, 5, 23, tzinfo=UTC)
    timestamps = [datetime(2026, 1, 5, 3, tzinfo=UTC)]

    grid = bucketize(timestamps, [1.0], _config(naive_start, aware_end))
    reversed_grid = bucketize(timestamps, [1.0], _config(aware_end, naive_start))

    assert [(cell.bucket_index, cell.value) for cell in grid.cells] == [(0, 1.0)]
    assert reversed_grid.cells == grid.cells
    assert grid.days == (pd.Timestamp("2026-01-05", tz="UTC"),)


def test_unsorted_input_with_duplicate_timestamps_uses_stable_first_last() -> None:
    day = datetime(2026, 1, 5, tzinfo=UTC)
    timestamps = [day + timedelta(hours=2), day + timedelta(hours=1), day + timedelta(hours=1)]
    values = [9.0, 4.0, 5.0]
    end = day + timedelta(hours=23)

    first = bucketize(timestamps, values, _config(day, end, bucket_count=1, aggregation="first"))
    last = bucketize(timestamps, values, _config(day, end, bucket_count=1, aggregation="last"))
    mean = bucketize(timestamps, values, _config(day, end, bucket_count=1))

    assert first.values() == [4.0]
    assert last.values() == [9.0]
    assert mean.values() == [6.0]


def test_spring_forward_day_boundaries_are_contiguous() -> None:
    config = _config(
        datetime(2026, 3, 8, 12, tzinfo=UTC),
        datetime(2026, 3, 8, 12, tzinfo=UTC),
        timezone_name="America/New_York",
        bucket_count=24,
    )
    day = enumerate_days(config.time_range, resolve_timezone(config.timezone))[0]

    edges = bucket_boundaries(day, config)

    assert len(edges) == 25
    assert edges[0] == pd.Timestamp("2026-03-08 05:00", tz="UTC")
    assert edges[-1] == pd.Timestamp("2026-03-09 04:00", tz="UTC")
    assert all(left <= right for left, right in zip(edges, edges[1:]))
    assert edges[-1] - edges[0] == pd.Timedelta(hours=23)


def test_fall_back_day_boundaries_are_contiguous() -> None:
    config = _config(
        datetime(2026, 11, 1, 12, tzinfo=UTC),
        datetime(2026, 11, 1, 12, tzinfo=UTC),
        timezone_name="America/New_York",
        bucket_count=24,
    )
    day = enumerate_days(config.time_range, resolve_timezone(config.timezone))[0]

    edges = bucket_boundaries(day, config)

    assert edges[0] == pd.Timestamp("2026-11-01 04:00", tz="UTC")
    assert edges[-1] == pd.Timestamp("2026-11-02 05:00", tz="UTC")
    assert all(left <= right for left, right in zip(edges, edges[1:]))
    assert edges[2] - edges[1] == pd.Timedelta(hours=2)


def test_fall_back_day_folds_repeated_hour_into_one_bucket() -> None:
    start = datetime(2026, 11, 1, 4, tzinfo=UTC)
    timestamps = _hourly(start, 25)
    config = _config(
        start,
        timestamps[-1],
        timezone_name="America/New_York",
        bucket_count=24,
        aggregation="count",
    )

    grid = bucketize(timestamps, [1.0] * 25, config)

    assert len(grid) == 24
    assert grid.value_at(grid.days[0], 1) == 2.0


def test_spring_forward_day_skips_missing_hour() -> None:
    start = datetime(2026, 3, 8, 5, tzinfo=UTC)
    timestamps = _hourly(start, 23)
    config = _config(
        start,
        timestamps[-1],
        timezone_name="America/New_York",
        bucket_count=24,
        aggregation="count",
    )

    grid = bucketize(timestamps, [1.0] * 23, config)

    assert len(grid) == 23
    assert 2 not in [cell.bucket_index for cell in grid.cells]
    assert grid.cells[2].bucket_start == pd.Timestamp("2026-03-08 07:00", tz="UTC")


def test_bad_configuration_is_clamped_instead_of_raising() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    config = _config(
        start,
        start + timedelta(hours=23),
        timezone_name="Not/AZone",
        interval=(1500.0, -10.0),
        bucket_count=0,
        aggregation="median",
    )

    grid = bucketize([start + timedelta(hours=3)], [2.0], config)

    assert grid.timezone == "UTC"
    assert grid.bucket_count == 1
    assert grid.daily_interval_minutes == (0.0, 1440.0)
    assert grid.values() == [2.0]


def test_mismatched_lengths_are_truncated() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)
    timestamps = [start, start + timedelta(hours=7)]

    grid = bucketize(timestamps, [1.0], _config(start, start + timedelta(hours=23)))

    assert grid.values() == [1.0]


def test_empty_series_still_enumerates_days() -> None:
    start = datetime(2026, 1, 5, tzinfo=UTC)

    grid = bucketize([], [], _config(start, start + timedelta(days=2)))

    assert len(grid) == 0
    assert len(grid.days) == 3
    assert grid.to_frame().empty


@pytest.mark.parametrize(
    ("hours", "minutes"),
    [
        ((0, 0), (0.0, 1440.0)),
        ((6, 18), (360.0, 1080.0)),
        ((20, 4), (240.0, 1200.0)),
        ((-3, 30), (0.0, 1440.0)),
    ],
)
def test_daily_interval_from_hours(hours: tuple[float, float], minutes: tuple[float, float]) -> None:
    assert daily_interval_from_hours(*hours) == minutes
