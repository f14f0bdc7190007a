from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import numpy as np
import pandas as pd

from tod_heatmap.aggregation import aggregate_groups, resolve_aggregation
from tod_heatmap.models import BucketCell, BucketConfig, BucketGrid, TimeRange

LOGGER = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
FALLBACK_TIMEZONE = "UTC"


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(str(name or "").strip() or FALLBACK_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("Unknown timezone %r; using %s", name, FALLBACK_TIMEZONE)
        return ZoneInfo(FALLBACK_TIMEZONE)


def daily_interval_from_hours(start_hour: float, end_hour: float) -> tuple[float, float]:
    """Convert a [from, to] hour selection into wall-clock minutes.

    An end hour of 0 selects the end of the day, so (0, 0) is the whole day.
    """
    start = min(max(float(start_hour), 0.0), 24.0)
    end = min(max(float(end_hour), 0.0), 24.0)
    if end == 0.0:
        end = 24.0
    if start > end:
        start, end = end, start
    return start * 60.0, end * 60.0


def _clamp_daily_interval(interval: Sequence[float]) -> tuple[float, float]:
    try:
        start, end = (float(value) for value in interval)
    except (TypeError, ValueError):
        LOGGER.warning("Malformed daily interval %r; using the whole day", interval)
        return 0.0, float(MINUTES_PER_DAY)
    if not (math.isfinite(start) and math.isfinite(end)):
        return 0.0, float(MINUTES_PER_DAY)
    start = min(max(start, 0.0), float(MINUTES_PER_DAY))
    end = min(max(end, 0.0), float(MINUTES_PER_DAY))
    if start > end:
        LOGGER.warning("Daily interval start %s is after end %s; swapping", start, end)
        start, end = end, start
    return start, end


def _clamp_bucket_count(bucket_count: Any) -> int:
    try:
        count = int(bucket_count)
    except (TypeError, ValueError):
        count = 1
    if count < 1:
        LOGGER.warning("bucket_count=%r is below 1; using 1", bucket_count)
        return 1
    return count


def _to_utc(timestamps: Sequence[Any] | pd.Series | pd.Index) -> pd.Series:
    series = pd.Series(timestamps)
    if series.empty:
        return pd.Series(pd.DatetimeIndex([], tz="UTC"))
    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        # Numeric time fields are epoch milliseconds.
        return pd.to_datetime(series, unit="ms", utc=True, errors="coerce")
    return pd.to_datetime(series, utc=True, errors="coerce", format="mixed")


def _sample_frame(
    timestamps: Sequence[Any] | pd.Series | pd.Index,
    values: Sequence[float | None] | pd.Series | np.ndarray,
) -> pd.DataFrame:
    time_series = pd.Series(timestamps).reset_index(drop=True)
    value_series = pd.Series(values, dtype=object).reset_index(drop=True)
    if len(time_series) != len(value_series):
        LOGGER.warning(
            "Timestamps (%d) and values (%d) differ in length; truncating",
            len(time_series),
            len(value_series),
        )
    size = min(len(time_series), len(value_series))
    frame = pd.DataFrame(
        {
            "timestamp": _to_utc(time_series.iloc[:size]),
            "value": pd.to_numeric(value_series.iloc[:size], errors="coerce").astype(float),
        }
    )
    dropped = frame["timestamp"].isna() | ~np.isfinite(frame["value"].to_numpy(dtype=float))
    if dropped.any():
        LOGGER.debug("Dropping %d samples with missing time or value", int(dropped.sum()))
    return frame.loc[~dropped]


def localize_wall_times(wall_times: pd.DatetimeIndex, zone: ZoneInfo) -> pd.DatetimeIndex:
    """Attach `zone` to naive wall-clock times.

    Non-existent wall times (spring forward) move to the transition instant and
    ambiguous ones (fall back) take their first occurrence, which keeps an
    increasing sequence of wall times non-decreasing as instants.
    """
    return wall_times.tz_localize(
        zone,
        nonexistent="shift_forward",
        ambiguous=np.ones(len(wall_times), dtype=bool),
    )


def enumerate_days(time_range: TimeRange, zone: ZoneInfo) -> list[pd.Timestamp]:
    """Local midnights of every calendar day touched by `time_range`."""
    ordered = time_range.ordered()
    first = ordered.start.tz_convert(zone).tz_localize(None).floor("D")
    last = ordered.end.tz_convert(zone).tz_localize(None).floor("D")
    wall_midnights = pd.date_range(start=first, end=last, freq="D")
    return list(localize_wall_times(wall_midnights, zone))


def _wall_day(day_start: datetime, zone: ZoneInfo) -> pd.Timestamp:
    stamp = pd.Timestamp(day_start)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert(zone).tz_localize(None)
    return stamp.floor("D")


def bucket_boundaries(day_start: datetime, config: BucketConfig) -> list[pd.Timestamp]:
    """Instants delimiting each bucket of one day, `bucket_count + 1` entries.

    Offsets are taken in wall-clock minutes, so a DST day keeps the same
    nominal window while its buckets stretch or shrink in elapsed time.
    """
    zone = resolve_timezone(config.timezone)
    start, end = _clamp_daily_interval(config.daily_interval_minutes)
    count = _clamp_bucket_count(config.bucket_count)
    width = (end - start) / count
    offsets = [start + idx * width for idx in range(count)] + [end]
    wall_day = _wall_day(day_start, zone)
    wall_times = pd.DatetimeIndex(
        [wall_day + pd.Timedelta(minutes=offset) for offset in offsets]
    )
    return list(localize_wall_times(wall_times, zone))


def bucket_index(minutes: np.ndarray, start: float, width: float, count: int) -> np.ndarray:
    """Bucket for wall-clock minute offsets already inside [start, end].

    Buckets are [lo, hi) except the last one, which also owns the window end.
    """
    if width <= 0.0:
        return np.zeros(len(minutes), dtype=int)
    raw = np.floor((np.asarray(minutes, dtype=float) - start) / width)
    return np.clip(raw, 0, count - 1).astype(int)


def bucketize(
    timestamps: Sequence[Any] | pd.Series | pd.Index,
    values: Sequence[float | None] | pd.Series | np.ndarray,
    config: BucketConfig,
) -> BucketGrid:
    """Fold a time series into a sparse (day, bucket) grid.

    Every argument problem is absorbed: unknown zones fall back to UTC,
    bucket counts below one become one, unparseable timestamps and missing
    values are dropped. Only (day, bucket) pairs with at least one present
    sample produce a cell.
    """
    zone = resolve_timezone(config.timezone)
    start, end = _clamp_daily_interval(config.daily_interval_minutes)
    count = _clamp_bucket_count(config.bucket_count)
    aggregation = resolve_aggregation(config.aggregation)
    width = (end - start) / count
    time_range = config.time_range.ordered()
    resolved = BucketConfig(
        timezone=zone.key,
        daily_interval_minutes=(start, end),
        bucket_count=count,
        aggregation=aggregation,
        time_range=time_range,
    )

    days = enumerate_days(time_range, zone)
    empty_grid = BucketGrid(
        cells=(),
        days=tuple(days),
        bucket_count=count,
        daily_interval_minutes=(start, end),
        timezone=zone.key,
    )

    frame = _sample_frame(timestamps, values)
    if frame.empty:
        return empty_grid
    frame = frame.loc[frame["timestamp"].between(time_range.start, time_range.end)]
    if frame.empty:
        return empty_grid

    wall = frame["timestamp"].dt.tz_convert(zone).dt.tz_localize(None)
    wall_day = wall.dt.floor("D")
    minutes = (wall - wall_day).dt.total_seconds() / 60.0
    in_window = (minutes >= start) & (minutes <= end)
    frame = frame.assign(wall_day=wall_day, minutes=minutes).loc[in_window]
    if frame.empty:
        return empty_grid

    frame = frame.assign(
        bucket_index=bucket_index(frame["minutes"].to_numpy(), start, width, count)
    )
    reduced = aggregate_groups(frame, keys=["wall_day", "bucket_index"], kind=aggregation)
    LOGGER.debug("Bucketized %d samples into %d cells", len(frame), len(reduced))

    day_lookup = {_wall_day(day, zone): day for day in days}
    boundaries: dict[pd.Timestamp, list[pd.Timestamp]] = {}
    cells: list[BucketCell] = []
    for (day, idx), value in reduced.items():
        day_start = day_lookup.get(day)
        if day_start is None:
            continue
        if day not in boundaries:
            boundaries[day] = bucket_boundaries(day_start, resolved)
        cells.append(
            BucketCell(
                day_start=day_start,
                bucket_start=boundaries[day][int(idx)],
                bucket_index=int(idx),
                value=float(value),
            )
        )

    return BucketGrid(
        cells=tuple(cells),
        days=tuple(days),
        bucket_count=count,
        daily_interval_minutes=(start, end),
        timezone=zone.key,
    )
