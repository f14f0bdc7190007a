from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import time
from typing import Callable, Literal

import pandas as pd

from tod_heatmap.colors.scales import ColorScale
from tod_heatmap.models import BucketCell

LegendQuality = Literal["high", "medium", "low"]
TextMeasure = Callable[[str], float]

PREFERRED_HOUR_TICK_HEIGHT = 20.0
DAY_TICK_PADDING = 1.1


@dataclass(frozen=True)
class TimeRegion:
    start: time
    end: time
    color: str

    @property
    def start_minute(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minute(self) -> int:
        # 00:00 closes the region at the end of the day.
        minute = self.end.hour * 60 + self.end.minute
        return minute or 24 * 60


def spectrum_step(width: float, quality: LegendQuality) -> int:
    if quality == "medium":
        return max(1, math.ceil(width / 40.0))
    if quality == "low":
        return max(1, math.ceil(width / 20.0))
    return 1


def spectrum_stops(
    color_scale: ColorScale,
    domain: tuple[float, float],
    width: float,
    quality: LegendQuality = "high",
) -> list[tuple[float, str]]:
    """Sample `color_scale` across a legend `width` pixels wide.

    Returns (offset in [0, 1), color) pairs, one per segment.
    """
    if width <= 0:
        return []
    low, high = domain
    step = spectrum_step(width, quality)
    stops = []
    for position in range(0, math.ceil(width), step):
        offset = position / width
        stops.append((offset, color_scale(low + offset * (high - low))))
    return stops


def day_tick_interval(
    width: float,
    num_days: int,
    reference_label: str,
    measure_text: TextMeasure,
) -> int:
    """Days between x-axis labels so that labels of `reference_label` fit."""
    preferred = measure_text(reference_label) * DAY_TICK_PADDING
    if width <= 0 or preferred <= 0:
        return 1
    return max(math.ceil(num_days / (width / preferred)), 1)


def hour_tick_step(height: float) -> int:
    if height <= 0:
        return 24
    return max(round(PREFERRED_HOUR_TICK_HEIGHT / height * 24), 1)


def visible_regions(
    regions: list[TimeRegion],
    daily_interval_minutes: tuple[float, float],
) -> list[tuple[float, float, str]]:
    """Regions clipped to the daily window as (start, end, color) minutes.

    A region whose start lies outside the window is hidden.
    """
    start, end = daily_interval_minutes
    visible = []
    for region in regions:
        region_start = float(region.start_minute)
        if not start <= region_start < end:
            continue
        region_end = min(float(region.end_minute), end)
        if region_end <= region_start:
            continue
        visible.append((region_start, region_end, region.color))
    return visible


def hover_payload(cell: BucketCell, bucket_minutes: float) -> tuple[pd.Timestamp, float]:
    """Instant at the middle of a cell's bucket, paired with its value."""
    midpoint = pd.Timestamp(cell.bucket_start) + pd.Timedelta(minutes=bucket_minutes / 2.0)
    return midpoint, cell.value
