from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd

from tod_heatmap.bucketize import bucketize
from tod_heatmap.colors.scales import ColorScale, Formatter, build_color_scale, resolve_domain
from tod_heatmap.config import AppConfig, PaletteConfig
from tod_heatmap.io.read import load_series
from tod_heatmap.models import BucketGrid, TimeRange
from tod_heatmap.viz.heatmap import plot_time_of_day_heatmap
from tod_heatmap.viz.layout import TimeRegion

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatmapResult:
    grid: BucketGrid
    palette: PaletteConfig
    color_scale: ColorScale

    def to_frame(self) -> pd.DataFrame:
        frame = self.grid.to_frame()
        frame["color"] = [self.color_scale(value) for value in frame["value"]]
        return frame


def series_time_range(
    series: pd.DataFrame,
    start: datetime | None = None,
    end: datetime | None = None,
) -> TimeRange | None:
    """Requested range, with open ends filled from the series extent."""
    timestamps = series["timestamp"].dropna()
    if start is None:
        if timestamps.empty:
            return None
        start = timestamps.min().to_pydatetime()
    if end is None:
        if timestamps.empty:
            return None
        end = timestamps.max().to_pydatetime()
    return TimeRange(start=start, end=end).ordered()


def build_heatmap(
    series: pd.DataFrame,
    config: AppConfig,
    time_range: TimeRange,
    formatter: Formatter | None = None,
) -> HeatmapResult:
    grid = bucketize(
        series["timestamp"],
        series["value"],
        config.grid.to_bucket_config(time_range),
    )
    palette = resolve_domain(config.palette, grid.values())
    return HeatmapResult(
        grid=grid,
        palette=palette,
        color_scale=build_color_scale(palette, formatter=formatter),
    )


def load_heatmap(
    csv_path: Path,
    config: AppConfig,
    start: datetime | None = None,
    end: datetime | None = None,
) -> HeatmapResult:
    series = load_series(
        csv_path,
        time_column=config.input.time_column,
        value_column=config.input.value_column,
        timezone=config.grid.timezone,
    )
    time_range = series_time_range(series, start=start, end=end)
    if time_range is None:
        raise ValueError(f"No valid timestamps found in {csv_path}")
    LOGGER.info(
        "Bucketizing %d samples from %s to %s",
        len(series),
        time_range.start.isoformat(),
        time_range.end.isoformat(),
    )
    return build_heatmap(series, config, time_range)


def render_heatmap(result: HeatmapResult, config: AppConfig, output_path: Path) -> Path | None:
    regions = [
        TimeRegion(start=region.start, end=region.end, color=region.color)
        for region in config.render.regions
    ]
    return plot_time_of_day_heatmap(
        result.grid,
        result.color_scale,
        output_path,
        domain=result.palette.domain,
        show_legend=config.render.show_legend,
        legend_quality=config.render.legend_quality,
        cell_border=config.render.cell_border,
        regions=regions,
        figsize=(config.render.figure_width, config.render.figure_height),
    )
