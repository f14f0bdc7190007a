from __future__ import annotations

import math
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib import colors as mcolors
from matplotlib.figure import Figure

from tod_heatmap.colors.scales import ColorScale
from tod_heatmap.models import BucketGrid
from tod_heatmap.viz.common import save_figure
from tod_heatmap.viz.layout import (
    LegendQuality,
    TextMeasure,
    TimeRegion,
    day_tick_interval,
    hour_tick_step,
    spectrum_stops,
    visible_regions,
)

DAY_LABEL_FORMAT = "%m/%d"
REFERENCE_DAY_LABEL = "01/01"
TICK_FONT_SIZE = 8.0
CELL_BORDER_COLOR = "#ffffff"


def matplotlib_text_measure(figure: Figure, fontsize: float = TICK_FONT_SIZE) -> TextMeasure:
    """Pixel width of a label as the figure's renderer would draw it."""
    renderer = figure.canvas.get_renderer()

    def measure(text: str) -> float:
        artist = figure.text(0.0, 0.0, text, fontsize=fontsize)
        width = artist.get_window_extent(renderer=renderer).width
        artist.remove()
        return float(width)

    return measure


def grid_to_rgba(grid: BucketGrid, color_scale: ColorScale) -> np.ndarray:
    """(bucket, day, RGBA) image; absent cells are fully transparent."""
    image = np.zeros((grid.bucket_count, len(grid.days), 4), dtype=float)
    day_index = {day: idx for idx, day in enumerate(grid.days)}
    for cell in grid.cells:
        column = day_index.get(cell.day_start)
        if column is None:
            continue
        image[cell.bucket_index, column, :3] = mcolors.to_rgb(color_scale(cell.value))
        image[cell.bucket_index, column, 3] = 1.0
    return image


def _format_minutes(minutes: float) -> str:
    hours, remainder = divmod(int(round(minutes)), 60)
    return f"{hours:02d}:{remainder:02d}"


def _draw_cells(
    axis: plt.Axes,
    grid: BucketGrid,
    color_scale: ColorScale,
    cell_border: bool,
) -> None:
    start, end = grid.daily_interval_minutes
    num_days = len(grid.days)
    axis.imshow(
        grid_to_rgba(grid, color_scale),
        aspect="auto",
        interpolation="nearest",
        extent=(0, num_days, end, start),
    )
    if cell_border:
        bucket_edges = np.linspace(start, end, grid.bucket_count + 1)
        axis.hlines(bucket_edges, 0, num_days, colors=CELL_BORDER_COLOR, linewidth=0.8)
        axis.vlines(np.arange(num_days + 1), start, end, colors=CELL_BORDER_COLOR, linewidth=0.8)


def _draw_regions(axis: plt.Axes, grid: BucketGrid, regions: list[TimeRegion]) -> None:
    num_days = len(grid.days)
    for region_start, region_end, color in visible_regions(regions, grid.daily_interval_minutes):
        rgba = mcolors.to_rgba(color) if not color.startswith("rgb") else _css_rgba(color)
        axis.fill_between(
            [0, num_days],
            region_start,
            region_end,
            color=rgba,
            linewidth=0,
            zorder=3,
        )


def _css_rgba(color: str) -> tuple[float, float, float, float]:
    parts = color[color.index("(") + 1 : color.rindex(")")].split(",")
    red, green, blue = (float(part) / 255.0 for part in parts[:3])
    alpha = float(parts[3]) if len(parts) > 3 else 1.0
    return red, green, blue, alpha


def _set_axis_ticks(axis: plt.Axes, figure: Figure, grid: BucketGrid) -> None:
    start, end = grid.daily_interval_minutes
    height_px = axis.get_window_extent().height
    width_px = axis.get_window_extent().width

    hour_step = hour_tick_step(height_px) * 60
    first_tick = math.ceil(start / 60.0) * 60
    y_ticks = np.arange(first_tick, end + 1, hour_step)
    axis.set_yticks(y_ticks, [_format_minutes(minutes) for minutes in y_ticks])

    num_days = len(grid.days)
    every = day_tick_interval(
        width_px,
        num_days,
        REFERENCE_DAY_LABEL,
        matplotlib_text_measure(figure),
    )
    x_ticks = np.arange(0, num_days, every)
    axis.set_xticks(
        x_ticks + 0.5,
        [grid.days[idx].strftime(DAY_LABEL_FORMAT) for idx in x_ticks],
    )
    axis.tick_params(labelsize=TICK_FONT_SIZE)


def _draw_legend(
    axis: plt.Axes,
    color_scale: ColorScale,
    domain: tuple[float, float],
    quality: LegendQuality,
) -> None:
    low, high = domain
    width_px = max(1, int(axis.get_window_extent().width))
    stops = spectrum_stops(color_scale, domain, width_px, quality)
    strip = np.array([[mcolors.to_rgb(color) for _offset, color in stops]])
    axis.imshow(strip, aspect="auto", interpolation="nearest", extent=(low, high, 0, 1))
    axis.set_yticks([])
    axis.tick_params(labelsize=TICK_FONT_SIZE)


def plot_time_of_day_heatmap(
    grid: BucketGrid,
    color_scale: ColorScale,
    output_path: Path,
    domain: tuple[float, float] | None = None,
    title: str | None = None,
    show_legend: bool = True,
    legend_quality: LegendQuality = "high",
    cell_border: bool = False,
    regions: list[TimeRegion] | None = None,
    figsize: tuple[float, float] = (12.0, 5.0),
) -> Path | None:
    """Days along x, time of day along y (top to bottom), one cell per bucket."""
    if not grid.days:
        return None

    with_legend = show_legend and domain is not None and domain[0] < domain[1]
    if with_legend:
        figure, (axis, legend_axis) = plt.subplots(
            2,
            1,
            figsize=figsize,
            gridspec_kw={"height_ratios": [12, 1]},
        )
    else:
        figure, axis = plt.subplots(figsize=figsize)
        legend_axis = None
    figure.canvas.draw()

    _draw_cells(axis, grid, color_scale, cell_border)
    _draw_regions(axis, grid, regions or [])
    _set_axis_ticks(axis, figure, grid)
    axis.set_xlabel("Day")
    axis.set_ylabel(f"Time of day ({grid.timezone})")
    if title:
        axis.set_title(title)
    if legend_axis is not None and domain is not None:
        _draw_legend(legend_axis, color_scale, domain, legend_quality)
    return save_figure(output_path, figure)
