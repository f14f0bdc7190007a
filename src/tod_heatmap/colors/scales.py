"""Value-to-color functions for every palette kind.

Each builder returns a total function: any float (NaN and infinities
included) maps to a `#rrggbb` string. Inputs a palette cannot place map to
the palette's null color.
"""

from __future__ import annotations

import bisect
import logging
import math
from typing import Callable, Iterable

from tod_heatmap.aggregation import is_present
from tod_heatmap.colors.palettes import palette_color, palette_colormap
from tod_heatmap.colors.spaces import (
    RGB,
    format_hex,
    interpolate_color,
    normalize_color,
    parse_color,
)
from tod_heatmap.config import (
    DEFAULT_NULL_COLOR,
    CustomPalette,
    DivergingPalette,
    ExternalPalette,
    PaletteConfig,
    SequentialPalette,
)

LOGGER = logging.getLogger(__name__)

ColorScale = Callable[[float], str]
Formatter = Callable[[float], str]


def _resolve_null_color(text: str) -> str:
    try:
        return normalize_color(text)
    except ValueError:
        LOGGER.warning("Invalid null color %r; using %s", text, DEFAULT_NULL_COLOR)
        return normalize_color(DEFAULT_NULL_COLOR)


def _valid_domain(domain: tuple[float, float] | None) -> tuple[float, float] | None:
    if domain is None:
        return None
    low, high = domain
    if not (is_present(low) and is_present(high)) or low >= high:
        LOGGER.warning("Degenerate color domain %r; every value maps to the null color", domain)
        return None
    return float(low), float(high)


def resolve_domain(palette: PaletteConfig, values: Iterable[float]) -> PaletteConfig:
    """Fill an unset domain from the finite min/max of `values`."""
    if palette.domain is not None:
        return palette
    finite = [float(value) for value in values if is_present(value)]
    if not finite:
        return palette
    return palette.model_copy(update={"domain": (min(finite), max(finite))})


def _constant(color: str) -> ColorScale:
    def scale(value: float) -> str:
        return color

    return scale


def _sequential_scale(palette: SequentialPalette, null_color: str) -> ColorScale:
    domain = _valid_domain(palette.domain)
    if domain is None:
        return _constant(null_color)
    low, high = domain
    colormap = palette_colormap(palette.name)
    invert = palette.invert

    def scale(value: float) -> str:
        if not is_present(value):
            return null_color
        t = min(max((float(value) - low) / (high - low), 0.0), 1.0)
        return format_hex(palette_color(colormap, 1.0 - t if invert else t))

    return scale


def _diverging_position(value: float, low: float, mid: float, high: float) -> float:
    value = min(max(value, low), high)
    if value < mid:
        return 0.5 * (value - low) / (mid - low)
    if value > mid:
        return 0.5 + 0.5 * (value - mid) / (high - mid)
    return 0.5


def _diverging_scale(palette: DivergingPalette, null_color: str) -> ColorScale:
    domain = _valid_domain(palette.domain)
    if domain is None:
        return _constant(null_color)
    low, high = domain
    mid = (low + high) / 2.0
    if palette.midpoint is not None and is_present(palette.midpoint):
        mid = min(max(float(palette.midpoint), low), high)
    colormap = palette_colormap(palette.name)
    invert = palette.invert

    def scale(value: float) -> str:
        if not is_present(value):
            return null_color
        t = _diverging_position(float(value), low, mid, high)
        return format_hex(palette_color(colormap, 1.0 - t if invert else t))

    return scale


def resolve_stops(palette: CustomPalette) -> list[tuple[float, RGB]]:
    """Absolute, ascending (position, color) stops for a custom palette.

    Percentage positions (0..100) resolve against the domain; without a usable
    domain there are no stops. Stops with a non-finite position or an
    unparseable color are skipped.
    """
    domain = None
    if palette.threshold_mode == "percentage":
        domain = _valid_domain(palette.domain)
        if domain is None:
            return []

    stops: list[tuple[float, RGB]] = []
    for stop in palette.thresholds:
        position = float(stop.position)
        if domain is not None:
            low, high = domain
            position = low + (position / 100.0) * (high - low)
        if not math.isfinite(position):
            LOGGER.debug("Skipping threshold with non-finite position %r", stop.position)
            continue
        try:
            color = parse_color(stop.color)
        except ValueError:
            LOGGER.warning("Skipping threshold with invalid color %r", stop.color)
            continue
        stops.append((position, color))
    # Stable sort keeps declaration order among equal positions.
    stops.sort(key=lambda item: item[0])
    return stops


def _custom_scale(palette: CustomPalette, null_color: str) -> ColorScale:
    stops = resolve_stops(palette)
    if not stops:
        return _constant(null_color)
    positions = [position for position, _color in stops]
    colors = [color for _position, color in stops]
    space = palette.color_space

    def scale(value: float) -> str:
        if not is_present(value):
            return null_color
        value = float(value)
        if value < positions[0] or value > positions[-1]:
            return null_color
        upper = bisect.bisect_right(positions, value)
        if upper >= len(positions):
            return format_hex(colors[-1])
        lower = upper - 1
        span = positions[upper] - positions[lower]
        t = (value - positions[lower]) / span if span > 0.0 else 1.0
        return format_hex(interpolate_color(space, colors[lower], colors[upper], t))

    return scale


def _external_scale(formatter: Formatter | None, null_color: str) -> ColorScale:
    if formatter is None:
        return _constant(null_color)

    def scale(value: float) -> str:
        try:
            return normalize_color(formatter(value))
        except Exception:
            LOGGER.debug("External formatter failed for %r", value, exc_info=True)
            return null_color

    return scale


def build_color_scale(palette: PaletteConfig, formatter: Formatter | None = None) -> ColorScale:
    """Build the value-to-color function shared by cells and legend.

    `formatter` backs the `external` kind: it receives the raw value and
    returns a color string in any format `parse_color` accepts.
    """
    null_color = _resolve_null_color(palette.null_color)
    if isinstance(palette, CustomPalette):
        return _custom_scale(palette, null_color)
    if isinstance(palette, DivergingPalette):
        return _diverging_scale(palette, null_color)
    if isinstance(palette, ExternalPalette):
        return _external_scale(formatter, null_color)
    if isinstance(palette, SequentialPalette):
        return _sequential_scale(palette, null_color)
    LOGGER.warning("Unsupported palette %r; every value maps to the null color", palette)
    return _constant(null_color)
