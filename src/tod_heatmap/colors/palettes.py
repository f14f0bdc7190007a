from __future__ import annotations

import logging
import math

import matplotlib
from matplotlib.colors import Colormap

from tod_heatmap.colors.spaces import RGB

LOGGER = logging.getLogger(__name__)

DEFAULT_PALETTE = "Spectral"

DIVERGING_PALETTES = ("Spectral", "RdYlGn")
SINGLE_HUE_PALETTES = ("Blues", "Greens", "Greys", "Oranges", "Purples", "Reds")
MULTI_HUE_PALETTES = (
    "BuGn",
    "BuPu",
    "GnBu",
    "OrRd",
    "PuBuGn",
    "PuBu",
    "PuRd",
    "RdPu",
    "YlGnBu",
    "YlGn",
    "YlOrBr",
    "YlOrRd",
)
PREDEFINED_PALETTES: tuple[str, ...] = (
    DIVERGING_PALETTES + SINGLE_HUE_PALETTES + MULTI_HUE_PALETTES
)

_INTERPOLATE_PREFIX = "interpolate"


def resolve_palette_name(name: str | None) -> str:
    """Match a catalog name, case-insensitively and with or without `interpolate`."""
    candidate = str(name or "").strip()
    if candidate.startswith(_INTERPOLATE_PREFIX):
        candidate = candidate[len(_INTERPOLATE_PREFIX):]
    for known in PREDEFINED_PALETTES:
        if known.lower() == candidate.lower():
            return known
    LOGGER.warning("Unknown palette %r; using %s", name, DEFAULT_PALETTE)
    return DEFAULT_PALETTE


def palette_catalog() -> dict[str, tuple[str, ...]]:
    return {
        "diverging": DIVERGING_PALETTES,
        "sequential (single hue)": SINGLE_HUE_PALETTES,
        "sequential (multi-hue)": MULTI_HUE_PALETTES,
    }


def palette_colormap(name: str | None) -> Colormap:
    return matplotlib.colormaps[resolve_palette_name(name)]


def palette_color(name: str | Colormap, t: float) -> RGB:
    """Color at position `t` of a catalog palette, `t` clamped to [0, 1]."""
    colormap = name if isinstance(name, Colormap) else palette_colormap(name)
    position = 0.0 if math.isnan(t) else min(max(float(t), 0.0), 1.0)
    red, green, blue, _alpha = colormap(position)
    return red * 255.0, green * 255.0, blue * 255.0
