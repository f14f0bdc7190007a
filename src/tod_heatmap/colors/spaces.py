"""Color parsing, formatting and per-space interpolation.

Colors travel as sRGB triples on a 0..255 scale. Lab is CIE L*a*b* and HCL
its polar form, both converted by colorspacious (D65 white). HSL comes from
`colorsys`, and cubehelix uses Green's (2011) parametrization. Hue channels
are NaN for achromatic colors (whose saturation or chroma is 0) so
interpolation borrows the other end's hue.
"""

from __future__ import annotations

import colorsys
import math
import re
from typing import Literal

from colorspacious import cspace_convert
from matplotlib import colors as mcolors

ColorSpace = Literal["rgb", "hsl", "hcl", "lab", "cubehelix"]
COLOR_SPACES: tuple[str, ...] = ("rgb", "hsl", "hcl", "lab", "cubehelix")

RGB = tuple[float, float, float]

_FUNCTIONAL_RGB = re.compile(
    r"^rgba?\(\s*([-+]?\d*\.?\d+)\s*,\s*([-+]?\d*\.?\d+)\s*,\s*([-+]?\d*\.?\d+)\s*(?:,\s*[-+]?\d*\.?\d+\s*)?\)$",
    re.IGNORECASE,
)
_HEX = re.compile(r"^#(?:[0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)

# Cubehelix basis.
_A = -0.14861
_B = 1.78277
_C = -0.29227
_D = -0.90649
_E = 1.97294
_ED = _E * _D
_EB = _E * _B
_BC_DA = _B * _C - _D * _A

_DEG = 180.0 / math.pi
_RAD = math.pi / 180.0


def parse_color(text: str) -> RGB:
    """Parse hex, CSS color names, or `rgb()`/`rgba()` notation.

    Raises ValueError for anything else, including `none` and matplotlib's
    own shorthands (`C0`, grayscale strings such as `"0.5"`).
    """
    if not isinstance(text, str):
        raise ValueError(f"Color must be a string, got {type(text).__name__}")
    candidate = text.strip()
    match = _FUNCTIONAL_RGB.match(candidate)
    if match:
        return tuple(min(max(float(part), 0.0), 255.0) for part in match.groups())  # type: ignore[return-value]
    if not (_HEX.match(candidate) or candidate.lower() in mcolors.CSS4_COLORS):
        raise ValueError(f"Invalid color: {text!r}")
    red, green, blue = mcolors.to_rgb(candidate.lower())
    return red * 255.0, green * 255.0, blue * 255.0


def format_hex(rgb: RGB) -> str:
    channels = []
    for channel in rgb:
        value = 0.0 if math.isnan(channel) else channel
        channels.append(int(math.floor(min(max(value, 0.0), 255.0) + 0.5)))
    return "#{:02x}{:02x}{:02x}".format(*channels)


def normalize_color(text: str) -> str:
    return format_hex(parse_color(text))


# --- HSL -------------------------------------------------------------------


def rgb_to_hsl(rgb: RGB) -> tuple[float, float, float]:
    hue, lightness, saturation = colorsys.rgb_to_hls(*(channel / 255.0 for channel in rgb))
    if saturation == 0.0:
        return math.nan, 0.0, lightness
    return hue * 360.0, saturation, lightness


def hsl_to_rgb(hsl: tuple[float, float, float]) -> RGB:
    hue, saturation, lightness = hsl
    saturation = 0.0 if math.isnan(saturation) or math.isnan(hue) else saturation
    hue = 0.0 if math.isnan(hue) else hue % 360.0
    red, green, blue = colorsys.hls_to_rgb(hue / 360.0, lightness, saturation)
    return red * 255.0, green * 255.0, blue * 255.0


# --- Lab / HCL -------------------------------------------------------------


def _triple(values) -> tuple[float, float, float]:
    first, second, third = (float(value) for value in values)
    return first, second, third


def rgb_to_lab(rgb: RGB) -> tuple[float, float, float]:
    return _triple(cspace_convert(rgb, "sRGB255", "CIELab"))


def lab_to_rgb(lab: tuple[float, float, float]) -> RGB:
    lightness, a, b = lab
    a = 0.0 if math.isnan(a) else a
    b = 0.0 if math.isnan(b) else b
    return _triple(cspace_convert((lightness, a, b), "CIELab", "sRGB255"))


def rgb_to_hcl(rgb: RGB) -> tuple[float, float, float]:
    red, green, blue = rgb
    if red == green == blue:
        return math.nan, 0.0, rgb_to_lab(rgb)[0]
    lightness, chroma, hue = _triple(cspace_convert(rgb, "sRGB255", "CIELCh"))
    return hue % 360.0, chroma, lightness


def hcl_to_rgb(hcl: tuple[float, float, float]) -> RGB:
    hue, chroma, lightness = hcl
    if math.isnan(hue) or math.isnan(chroma):
        return lab_to_rgb((lightness, 0.0, 0.0))
    return _triple(cspace_convert((lightness, chroma, hue), "CIELCh", "sRGB255"))


# --- Cubehelix -------------------------------------------------------------


def rgb_to_cubehelix(rgb: RGB) -> tuple[float, float, float]:
    red, green, blue = (channel / 255.0 for channel in rgb)
    if red == green == blue:
        return math.nan, 0.0, red
    lightness = (_BC_DA * blue + _ED * red - _EB * green) / (_BC_DA + _ED - _EB)
    bl = blue - lightness
    k = (_E * (green - lightness) - _C * bl) / _D
    denominator = _E * lightness * (1.0 - lightness)
    if denominator == 0.0:
        return math.nan, 0.0, lightness
    saturation = math.sqrt(k * k + bl * bl) / denominator
    if saturation == 0.0:
        return math.nan, saturation, lightness
    hue = math.atan2(k, bl) * _DEG - 120.0
    return (hue + 360.0 if hue < 0.0 else hue), saturation, lightness


def cubehelix_to_rgb(helix: tuple[float, float, float]) -> RGB:
    hue, saturation, lightness = helix
    hue = 0.0 if math.isnan(hue) else (hue + 120.0) * _RAD
    amplitude = 0.0 if math.isnan(saturation) else saturation * lightness * (1.0 - lightness)
    cos_h = math.cos(hue)
    sin_h = math.sin(hue)
    return (
        255.0 * (lightness + amplitude * (_A * cos_h + _B * sin_h)),
        255.0 * (lightness + amplitude * (_C * cos_h + _D * sin_h)),
        255.0 * (lightness + amplitude * (_E * cos_h)),
    )


# --- Interpolation ---------------------------------------------------------


def _lerp(a: float, b: float, t: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a + (b - a) * t


def _lerp_hue(a: float, b: float, t: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    delta = b - a
    if delta > 180.0 or delta < -180.0:
        delta -= 360.0 * round(delta / 360.0)
    return a + delta * t


_CONVERTERS = {
    "hsl": (rgb_to_hsl, hsl_to_rgb),
    "hcl": (rgb_to_hcl, hcl_to_rgb),
    "cubehelix": (rgb_to_cubehelix, cubehelix_to_rgb),
}


def interpolate_color(space: str, start: RGB, end: RGB, t: float) -> RGB:
    """Interpolate two sRGB colors channel by channel inside `space`."""
    if space == "lab":
        lab_a = rgb_to_lab(start)
        lab_b = rgb_to_lab(end)
        return lab_to_rgb(tuple(_lerp(a, b, t) for a, b in zip(lab_a, lab_b)))  # type: ignore[arg-type]
    if space in _CONVERTERS:
        forward, backward = _CONVERTERS[space]
        hue_a, *rest_a = forward(start)
        hue_b, *rest_b = forward(end)
        mixed = [_lerp_hue(hue_a, hue_b, t)]
        mixed.extend(_lerp(a, b, t) for a, b in zip(rest_a, rest_b))
        return backward(tuple(mixed))  # type: ignore[arg-type]
    return tuple(_lerp(a, b, t) for a, b in zip(start, end))  # type: ignore[return-value]
