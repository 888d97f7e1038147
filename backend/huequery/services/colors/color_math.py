"""
HueQuery Color Math

Pure helpers for hex normalization, hex <-> HSL conversion, weighted RGB
blending and hue shifting on the 0-255 hue scale used by the color lexicon.
"""

import colorsys
import math
import re
from typing import Optional, Sequence, Tuple

HUE_SCALE = 255.0

HueRange = Tuple[float, float]

_HEX_PATTERN = re.compile(r"^#?[0-9A-Fa-f]{6}$")


class InvalidColorError(ValueError):
    """Raised when a value cannot be normalized to #RRGGBB."""
    pass


def is_valid_hex(value) -> bool:
    """Check whether value is a bare or #-prefixed 6 digit hex color."""
    return isinstance(value, str) and bool(_HEX_PATTERN.match(value.strip()))


def normalize_hex(value) -> str:
    """
    Normalize a hex color to canonical uppercase #RRGGBB.

    Args:
        value: Color in format RRGGBB or #RRGGBB (any case, surrounding
            whitespace allowed)

    Returns:
        Hex color string in format #RRGGBB (uppercase)

    Raises:
        InvalidColorError: If value has any other shape
    """
    if not is_valid_hex(value):
        raise InvalidColorError(f"Invalid hex color format: {value!r}")
    return "#" + value.strip().lstrip("#").upper()


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves away from zero for positive values."""
    return int(math.floor(x + 0.5))


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color string to RGB tuple."""
    hex_clean = normalize_hex(hex_color)[1:]
    return tuple(int(hex_clean[i:i + 2], 16) for i in (0, 2, 4))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert 8-bit RGB channels to #RRGGBB, clamping out of range values."""
    r, g, b = [max(0, min(255, int(c))) for c in (r, g, b)]
    return f"#{r:02X}{g:02X}{b:02X}"


def to_hsl(hex_color: str) -> Tuple[float, float, float]:
    """
    Convert hex color to HSL.

    Returns:
        Tuple of (H, S, L) where H is on the 0-255 hue scale and
        S, L are in [0, 1]
    """
    r, g, b = [c / 255.0 for c in hex_to_rgb(hex_color)]
    h, l, s = colorsys.rgb_to_hls(r, g, b)
    return h * HUE_SCALE, s, l


def from_hsl(h: float, s: float, l: float) -> str:
    """
    Convert HSL color to hex format.

    Args:
        h: Hue on the 0-255 scale (values outside wrap around)
        s: Saturation [0, 1]
        l: Lightness [0, 1]
    """
    r, g, b = colorsys.hls_to_rgb((h / HUE_SCALE) % 1.0, l, s)
    return rgb_to_hex(round_half_up(r * 255), round_half_up(g * 255), round_half_up(b * 255))


def blend(color_a: str, color_b: str, weight_a: float) -> str:
    """
    Linearly interpolate two colors per channel.

    channel = round(channel_a * weight_a + channel_b * (1 - weight_a))
    """
    rgb_a = hex_to_rgb(color_a)
    rgb_b = hex_to_rgb(color_b)
    mixed = [
        round_half_up(a * weight_a + b * (1 - weight_a))
        for a, b in zip(rgb_a, rgb_b)
    ]
    return rgb_to_hex(*mixed)


def select_hue_range(hue: float, ranges: Sequence[HueRange]) -> HueRange:
    """Return the first range containing hue, else the first declared range."""
    for low, high in ranges:
        if low <= hue <= high:
            return low, high
    return ranges[0]


def fold_hue(hue: float, degree: float, ranges: Optional[Sequence[HueRange]] = None) -> float:
    """
    Shift a 0-255 hue value, keeping it inside the matching hue range.

    With ranges the overshoot is folded back off the range boundary instead
    of wrapping at 0/255. Without ranges the hue wraps on the full circle.
    """
    if not ranges:
        return (hue + degree) % HUE_SCALE

    low, high = select_hue_range(hue, ranges)
    shifted = hue + degree
    if high <= low:
        return low

    while shifted > high:
        shifted = low + (shifted - high)
    while shifted < low:
        shifted = high - (low - shifted)
    return shifted


def shift_hue(hex_color: str, degree: float, ranges: Optional[Sequence[HueRange]] = None) -> str:
    """
    Rotate the hue of a color, preserving saturation and lightness.

    Args:
        hex_color: Color in format #RRGGBB
        degree: Shift on the 0-255 hue scale (can be negative)
        ranges: Optional allowed hue ranges; a degree of 0 snaps the
            color into its range bucket

    Returns:
        Shifted hex color (uppercase)
    """
    h, s, l = to_hsl(hex_color)
    return from_hsl(fold_hue(h, degree, ranges), s, l)


def same_color(color_a: Optional[str], color_b: Optional[str]) -> bool:
    """Case-insensitive hex comparison; missing values never match."""
    if not color_a or not color_b:
        return False
    return color_a.strip().lstrip("#").upper() == color_b.strip().lstrip("#").upper()
