"""
Unit tests for color math helpers.

Covers hex normalization, HSL round trips, blending and range-constrained
hue shifting.
"""

import pytest

from huequery.services.colors.color_math import (
    InvalidColorError, blend, fold_hue, from_hsl, hex_to_rgb, is_valid_hex,
    normalize_hex, same_color, select_hue_range, shift_hue, to_hsl
)
from huequery.services.colors.lexicon import COLOR_LEXICON

SAMPLE_COLORS = ["#1E90FF", "#4682B4", "#FF7F50", "#2D7560", "#D3B58F", "#0A2A43", "#C81E1E"]


def hue_distance(a: float, b: float) -> float:
    diff = abs(a - b) % 255
    return min(diff, 255 - diff)


class TestNormalizeHex:
    """Test hex validation and canonical form"""

    def test_bare_and_prefixed(self):
        assert normalize_hex("1e90ff") == "#1E90FF"
        assert normalize_hex("#1e90ff") == "#1E90FF"
        assert normalize_hex("  #AbCdEf ") == "#ABCDEF"

    @pytest.mark.parametrize("value", ["#FFF", "1234567", "#GG0000", "", None, 123, "##123456"])
    def test_rejects_other_shapes(self, value):
        assert not is_valid_hex(value)
        with pytest.raises(InvalidColorError):
            normalize_hex(value)

    def test_invalid_color_error_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_hex("blue")

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#1E90FF") == (30, 144, 255)

    def test_same_color_case_insensitive(self):
        assert same_color("#1e90ff", "#1E90FF")
        assert same_color("1E90FF", "#1e90ff")
        assert not same_color(None, "#1E90FF")
        assert not same_color("#1E90FF", "#1E90FE")


class TestHsl:
    """Test HSL conversion on the 0-255 hue scale"""

    def test_primary_hues(self):
        assert to_hsl("#FF0000")[0] == pytest.approx(0.0)
        assert to_hsl("#00FF00")[0] == pytest.approx(85.0)
        assert to_hsl("#0000FF")[0] == pytest.approx(170.0)

    def test_saturation_lightness(self):
        h, s, l = to_hsl("#808080")
        assert s == 0.0
        assert l == pytest.approx(128 / 255)

    @pytest.mark.parametrize("color", SAMPLE_COLORS)
    def test_round_trip(self, color):
        assert from_hsl(*to_hsl(color)) == color


class TestBlend:
    """Test weighted RGB blending"""

    @pytest.mark.parametrize("a,b", [("#1E90FF", "#4682B4"), ("#000000", "#FFFFFF"), ("#FF7F50", "#0A2A43")])
    def test_weight_extremes(self, a, b):
        assert blend(a, b, 1.0) == a
        assert blend(a, b, 0.0) == b

    def test_blend_value(self):
        # r: 30*0.2=6, g: 144*0.2=28.8, b: 255
        assert blend("#0000FF", "#1E90FF", 0.8) == "#061DFF"

    def test_halves_round_up(self):
        assert blend("#000000", "#010101", 0.5) == "#010101"


class TestShiftHue:
    """Test hue shifting with and without range constraints"""

    @pytest.mark.parametrize("color", SAMPLE_COLORS)
    @pytest.mark.parametrize("degree", [1, 30, 100, -45, 200])
    def test_unconstrained_shift_is_invertible(self, color, degree):
        back = shift_hue(shift_hue(color, degree), -degree)
        original_rgb = hex_to_rgb(color)
        for got, expected in zip(hex_to_rgb(back), original_rgb):
            assert abs(got - expected) <= 2

    def test_unconstrained_wraps_circle(self):
        assert fold_hue(250, 10) == pytest.approx(5)
        assert fold_hue(5, -10) == pytest.approx(250)

    def test_preserves_saturation_and_lightness(self):
        h, s, l = to_hsl("#1E90FF")
        h2, s2, l2 = to_hsl(shift_hue("#1E90FF", 40))
        assert s2 == pytest.approx(s, abs=0.01)
        assert l2 == pytest.approx(l, abs=0.01)
        assert hue_distance(h2, h + 40) < 1.5

    def test_first_containing_range_wins(self):
        ranges = ((0, 20), (235, 255))
        assert select_hue_range(240, ranges) == (235, 255)
        assert select_hue_range(10, ranges) == (0, 20)

    def test_outside_all_ranges_snaps_to_first(self):
        assert select_hue_range(100, ((150, 190), (10, 20))) == (150, 190)

    def test_fold_overshoot(self):
        # 185 + 10 = 195 -> 150 + 5
        assert fold_hue(185, 10, ((150, 190),)) == pytest.approx(155)
        # 155 - 10 = 145 -> 190 - 5
        assert fold_hue(155, -10, ((150, 190),)) == pytest.approx(185)

    def test_zero_width_range_pins_hue(self):
        assert fold_hue(100, 37, ((42, 42),)) == 42

    @pytest.mark.parametrize("name", sorted(COLOR_LEXICON))
    @pytest.mark.parametrize("hue", [0, 13.5, 42, 99.9, 170, 212, 254.9])
    @pytest.mark.parametrize("degree", [0, 7, 30, -30, 300, -1000, 4321])
    def test_constrained_hue_stays_in_selected_range(self, name, hue, degree):
        ranges = COLOR_LEXICON[name].ranges
        low, high = select_hue_range(hue, ranges)
        folded = fold_hue(hue, degree, ranges)
        assert low <= folded <= high

    @pytest.mark.parametrize("color", SAMPLE_COLORS)
    def test_zero_shift_snaps_into_blue(self, color):
        ranges = COLOR_LEXICON["blue"].ranges
        h, _, _ = to_hsl(shift_hue(color, 0, ranges))
        # 8-bit rounding can move the hue slightly past the bound
        assert 150 - 1.5 <= h <= 190 + 1.5

    def test_color_inside_range_unchanged_by_zero_shift(self):
        assert shift_hue("#061DFF", 0, COLOR_LEXICON["blue"].ranges) == "#061DFF"
