"""
Unit tests for the color lexicon and query classification.
"""

import pytest

from huequery.services.colors.color_math import is_valid_hex
from huequery.services.colors.lexicon import (
    COLOR_LEXICON, analysis_variant, find_raw_color_name, is_single_raw_color_query,
    lookup, split_color_and_subject, tokenize
)


class TestLexiconTable:
    """Test lexicon invariants"""

    def test_entries_are_well_formed(self):
        for name, entry in COLOR_LEXICON.items():
            assert entry.name == name
            assert is_valid_hex(entry.hex) and entry.hex == entry.hex.upper()
            assert entry.ranges
            for low, high in entry.ranges:
                assert 0 <= low <= high <= 255

    def test_wraparound_is_two_ranges(self):
        assert COLOR_LEXICON["red"].ranges == ((0, 20), (235, 255))
        assert len(COLOR_LEXICON["maroon"].ranges) == 2

    def test_lookup_case_insensitive(self):
        assert lookup("Blue").hex == "#0000FF"
        assert lookup("chartreuse") is None
        assert lookup(None) is None


class TestTokenize:
    """Test query tokenization"""

    def test_splits_on_non_letters(self):
        assert tokenize("Ocean-Blue  2024!!sky") == ["ocean", "blue", "sky"]

    def test_empty(self):
        assert tokenize("  123 ") == []


class TestQueryClassification:
    """Test raw color detection"""

    def test_single_raw_color(self):
        assert is_single_raw_color_query("Red")
        assert is_single_raw_color_query("  blue! ")

    def test_multi_word_is_not_raw(self):
        assert not is_single_raw_color_query("Mint Green")
        assert not is_single_raw_color_query("ocean blue")

    def test_unknown_single_token(self):
        assert not is_single_raw_color_query("xyzzy")

    def test_find_first_color_name(self):
        assert find_raw_color_name("mint green") == "mint"
        assert find_raw_color_name("deep ocean blue") == "blue"
        assert find_raw_color_name("sunset") is None

    def test_split_color_and_subject(self):
        assert split_color_and_subject("Ocean Blue") == ("blue", "ocean")
        assert split_color_and_subject("iphone 15 gold") == ("gold", "iphone 15")
        assert split_color_and_subject("sunset") == ("", "sunset")


class TestAnalysisVariant:
    """Test the refine search nudge"""

    def test_refine_appends_nudge(self):
        assert analysis_variant("ocean blue", "refine") == "ocean blue 10 percent more blue"

    @pytest.mark.parametrize("mode", [None, ""])
    def test_plain_mode_keeps_query(self, mode):
        assert analysis_variant("ocean blue", mode) == "ocean blue"

    def test_refine_without_color_name(self):
        assert analysis_variant("sunset", "refine") == "sunset"
