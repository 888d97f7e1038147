"""
HueQuery Color Lexicon

Static table of common color names with their canonical hex value and the
hue ranges (0-255 scale) refinements of that name must stay within, plus the
query classification helpers built on it.

Approximate hue anchors: red 0/255, yellow 42, green 85, cyan 127,
blue 170, magenta 213.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .color_math import HueRange


@dataclass(frozen=True)
class ColorName:
    """A lexicon entry with its exact color and allowed hue buckets."""
    name: str
    hex: str
    ranges: Tuple[HueRange, ...]


# Achromatic names own the whole hue circle
COLOR_LEXICON: Dict[str, ColorName] = {
    entry.name: entry for entry in [
        ColorName("red", "#FF0000", ((0, 20), (235, 255))),
        ColorName("green", "#008000", ((60, 110),)),
        ColorName("blue", "#0000FF", ((150, 190),)),
        ColorName("yellow", "#FFFF00", ((30, 55),)),
        ColorName("cyan", "#00FFFF", ((110, 145),)),
        ColorName("magenta", "#FF00FF", ((195, 230),)),
        ColorName("white", "#FFFFFF", ((0, 255),)),
        ColorName("black", "#000000", ((0, 255),)),
        ColorName("gray", "#808080", ((0, 255),)),
        ColorName("grey", "#808080", ((0, 255),)),
        ColorName("orange", "#FFA500", ((20, 45),)),
        ColorName("purple", "#800080", ((180, 220),)),
        ColorName("pink", "#FFC0CB", ((220, 250),)),
        ColorName("brown", "#A52A2A", ((0, 30),)),
        ColorName("lime", "#00FF00", ((70, 95),)),
        ColorName("navy", "#000080", ((150, 180),)),
        ColorName("teal", "#008080", ((110, 140),)),
        ColorName("maroon", "#800000", ((240, 255), (0, 10))),
        ColorName("olive", "#808000", ((40, 70),)),
        ColorName("silver", "#C0C0C0", ((0, 255),)),
        ColorName("gold", "#FFD700", ((30, 50),)),
        ColorName("violet", "#EE82EE", ((190, 230),)),
        ColorName("indigo", "#4B0082", ((180, 200),)),
        ColorName("turquoise", "#40E0D0", ((110, 140),)),
        ColorName("beige", "#F5F5DC", ((25, 45),)),
        ColorName("mint", "#98FF98", ((90, 120),)),
        ColorName("lavender", "#E6E6FA", ((170, 200),)),
        ColorName("coral", "#FF7F50", ((10, 30),)),
    ]
}

REFINE_NUDGE = "10 percent more"

_NON_LETTERS = re.compile(r"[^a-z]+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def tokenize(query: str) -> List[str]:
    """Lowercase and split on runs of non-letters, dropping empties."""
    return [token for token in _NON_LETTERS.split(query.lower()) if token]


def lookup(name: Optional[str]) -> Optional[ColorName]:
    """Get the lexicon entry for a color name."""
    if not name:
        return None
    return COLOR_LEXICON.get(name.lower())


def find_raw_color_name(query: str) -> Optional[str]:
    """Return the first lexicon color name found anywhere in the query."""
    for token in tokenize(query):
        if token in COLOR_LEXICON:
            return token
    return None


def is_single_raw_color_query(query: str) -> bool:
    """True iff the query is exactly one token and that token is a color name."""
    tokens = tokenize(query)
    return len(tokens) == 1 and tokens[0] in COLOR_LEXICON


def split_color_and_subject(query: str) -> Tuple[str, str]:
    """
    Split a query into its color word and the thing being colored.

    "ocean blue 2" -> ("blue", "ocean 2"). Digits are kept so model numbers
    survive in the subject.
    """
    tokens = [token for token in _NON_ALNUM.split(query.lower()) if token]
    colors = [token for token in tokens if token in COLOR_LEXICON]
    color = colors[0] if colors else ""
    subject = " ".join(token for token in tokens if token != color).strip()
    return color, subject


def analysis_variant(query: str, mode: Optional[str]) -> str:
    """
    Build the search string actually sent to the image search provider.

    Refinement nudges the search toward the query's color name.
    """
    color_name = find_raw_color_name(query)
    if mode == "refine" and color_name:
        return f"{query} {REFINE_NUDGE} {color_name}"
    return query
