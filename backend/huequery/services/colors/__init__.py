"""
HueQuery Colors Module

Provides color math, the color-name lexicon and image color classifiers
used to derive candidate colors for a query.
"""

__version__ = "1.0.0"
