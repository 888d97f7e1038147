"""
HueQuery services: candidate analysis, caching and color selection.
"""
