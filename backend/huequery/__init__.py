"""
HueQuery - query-to-color selection service.
"""

__version__ = "1.0.0"
