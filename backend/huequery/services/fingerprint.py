"""
HueQuery Fingerprinting Utilities
Handles candidate cache key generation and the deterministic string-hash
colors used when image analysis yields nothing.
"""
from typing import List


def normalize_query(query: str) -> str:
    """Lowercase and trim a query for keying."""
    return query.lower().strip()


def generate_cache_key(query: str, analysis_query: str) -> str:
    """
    Generate composite candidate cache key.

    Both the base query and the analysis variant take part in the key so a
    refined search never shares pagination offsets with the plain one.

    Args:
        query: User-facing base query
        analysis_query: Search string sent to the image search provider

    Returns:
        Composite cache key "<query>||<analysis_query>"
    """
    return f"{normalize_query(query)}||{normalize_query(analysis_query)}"


def to_int32(value: int) -> int:
    """Wrap an integer to 32-bit signed two's complement."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_code_units(text: str) -> List[int]:
    data = text.encode("utf-16-le")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def compute_string_hash(text: str) -> int:
    """
    Compute the 32-bit signed string hash.

    hash = code_unit + ((hash << 5) - hash) over UTF-16 code units, with
    every intermediate wrapped to 32-bit signed.
    """
    hash_value = 0
    for unit in _utf16_code_units(text):
        hash_value = to_int32(unit + (to_int32(hash_value << 5) - hash_value))
    return hash_value


def hash_color(text: str) -> str:
    """
    Derive a reproducible #RRGGBB color from a string.

    The low byte of the hash is red, then green, then blue.
    """
    hash_value = compute_string_hash(text)
    channels = [(hash_value >> (i * 8)) & 0xFF for i in range(3)]
    return "#" + "".join(f"{channel:02X}" for channel in channels)


def generate_fallback_candidates(query: str, size: int = 15) -> List[str]:
    """Build the synthetic candidate list hash(query + index) for index < size."""
    return [hash_color(f"{query}{index}") for index in range(size)]
