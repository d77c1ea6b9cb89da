"""
Version gate for fetched content snapshots.

Content versions are opaque strings. When both sides parse as integers they
are compared numerically, otherwise by ordinal (code point) string order.
"""

from typing import Optional


def _as_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


def compare_versions(left: str, right: str) -> int:
    """
    Compare two content versions.

    Args:
        left: First version
        right: Second version

    Returns:
        Negative if left < right, zero if equal, positive if left > right
    """
    left_int = _as_int(left)
    right_int = _as_int(right)
    if left_int is not None and right_int is not None:
        return (left_int > right_int) - (left_int < right_int)
    return (left > right) - (left < right)


def is_newer(candidate: Optional[str], cached: Optional[str]) -> bool:
    """
    Decide whether a fetched version may replace the cached one.

    A candidate is accepted when nothing is cached yet, or when it is
    strictly greater than the cached version. Equal versions are rejected
    even if the bodies differ.
    """
    if not cached:
        return True
    if candidate is None:
        return False
    return compare_versions(candidate, cached) > 0
