"""Checks applied to request values before they reach storage."""

from __future__ import annotations

from typing import Sequence

MAX_DIMENSION = 4096


def validate_filename(filename: str) -> bool:
    """A pixel book filename is non-empty and ends with ``.pxl``."""
    return bool(filename) and filename.endswith(".pxl")


def validate_dimensions(width: int, height: int) -> bool:
    """Both sides must lie in 1..=4096."""
    return 0 < width <= MAX_DIMENSION and 0 < height <= MAX_DIMENSION


def validate_color(color: Sequence[int]) -> bool:
    """Any four RGBA channels, each a byte value, make a valid colour."""
    if len(color) != 4:
        return False
    return all(
        isinstance(channel, int) and not isinstance(channel, bool) and 0 <= channel <= 0xFF
        for channel in color
    )