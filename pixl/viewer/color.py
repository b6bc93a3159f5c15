"""Packing colours into the 0x00RRGGBB form the display buffer uses."""

from __future__ import annotations

from pixl.viewer.models import Pixel


def pixel_to_color(pixel: Pixel) -> int:
    """Pack a pixel's RGB channels; alpha is dropped."""
    return (pixel.r << 16) | (pixel.g << 8) | pixel.b


def rgba_to_color(r: int, g: int, b: int, a: int) -> int:
    """Pack RGB channels; alpha is ignored."""
    return (r << 16) | (g << 8) | b