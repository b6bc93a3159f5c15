"""Drawing pixel book frames into a scaled, centred display buffer."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass

from pixl.viewer.models import Frame, Pixel

_F32 = struct.Struct("<f")


def _f32(value: float) -> float:
    return _F32.unpack(_F32.pack(value))[0]


def _half_toward_zero(value: int) -> int:
    return value // 2 if value >= 0 else -(-value // 2)


@dataclass(frozen=True)
class CheckerboardPattern:
    """Background shown behind transparent pixels."""

    light_color: int = 0xF0F0F0
    dark_color: int = 0xC8C8C8
    square_size: int = 8

    def color_at(self, x: int, y: int, scale: int) -> int:
        """The background colour at screen position (x, y)."""
        size = self.square_size * scale
        if (x // size + y // size) % 2 == 0:
            return self.light_color
        return self.dark_color


def calculate_scale_and_offset(
    image_width: int, image_height: int, window_width: int, window_height: int
) -> tuple[int, int, int]:
    """The largest whole scale that fits (at least 1) and the offsets that centre the image."""
    if image_width <= 0 or image_height <= 0:
        raise ValueError("image dimensions must be positive")
    scale = max(min(window_width // image_width, window_height // image_height), 1)
    offset_x = _half_toward_zero(window_width - image_width * scale)
    offset_y = _half_toward_zero(window_height - image_height * scale)
    return scale, offset_x, offset_y


def pixel_to_screen_coords(
    pixel_x: int, pixel_y: int, scale: int, offset_x: int, offset_y: int
) -> tuple[int, int]:
    """Screen position of an image pixel's top-left corner."""
    return offset_x + pixel_x * scale, offset_y + pixel_y * scale


def blend_colors(background: int, foreground: int, alpha: int) -> int:
    """Mix two 0x00RRGGBB colours, weighting the foreground by ``alpha``/255."""
    if alpha == 255:
        return foreground
    if alpha == 0:
        return background
    alpha_f = _f32(alpha / 255.0)
    inv_alpha = _f32(1.0 - alpha_f)
    result = 0
    for shift in (16, 8, 0):
        bg = (background >> shift) & 0xFF
        fg = (foreground >> shift) & 0xFF
        mixed = _f32(_f32(fg * alpha_f) + _f32(bg * inv_alpha))
        result |= max(0, math.trunc(mixed)) << shift
    return result


class Renderer:
    """A ``width`` by ``height`` buffer of 0x00RRGGBB colours, row by row."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.buffer: list[int] = [0] * (width * height)
        self.checkerboard = CheckerboardPattern()

    def update_size(self, width: int, height: int) -> None:
        """Resize the buffer, keeping what fits and padding with black."""
        if (width, height) == (self.width, self.height):
            return
        self.width = width
        self.height = height
        size = width * height
        if len(self.buffer) > size:
            del self.buffer[size:]
        else:
            self.buffer.extend([0] * (size - len(self.buffer)))

    def clear(self) -> None:
        """Fill the buffer with black."""
        self.buffer[:] = [0] * len(self.buffer)

    def render_frame(self, frame: Frame, image_width: int, image_height: int) -> None:
        """Draw a frame scaled up and centred, over black."""
        self.clear()
        scale, offset_x, offset_y = calculate_scale_and_offset(
            image_width, image_height, self.width, self.height
        )
        for y in range(image_height):
            for x in range(image_width):
                pixel = frame.get_pixel(x, y, image_width)
                if pixel is not None:
                    self._render_pixel(x, y, pixel, scale, offset_x, offset_y)

    def _render_pixel(
        self, x: int, y: int, pixel: Pixel, scale: int, offset_x: int, offset_y: int
    ) -> None:
        screen_x, screen_y = pixel_to_screen_coords(x, y, scale, offset_x, offset_y)
        if screen_x < 0 or screen_y < 0:
            return
        if screen_x + scale > self.width or screen_y + scale > self.height:
            return
        foreground = pixel.to_rgb32()
        transparent = pixel.is_transparent()
        for py in range(screen_y, screen_y + scale):
            row = py * self.width
            for px in range(screen_x, screen_x + scale):
                if transparent:
                    background = self.checkerboard.color_at(px, py, scale)
                    self.buffer[row + px] = blend_colors(background, foreground, pixel.a)
                else:
                    self.buffer[row + px] = foreground