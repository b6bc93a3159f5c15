"""In-memory model of a pixel book: frames of RGBA pixels."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Pixel:
    r: int
    g: int
    b: int
    a: int

    @classmethod
    def transparent(cls) -> Pixel:
        """A fully transparent black pixel."""
        return cls(0, 0, 0, 0)


@dataclass
class Frame:
    """One frame; ``pixels`` holds RGBA bytes row by row."""

    index: int
    pixels: bytearray = field(default_factory=bytearray)

    @classmethod
    def blank(cls, index: int, width: int, height: int) -> Frame:
        """A frame of transparent pixels."""
        return cls(index, bytearray(width * height * 4))

    def _offset(self, x: int, y: int, width: int) -> int | None:
        offset = (y * width + x) * 4
        if offset < 0 or offset + 3 >= len(self.pixels):
            return None
        return offset

    def get_pixel(self, x: int, y: int, width: int) -> Pixel | None:
        """Return the pixel at (x, y), or None if it lies past the data."""
        offset = self._offset(x, y, width)
        if offset is None:
            return None
        return Pixel(*self.pixels[offset : offset + 4])

    def set_pixel(self, x: int, y: int, width: int, pixel: Pixel) -> bool:
        """Store a pixel at (x, y); return False if it lies past the data."""
        offset = self._offset(x, y, width)
        if offset is None:
            return False
        self.pixels[offset : offset + 4] = bytes((pixel.r, pixel.g, pixel.b, pixel.a))
        return True


@dataclass
class PixelBook:
    filename: str
    width: int
    height: int
    frames: list[Frame] = field(default_factory=list)

    @classmethod
    def create(cls, filename: str, width: int, height: int, frame_count: int) -> PixelBook:
        """A book of ``frame_count`` blank frames."""
        frames = [Frame.blank(index, width, height) for index in range(frame_count)]
        return cls(filename, width, height, frames)

    def to_dict(self) -> dict[str, Any]:
        """The JSON object form of the book."""
        return {
            "filename": self.filename,
            "width": self.width,
            "height": self.height,
            "frames": [
                {"index": frame.index, "pixels": list(frame.pixels)} for frame in self.frames
            ],
        }


@dataclass
class PixelBookInfo:
    """Directory listing entry for a stored pixel book."""

    filename: str
    size: int
    created: datetime
    modified: datetime
    frames: int

    def to_dict(self) -> dict[str, Any]:
        """The JSON object form, with RFC 3339 UTC timestamps."""
        return {
            "filename": self.filename,
            "size": self.size,
            "created": _rfc3339(self.created),
            "modified": _rfc3339(self.modified),
            "frames": self.frames,
        }