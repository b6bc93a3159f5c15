"""Pixel books and book events as the viewer receives them from the server."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence, Union

from pixl.server.operations import DrawPixel, SetColor, parse_operation

ViewerOperation = Union[DrawPixel, SetColor]

_U8_MAX = 0xFF
_U16_MAX = 0xFFFF
_U64_MAX = 0xFFFFFFFFFFFFFFFF

_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what}: expected an object, got {value!r}")
    return value


def _field(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _int(value: Any, what: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what}: expected an integer, got {value!r}")
    if not 0 <= value <= maximum:
        raise ValueError(f"{what}: {value} is out of range 0..={maximum}")
    return value


def _str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {value!r}")
    return value


def _timestamp(value: Any, what: str) -> datetime:
    """Parse an RFC 3339 timestamp of any sub-second precision into UTC."""
    match = _TIMESTAMP.match(_str(value, what))
    if match is None:
        raise ValueError(f"{what}: not an RFC 3339 timestamp: {value!r}")
    base, fraction, offset = match.groups()
    fraction = f".{(fraction + '000000')[:6]}" if fraction else ""
    if offset in ("Z", "z"):
        offset = "+00:00"
    moment = datetime.fromisoformat(f"{base.replace('t', 'T')}{fraction}{offset}")
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class Pixel:
    r: int
    g: int
    b: int
    a: int

    @classmethod
    def from_bytes(cls, data: Sequence[int]) -> Pixel | None:
        """The pixel held in the first four bytes, or None if there are fewer."""
        if len(data) < 4:
            return None
        r, g, b, a = tuple(data[:4])
        return cls(r, g, b, a)

    def to_rgb32(self) -> int:
        """The colour packed as 0x00RRGGBB; alpha is dropped."""
        return (self.r << 16) | (self.g << 8) | self.b

    def is_transparent(self) -> bool:
        """True unless the pixel is fully opaque."""
        return self.a < 255


@dataclass
class Frame:
    """One frame; ``pixels`` holds RGBA bytes row by row."""

    index: int
    pixels: bytes = b""

    def get_pixel(self, x: int, y: int, width: int) -> Pixel | None:
        """Return the pixel at (x, y), or None if it lies past the data."""
        offset = (y * width + x) * 4
        if offset < 0 or offset + 3 >= len(self.pixels):
            return None
        return Pixel(*self.pixels[offset : offset + 4])


def _frame(value: Any) -> Frame:
    data = _mapping(value, "frame")
    index = _int(_field(data, "index"), "index", _U64_MAX)
    pixels = _field(data, "pixels")
    if not isinstance(pixels, (list, tuple)):
        raise ValueError(f"pixels: expected an array of bytes, got {type(pixels).__name__}")
    try:
        raw = bytes(pixels)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"pixels: {exc}") from None
    return Frame(index, raw)


@dataclass
class PixelBook:
    filename: str
    width: int
    height: int
    frames: list[Frame] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> PixelBook:
        """Build a book from its decoded JSON object; raise ValueError if malformed."""
        body = _mapping(data, "pixel book")
        frames = _field(body, "frames")
        if not isinstance(frames, (list, tuple)):
            raise ValueError(f"frames: expected an array, got {frames!r}")
        return cls(
            _str(_field(body, "filename"), "filename"),
            _int(_field(body, "width"), "width", _U16_MAX),
            _int(_field(body, "height"), "height", _U16_MAX),
            [_frame(frame) for frame in frames],
        )


@dataclass
class PixelBookInfo:
    """Directory listing entry for a stored pixel book."""

    filename: str
    size: int
    created: datetime
    modified: datetime
    frames: int

    @classmethod
    def from_dict(cls, data: Any) -> PixelBookInfo:
        """Build a listing entry from its decoded JSON object."""
        body = _mapping(data, "pixel book info")
        return cls(
            _str(_field(body, "filename"), "filename"),
            _int(_field(body, "size"), "size", _U64_MAX),
            _timestamp(_field(body, "created"), "created"),
            _timestamp(_field(body, "modified"), "modified"),
            _int(_field(body, "frames"), "frames", _U64_MAX),
        )


class EventKind(str, Enum):
    DRAWING_OPERATION = "drawing_operation"
    BOOK_SAVED = "book_saved"
    BOOK_LOADED = "book_loaded"
    FRAME_CHANGED = "frame_changed"
    CONNECTED = "connected"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class PixelBookEvent:
    """Something that happened to one book, as announced by the server."""

    filename: str
    timestamp: datetime
    kind: EventKind
    operation: ViewerOperation | None = None
    frame_index: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PixelBookEvent:
        """Build an event from its decoded JSON object; raise ValueError if malformed."""
        body = _mapping(data, "event")
        event_type = _mapping(_field(body, "event_type"), "event_type")
        tag = _field(event_type, "type")
        try:
            kind = EventKind(tag)
        except ValueError:
            known = ", ".join(f"`{member.value}`" for member in EventKind)
            raise ValueError(f"unknown variant {tag!r}, expected one of {known}") from None

        operation: ViewerOperation | None = None
        frame_index: int | None = None
        if kind is EventKind.DRAWING_OPERATION:
            parsed = parse_operation(_field(event_type, "operation"))
            if not isinstance(parsed, (DrawPixel, SetColor)):
                raise ValueError(f"unsupported drawing operation: {type(parsed).__name__}")
            operation = parsed
        elif kind is EventKind.FRAME_CHANGED:
            frame_index = _int(_field(event_type, "frame_index"), "frame_index", _U64_MAX)

        return cls(
            _str(_field(body, "filename"), "filename"),
            _timestamp(_field(body, "timestamp"), "timestamp"),
            kind,
            operation,
            frame_index,
        )