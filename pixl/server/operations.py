"""Drawing operations and their JSON wire form."""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Tuple, Union

Color = Tuple[int, int, int, int]

_U8_MAX = 0xFF
_U16_MAX = 0xFFFF
_USIZE_MAX = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class Size:
    width: int
    height: int


class LineType(str, Enum):
    STRAIGHT = "straight"
    CURVED = "curved"


class ShapeType(str, Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    OVAL = "oval"
    TRIANGLE = "triangle"


@dataclass(frozen=True)
class DrawPixel:
    frame: int
    x: int
    y: int
    color: Color


@dataclass(frozen=True)
class SetColor:
    color: Color


@dataclass(frozen=True)
class DrawLine:
    frame: int
    start: Point
    end: Point
    line_type: LineType
    color: Color


@dataclass(frozen=True)
class DrawShape:
    frame: int
    shape: ShapeType
    position: Point
    size: Size
    filled: bool
    color: Color


@dataclass(frozen=True)
class DrawPolygon:
    frame: int
    points: Tuple[Point, ...]
    filled: bool
    color: Color


@dataclass(frozen=True)
class FillArea:
    frame: int
    x: int
    y: int
    color: Color


Operation = Union[DrawPixel, SetColor, DrawLine, DrawShape, DrawPolygon, FillArea]


def _int(value: Any, what: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what}: expected an integer, got {value!r}")
    if not 0 <= value <= maximum:
        raise ValueError(f"{what}: {value} is out of range 0..={maximum}")
    return value


def _field(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what}: expected an object, got {value!r}")
    return value


def _color(value: Any) -> Color:
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        raise ValueError(f"color: expected an array of 4 bytes, got {value!r}")
    r, g, b, a = (_int(channel, "color", _U8_MAX) for channel in value)
    return (r, g, b, a)


def _point(value: Any) -> Point:
    data = _mapping(value, "point")
    return Point(
        _int(_field(data, "x"), "x", _U16_MAX),
        _int(_field(data, "y"), "y", _U16_MAX),
    )


def _size(value: Any) -> Size:
    data = _mapping(value, "size")
    return Size(
        _int(_field(data, "width"), "width", _U16_MAX),
        _int(_field(data, "height"), "height", _U16_MAX),
    )


def _bool(value: Any, what: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{what}: expected a boolean, got {value!r}")
    return value


def _choice(enum_type: type, value: Any, what: str) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(f"`{member.value}`" for member in enum_type)
        raise ValueError(f"{what}: unknown variant {value!r}, expected one of {choices}") from None


def _frame(data: Mapping[str, Any]) -> int:
    return _int(_field(data, "frame"), "frame", _USIZE_MAX)


def _parse_draw_pixel(data: Mapping[str, Any]) -> DrawPixel:
    return DrawPixel(
        _frame(data),
        _int(_field(data, "x"), "x", _U16_MAX),
        _int(_field(data, "y"), "y", _U16_MAX),
        _color(_field(data, "color")),
    )


def _parse_set_color(data: Mapping[str, Any]) -> SetColor:
    return SetColor(_color(_field(data, "color")))


def _parse_draw_line(data: Mapping[str, Any]) -> DrawLine:
    return DrawLine(
        _frame(data),
        _point(_field(data, "start")),
        _point(_field(data, "end")),
        _choice(LineType, _field(data, "line_type"), "line_type"),
        _color(_field(data, "color")),
    )


def _parse_draw_shape(data: Mapping[str, Any]) -> DrawShape:
    return DrawShape(
        _frame(data),
        _choice(ShapeType, _field(data, "shape"), "shape"),
        _point(_field(data, "position")),
        _size(_field(data, "size")),
        _bool(_field(data, "filled"), "filled"),
        _color(_field(data, "color")),
    )


def _parse_draw_polygon(data: Mapping[str, Any]) -> DrawPolygon:
    points = _field(data, "points")
    if not isinstance(points, (list, tuple)):
        raise ValueError(f"points: expected an array, got {points!r}")
    return DrawPolygon(
        _frame(data),
        tuple(_point(point) for point in points),
        _bool(_field(data, "filled"), "filled"),
        _color(_field(data, "color")),
    )


def _parse_fill_area(data: Mapping[str, Any]) -> FillArea:
    return FillArea(
        _frame(data),
        _int(_field(data, "x"), "x", _U16_MAX),
        _int(_field(data, "y"), "y", _U16_MAX),
        _color(_field(data, "color")),
    )


_PARSERS: dict[str, Callable[[Mapping[str, Any]], Operation]] = {
    "draw_pixel": _parse_draw_pixel,
    "set_color": _parse_set_color,
    "draw_line": _parse_draw_line,
    "draw_shape": _parse_draw_shape,
    "draw_polygon": _parse_draw_polygon,
    "fill_area": _parse_fill_area,
}

_TAGS: dict[type, str] = {
    DrawPixel: "draw_pixel",
    SetColor: "set_color",
    DrawLine: "draw_line",
    DrawShape: "draw_shape",
    DrawPolygon: "draw_polygon",
    FillArea: "fill_area",
}


def parse_operation(data: Any) -> Operation:
    """Build an operation from its decoded JSON object; raise ValueError if malformed."""
    body = _mapping(data, "operation")
    tag = _field(body, "type")
    parser = _PARSERS.get(tag) if isinstance(tag, str) else None
    if parser is None:
        known = ", ".join(f"`{name}`" for name in _PARSERS)
        raise ValueError(f"unknown variant {tag!r}, expected one of {known}")
    return parser(body)


def parse_operations(data: Any) -> list[Operation]:
    """Build a list of operations from a decoded JSON array."""
    if not isinstance(data, (list, tuple)):
        raise ValueError(f"expected an array of operations, got {data!r}")
    return [parse_operation(item) for item in data]


def _dump_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {f.name: _dump_value(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_dump_value(item) for item in value]
    return value


def dump_operation(operation: Operation) -> dict[str, Any]:
    """Return the JSON object form of an operation, tagged by its ``type``."""
    tag = _TAGS.get(type(operation))
    if tag is None:
        raise TypeError(f"not a drawing operation: {operation!r}")
    body: dict[str, Any] = {"type": tag}
    body.update(_dump_value(operation))
    return body