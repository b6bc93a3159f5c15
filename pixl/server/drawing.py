"""Rasterising drawing operations onto the frames of a pixel book."""

from __future__ import annotations

import math
import struct
from typing import Iterable, Sequence

from pixl.server.errors import InvalidCoordinatesError
from pixl.server.operations import (
    DrawLine,
    DrawPixel,
    DrawPolygon,
    DrawShape,
    FillArea,
    LineType,
    Operation,
    Point,
    SetColor,
    ShapeType,
    Size,
)
from pixl.server.pixel_book import Pixel, PixelBook

Color = Sequence[int]

_U16_MAX = 0xFFFF
_F32 = struct.Struct("<f")


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return _F32.unpack(_F32.pack(value))[0]


def _to_u16(value: float) -> int:
    """Convert a float to a 16-bit unsigned integer, truncating and saturating."""
    if math.isnan(value):
        return 0
    return max(0, min(_U16_MAX, math.trunc(value)))


def _in_bounds(book: PixelBook, x: int, y: int) -> bool:
    return 0 <= x < book.width and 0 <= y < book.height


def apply_operations(book: PixelBook, operations: Iterable[Operation]) -> None:
    """Apply operations in order; stop at the first one that fails."""
    for operation in operations:
        apply_operation(book, operation)


def apply_operation(book: PixelBook, operation: Operation) -> None:
    """Apply one drawing operation to the book."""
    match operation:
        case DrawPixel(frame=frame, x=x, y=y, color=color):
            draw_pixel(book, frame, x, y, color)
        case SetColor():
            # Selects a drawing colour only; the book itself is unchanged.
            pass
        case DrawLine(frame=frame, start=start, end=end, line_type=line_type, color=color):
            draw_line(book, frame, start, end, line_type, color)
        case DrawShape(
            frame=frame, shape=shape, position=position, size=size, filled=filled, color=color
        ):
            draw_shape(book, frame, shape, position, size, filled, color)
        case DrawPolygon(frame=frame, points=points, filled=filled, color=color):
            draw_polygon(book, frame, points, filled, color)
        case FillArea(frame=frame, x=x, y=y, color=color):
            fill_area(book, frame, x, y, color)
        case _:
            raise TypeError(f"not a drawing operation: {operation!r}")


def draw_pixel(book: PixelBook, frame_idx: int, x: int, y: int, color: Color) -> None:
    """Set one pixel; raise InvalidCoordinatesError outside the book or its frames."""
    if not 0 <= frame_idx < len(book.frames) or not _in_bounds(book, x, y):
        raise InvalidCoordinatesError(x, y, book.width, book.height)
    book.frames[frame_idx].set_pixel(x, y, book.width, Pixel(*color))


def draw_line(
    book: PixelBook,
    frame_idx: int,
    start: Point,
    end: Point,
    line_type: LineType,
    color: Color,
) -> None:
    """Draw a line; curved lines are drawn straight."""
    if line_type not in (LineType.STRAIGHT, LineType.CURVED):
        raise ValueError(f"unknown line type: {line_type!r}")
    draw_straight_line(book, frame_idx, start, end, color)


def draw_straight_line(
    book: PixelBook, frame_idx: int, start: Point, end: Point, color: Color
) -> None:
    """Bresenham line; points outside the book are skipped."""
    x0, y0 = start.x, start.y
    x1, y1 = end.x, end.y
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    while True:
        if _in_bounds(book, x0, y0):
            draw_pixel(book, frame_idx, x0, y0, color)
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy


def draw_shape(
    book: PixelBook,
    frame_idx: int,
    shape: ShapeType,
    position: Point,
    size: Size,
    filled: bool,
    color: Color,
) -> None:
    """Draw a rectangle, circle, oval or triangle inside the given box."""
    drawers = {
        ShapeType.RECTANGLE: draw_rectangle,
        ShapeType.CIRCLE: draw_circle,
        ShapeType.OVAL: draw_oval,
        ShapeType.TRIANGLE: draw_triangle,
    }
    try:
        drawer = drawers[ShapeType(shape)]
    except ValueError:
        raise ValueError(f"unknown shape: {shape!r}") from None
    drawer(book, frame_idx, position, size, filled, color)


def draw_rectangle(
    book: PixelBook,
    frame_idx: int,
    position: Point,
    size: Size,
    filled: bool,
    color: Color,
) -> None:
    """Draw a rectangle, clipped at the right and bottom edges."""
    x1, y1 = position.x, position.y
    x2 = position.x + max(size.width - 1, 0)
    y2 = position.y + max(size.height - 1, 0)
    xs = range(x1, min(x2, book.width - 1) + 1)
    ys = range(y1, min(y2, book.height - 1) + 1)

    if filled:
        for y in ys:
            for x in xs:
                draw_pixel(book, frame_idx, x, y, color)
        return

    for x in xs:
        if y1 < book.height:
            draw_pixel(book, frame_idx, x, y1, color)
        if y2 < book.height and y2 != y1:
            draw_pixel(book, frame_idx, x, y2, color)
    for y in ys:
        if x1 < book.width:
            draw_pixel(book, frame_idx, x1, y, color)
        if x2 < book.width and x2 != x1:
            draw_pixel(book, frame_idx, x2, y, color)


def draw_circle(
    book: PixelBook,
    frame_idx: int,
    position: Point,
    size: Size,
    filled: bool,
    color: Color,
) -> None:
    """Draw a circle centred in the box, with radius half its shorter side."""
    cx = position.x + size.width // 2
    cy = position.y + size.height // 2
    radius = min(size.width, size.height) // 2

    if filled:
        for y in range(max(cy - radius, 0), min(cy + radius + 1, book.height)):
            for x in range(max(cx - radius, 0), min(cx + radius + 1, book.width)):
                dx, dy = x - cx, y - cy
                if dx * dx + dy * dy <= radius * radius:
                    draw_pixel(book, frame_idx, x, y, color)
        return

    x, y = 0, radius
    d = 1 - radius
    while x <= y:
        _draw_circle_points(book, frame_idx, cx, cy, x, y, color)
        if d < 0:
            d += 2 * x + 3
        else:
            d += 2 * (x - y) + 5
            y -= 1
        x += 1


def _draw_circle_points(
    book: PixelBook, frame_idx: int, cx: int, cy: int, x: int, y: int, color: Color
) -> None:
    points = (
        (cx + x, cy + y), (cx + x, cy - y),
        (cx - x, cy + y), (cx - x, cy - y),
        (cx + y, cy + x), (cx + y, cy - x),
        (cx - y, cy + x), (cx - y, cy - x),
    )
    for px, py in points:
        if _in_bounds(book, px, py):
            draw_pixel(book, frame_idx, px, py, color)


def draw_oval(
    book: PixelBook,
    frame_idx: int,
    position: Point,
    size: Size,
    filled: bool,
    color: Color,
) -> None:
    """Draw an ellipse inscribed in the box."""
    cx = position.x + size.width // 2
    cy = position.y + size.height // 2
    rx = size.width // 2
    ry = size.height // 2

    if filled:
        for y in range(max(cy - ry, 0), min(cy + ry + 1, book.height)):
            for x in range(max(cx - rx, 0), min(cx + rx + 1, book.width)):
                dx, dy = x - cx, y - cy
                if rx * rx * dy * dy + ry * ry * dx * dx <= rx * rx * ry * ry:
                    draw_pixel(book, frame_idx, x, y, color)
        return

    steps = max((rx + ry) * 2, 20)
    for i in range(steps):
        angle = 2.0 * math.pi * i / steps
        x = cx + math.trunc(rx * math.cos(angle))
        y = cy + math.trunc(ry * math.sin(angle))
        if _in_bounds(book, x, y):
            draw_pixel(book, frame_idx, x, y, color)


def draw_triangle(
    book: PixelBook,
    frame_idx: int,
    position: Point,
    size: Size,
    filled: bool,
    color: Color,
) -> None:
    """Draw a triangle with its apex at the top centre and its base along the bottom."""
    x1, y1 = position.x + size.width // 2, position.y
    x2, y2 = position.x, position.y + max(size.height - 1, 0)
    x3, y3 = position.x + max(size.width - 1, 0), y2

    if not filled:
        draw_straight_line(book, frame_idx, Point(x1, y1), Point(x2, y2), color)
        draw_straight_line(book, frame_idx, Point(x2, y2), Point(x3, y3), color)
        draw_straight_line(book, frame_idx, Point(x3, y3), Point(x1, y1), color)
        return

    for y in range(y1, min(y2, book.height - 1) + 1):
        progress = 0.0 if y2 == y1 else _f32(float(y - y1) / float(y2 - y1))
        left_x = _f32(x1 + _f32(progress * (x2 - x1)))
        right_x = _f32(x1 + _f32(progress * (x3 - x1)))
        left, right = _to_u16(left_x), _to_u16(right_x)
        for x in range(min(left, right), min(max(left, right), book.width - 1) + 1):
            draw_pixel(book, frame_idx, x, y, color)


def draw_polygon(
    book: PixelBook,
    frame_idx: int,
    points: Sequence[Point],
    filled: bool,
    color: Color,
) -> None:
    """Draw a closed polygon; fewer than three points draws nothing."""
    points = list(points)
    if len(points) < 3:
        return

    edges = list(zip(points, points[1:] + points[:1]))

    if not filled:
        for start, end in edges:
            draw_straight_line(book, frame_idx, start, end, color)
        return

    min_y = min(p.y for p in points)
    max_y = max(p.y for p in points)
    for y in range(min_y, min(max_y, book.height - 1) + 1):
        intersections = []
        for p1, p2 in edges:
            if p1.y <= y < p2.y or p2.y <= y < p1.y:
                run = _f32(float(y - p1.y) * float(p2.x - p1.x))
                x_intersect = _f32(p1.x + _f32(run / float(p2.y - p1.y)))
                intersections.append(_to_u16(x_intersect))
        intersections.sort()
        for start_x, end_x in zip(intersections[0::2], intersections[1::2]):
            for x in range(start_x, min(end_x, book.width - 1) + 1):
                draw_pixel(book, frame_idx, x, y, color)


def fill_area(book: PixelBook, frame_idx: int, x: int, y: int, color: Color) -> None:
    """Flood-fill the 4-connected region of the colour found at (x, y)."""
    if not 0 <= frame_idx < len(book.frames) or not _in_bounds(book, x, y):
        raise InvalidCoordinatesError(x, y, book.width, book.height)

    frame = book.frames[frame_idx]
    start = frame.get_pixel(x, y, book.width)
    if start is None:
        return
    target = (start.r, start.g, start.b, start.a)
    if target == tuple(color):
        return

    stack = [(x, y)]
    visited: set[tuple[int, int]] = set()
    while stack:
        cx, cy = stack.pop()
        if (cx, cy) in visited:
            continue
        visited.add((cx, cy))
        if not _in_bounds(book, cx, cy):
            continue
        pixel = frame.get_pixel(cx, cy, book.width)
        if pixel is None or (pixel.r, pixel.g, pixel.b, pixel.a) != target:
            continue

        draw_pixel(book, frame_idx, cx, cy, color)

        if cx > 0:
            stack.append((cx - 1, cy))
        if cx + 1 < book.width:
            stack.append((cx + 1, cy))
        if cy > 0:
            stack.append((cx, cy - 1))
        if cy + 1 < book.height:
            stack.append((cx, cy + 1))