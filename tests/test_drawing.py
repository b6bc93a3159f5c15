import pytest

from pixl.server.drawing import (
    apply_operation,
    apply_operations,
    draw_circle,
    draw_line,
    draw_oval,
    draw_pixel,
    draw_polygon,
    draw_rectangle,
    draw_shape,
    draw_straight_line,
    draw_triangle,
    fill_area,
)
from pixl.server.errors import InvalidCoordinatesError
from pixl.server.operations import (
    DrawPixel,
    DrawShape,
    LineType,
    Point,
    SetColor,
    ShapeType,
    Size,
)
from pixl.server.pixel_book import Pixel, PixelBook


def make_book():
    return PixelBook.create("test.pxl", 10, 10, 1)


def pixel_at(book, x, y, frame=0):
    return book.frames[frame].get_pixel(x, y, book.width)


def painted(book, frame=0):
    return {
        (x, y)
        for y in range(book.height)
        for x in range(book.width)
        if pixel_at(book, x, y, frame).a != 0
    }


def test_draw_pixel():
    book = make_book()
    draw_pixel(book, 0, 5, 5, (255, 0, 0, 255))
    assert pixel_at(book, 5, 5) == Pixel(255, 0, 0, 255)


def test_draw_pixel_out_of_bounds():
    book = make_book()
    with pytest.raises(InvalidCoordinatesError):
        draw_pixel(book, 0, 15, 15, (255, 0, 0, 255))
    with pytest.raises(InvalidCoordinatesError):
        draw_pixel(book, 0, 5, 15, (255, 0, 0, 255))


def test_draw_pixel_invalid_frame():
    book = make_book()
    with pytest.raises(InvalidCoordinatesError) as info:
        draw_pixel(book, 5, 5, 5, (255, 0, 0, 255))
    assert str(info.value) == "Invalid coordinates: x=5, y=5 for image size 10x10"


def test_draw_straight_line():
    book = make_book()
    draw_straight_line(book, 0, Point(2, 2), Point(6, 2), (0, 255, 0, 255))
    for x in range(2, 7):
        assert pixel_at(book, x, 2).g == 255
    assert painted(book) == {(x, 2) for x in range(2, 7)}


def test_draw_line_operation():
    book = make_book()
    draw_line(book, 0, Point(1, 1), Point(8, 8), LineType.STRAIGHT, (0, 0, 255, 255))
    assert pixel_at(book, 1, 1).b == 255
    assert pixel_at(book, 8, 8).b == 255
    assert painted(book) == {(i, i) for i in range(1, 9)}


def test_curved_line_drawn_like_straight():
    straight = make_book()
    curved = make_book()
    draw_line(straight, 0, Point(0, 3), Point(9, 7), LineType.STRAIGHT, (1, 2, 3, 255))
    draw_line(curved, 0, Point(0, 3), Point(9, 7), LineType.CURVED, (1, 2, 3, 255))
    assert straight.frames[0].pixels == curved.frames[0].pixels


def test_line_clipped_at_book_edge():
    book = make_book()
    draw_straight_line(book, 0, Point(5, 5), Point(20, 5), (9, 9, 9, 255))
    assert painted(book) == {(x, 5) for x in range(5, 10)}


def test_draw_rectangle_outline():
    book = make_book()
    draw_rectangle(book, 0, Point(2, 2), Size(4, 3), False, (255, 255, 0, 255))
    corner = pixel_at(book, 2, 2)
    assert (corner.r, corner.g) == (255, 255)
    corner = pixel_at(book, 5, 4)
    assert (corner.r, corner.g) == (255, 255)
    centre = pixel_at(book, 3, 3)
    assert (centre.r, centre.g) == (0, 0)


def test_draw_rectangle_filled():
    book = make_book()
    draw_rectangle(book, 0, Point(1, 1), Size(3, 3), True, (128, 64, 192, 255))
    centre = pixel_at(book, 2, 2)
    assert (centre.r, centre.g, centre.b) == (128, 64, 192)
    assert len(painted(book)) == 9


def test_filled_rectangle_clipped():
    book = make_book()
    draw_rectangle(book, 0, Point(8, 8), Size(5, 5), True, (10, 20, 30, 255))
    assert painted(book) == {(8, 8), (9, 8), (8, 9), (9, 9)}


def test_draw_circle():
    book = make_book()
    draw_circle(book, 0, Point(5, 5), Size(4, 4), False, (255, 128, 64, 255))
    assert pixel_at(book, 5, 5) is not None
    assert pixel_at(book, 7, 5) == Pixel(255, 128, 64, 255)
    assert pixel_at(book, 5, 7) == Pixel(255, 128, 64, 255)
    assert pixel_at(book, 7, 7) == Pixel.transparent()


def test_filled_circle_is_symmetric_about_centre():
    book = make_book()
    draw_circle(book, 0, Point(1, 1), Size(6, 6), True, (1, 1, 1, 255))
    points = painted(book)
    assert (4, 4) in points
    assert points == {(8 - x, 8 - y) for x, y in points}


def test_filled_oval_stays_in_box():
    book = make_book()
    draw_oval(book, 0, Point(0, 2), Size(8, 4), True, (5, 5, 5, 255))
    points = painted(book)
    assert (4, 4) in points
    assert all(0 <= x <= 8 and 2 <= y <= 6 for x, y in points)


def test_oval_outline_leaves_centre_empty():
    book = make_book()
    draw_oval(book, 0, Point(0, 0), Size(8, 8), False, (5, 5, 5, 255))
    assert pixel_at(book, 4, 4) == Pixel.transparent()
    assert (8, 4) in painted(book)


def test_filled_triangle():
    book = make_book()
    draw_triangle(book, 0, Point(0, 0), Size(5, 5), True, (7, 7, 7, 255))
    points = painted(book)
    assert (2, 0) in points
    assert (0, 0) not in points
    assert {(x, 4) for x in range(5)} <= points


def test_triangle_outline_corners():
    book = make_book()
    draw_triangle(book, 0, Point(0, 0), Size(5, 5), False, (7, 7, 7, 255))
    points = painted(book)
    assert {(2, 0), (0, 4), (4, 4)} <= points
    assert (2, 2) not in points


def test_draw_shape_dispatches():
    book = make_book()
    draw_shape(book, 0, ShapeType.RECTANGLE, Point(0, 0), Size(2, 2), True, (3, 3, 3, 255))
    assert painted(book) == {(0, 0), (1, 0), (0, 1), (1, 1)}


def test_filled_polygon_square():
    book = make_book()
    square = [Point(2, 2), Point(6, 2), Point(6, 6), Point(2, 6)]
    draw_polygon(book, 0, square, True, (4, 4, 4, 255))
    points = painted(book)
    assert (4, 4) in points
    assert (2, 2) in points
    assert (4, 6) not in points


def test_polygon_outline_closes():
    book = make_book()
    triangle = [Point(0, 0), Point(9, 0), Point(0, 9)]
    draw_polygon(book, 0, triangle, False, (4, 4, 4, 255))
    points = painted(book)
    assert {(0, 0), (9, 0), (0, 9), (0, 5)} <= points
    assert (9, 9) not in points


def test_polygon_with_two_points_draws_nothing():
    book = make_book()
    draw_polygon(book, 0, [Point(0, 0), Point(5, 5)], True, (4, 4, 4, 255))
    assert painted(book) == set()


def test_apply_multiple_operations():
    book = make_book()
    operations = [
        DrawPixel(frame=0, x=1, y=1, color=(255, 0, 0, 255)),
        DrawPixel(frame=0, x=2, y=2, color=(0, 255, 0, 255)),
        DrawShape(
            frame=0,
            shape=ShapeType.RECTANGLE,
            position=Point(5, 5),
            size=Size(2, 2),
            filled=True,
            color=(0, 0, 255, 255),
        ),
    ]
    apply_operations(book, operations)
    assert pixel_at(book, 1, 1).r == 255
    assert pixel_at(book, 2, 2).g == 255
    assert pixel_at(book, 5, 5).b == 255


def test_apply_operations_stops_at_first_error():
    book = make_book()
    operations = [
        DrawPixel(frame=0, x=1, y=1, color=(255, 0, 0, 255)),
        DrawPixel(frame=0, x=50, y=1, color=(255, 0, 0, 255)),
        DrawPixel(frame=0, x=3, y=3, color=(255, 0, 0, 255)),
    ]
    with pytest.raises(InvalidCoordinatesError):
        apply_operations(book, operations)
    assert painted(book) == {(1, 1)}


def test_fill_area_simple():
    book = make_book()
    fill_area(book, 0, 0, 0, (200, 100, 50, 255))
    origin = pixel_at(book, 0, 0)
    assert (origin.r, origin.g, origin.b) == (200, 100, 50)
    assert len(painted(book)) == 100


def test_fill_area_bounded_by_outline():
    book = make_book()
    draw_rectangle(book, 0, Point(2, 2), Size(4, 4), False, (255, 255, 255, 255))
    fill_area(book, 0, 3, 3, (9, 8, 7, 255))
    assert pixel_at(book, 3, 3) == Pixel(9, 8, 7, 255)
    assert pixel_at(book, 4, 4) == Pixel(9, 8, 7, 255)
    assert pixel_at(book, 2, 2) == Pixel(255, 255, 255, 255)
    assert pixel_at(book, 0, 0) == Pixel.transparent()


def test_fill_area_same_color_is_noop():
    book = make_book()
    before = bytes(book.frames[0].pixels)
    fill_area(book, 0, 4, 4, (0, 0, 0, 0))
    assert bytes(book.frames[0].pixels) == before


def test_fill_area_out_of_bounds():
    book = make_book()
    with pytest.raises(InvalidCoordinatesError):
        fill_area(book, 0, 10, 0, (1, 1, 1, 255))
    with pytest.raises(InvalidCoordinatesError):
        fill_area(book, 3, 0, 0, (1, 1, 1, 255))


def test_set_color_operation():
    book = make_book()
    before = bytes(book.frames[0].pixels)
    apply_operation(book, SetColor(color=(255, 255, 255, 255)))
    assert bytes(book.frames[0].pixels) == before


def test_apply_operation_rejects_other_objects():
    book = make_book()
    with pytest.raises(TypeError):
        apply_operation(book, "draw_pixel")