"""Exceptions raised while reading, writing and drawing on pixel books."""

from __future__ import annotations


class PixelError(Exception):
    """Base class for every pixel book error."""


class BookNotFoundError(PixelError):
    """A pixel book file does not exist."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"File not found: {filename}")


class InvalidFormatError(PixelError):
    """A pixel book file or request is malformed."""

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(f"Invalid file format: {details}")


class InvalidCoordinatesError(PixelError):
    """A coordinate or frame index falls outside the book."""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        super().__init__(
            f"Invalid coordinates: x={x}, y={y} for image size {width}x{height}"
        )


class InvalidColorError(PixelError):
    """A colour value is not acceptable."""

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(f"Invalid color values: {details}")


class InvalidPathError(PixelError):
    """A storage path is missing or not a directory."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Invalid path: {path}")