"""Reading and writing pixel book files in a storage directory."""

from __future__ import annotations

import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from pixl.server.errors import InvalidFormatError, InvalidPathError, PixelError
from pixl.server.pixel_book import Frame, PixelBook, PixelBookInfo

MAGIC_NUMBER = 0x504958
FORMAT_VERSION = 1

_HEADER = struct.Struct("<IHHHH4x")
_FRAME_ENTRY = struct.Struct("<II")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise InvalidFormatError("unexpected end of file")
    return data


def _read_header(stream: BinaryIO) -> tuple[int, int, int, int]:
    magic, version, width, height, frame_count = _HEADER.unpack(
        _read_exact(stream, _HEADER.size)
    )
    if magic != MAGIC_NUMBER:
        raise InvalidFormatError("Invalid magic number")
    return version, width, height, frame_count


def _timestamp(seconds: float | None) -> datetime:
    if seconds is None:
        return _EPOCH
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class FileService:
    """Stores pixel books as ``.pxl`` files under one base directory."""

    def __init__(self, base_path: str | Path) -> None:
        self._base_path = Path(base_path)

    @property
    def path(self) -> Path:
        """The directory books are stored in."""
        return self._base_path

    def set_path(self, path: str | Path) -> None:
        """Switch to another existing directory."""
        path = Path(path)
        if not path.is_dir():
            raise InvalidPathError(str(path))
        self._base_path = path

    def list_books(self) -> list[PixelBookInfo]:
        """Describe every ``.pxl`` entry in the base directory."""
        books = []
        for entry in sorted(self._base_path.iterdir()):
            if entry.suffix != ".pxl":
                continue
            stat = entry.stat()
            try:
                frames = self.frame_count(entry)
            except (PixelError, OSError):
                frames = 1
            books.append(
                PixelBookInfo(
                    filename=entry.name,
                    size=stat.st_size,
                    created=_timestamp(getattr(stat, "st_birthtime", None)),
                    modified=_timestamp(stat.st_mtime),
                    frames=frames,
                )
            )
        return books

    def frame_count(self, path: str | Path) -> int:
        """Read the frame count from a book file's header."""
        with open(path, "rb") as stream:
            _, _, _, frame_count = _read_header(stream)
        return frame_count

    def load_book(self, filename: str) -> PixelBook:
        """Read a whole book from the base directory."""
        with open(self._base_path / filename, "rb") as stream:
            version, width, height, frame_count = _read_header(stream)
            if version != FORMAT_VERSION:
                raise InvalidFormatError(f"Unsupported version: {version}")
            if width == 0 or height == 0 or frame_count == 0:
                raise InvalidFormatError("Invalid dimensions or frame count")

            table = [
                _FRAME_ENTRY.unpack(_read_exact(stream, _FRAME_ENTRY.size))
                for _ in range(frame_count)
            ]
            expected_size = width * height * 4
            frames = []
            for index, (offset, size) in enumerate(table):
                if size != expected_size:
                    raise InvalidFormatError(f"Invalid frame size for frame {index}")
                stream.seek(offset)
                frames.append(Frame(index, bytearray(_read_exact(stream, size))))

        return PixelBook(filename, width, height, frames)

    def save_book(self, book: PixelBook) -> None:
        """Write a book to the base directory, replacing any existing file."""
        frame_count = len(book.frames) & 0xFFFF
        frame_size = (book.width * book.height * 4) & 0xFFFFFFFF
        offset = _HEADER.size + frame_count * _FRAME_ENTRY.size

        parts = [_HEADER.pack(MAGIC_NUMBER, FORMAT_VERSION, book.width, book.height, frame_count)]
        for _ in range(frame_count):
            parts.append(_FRAME_ENTRY.pack(offset & 0xFFFFFFFF, frame_size))
            offset += frame_size
        parts.extend(bytes(frame.pixels) for frame in book.frames)

        (self._base_path / book.filename).write_bytes(b"".join(parts))

    def create_book(self, filename: str, width: int, height: int, frames: int) -> PixelBook:
        """Create, save and return a blank book."""
        if width == 0 or height == 0 or frames == 0:
            raise InvalidFormatError("Width, height, and frame count must be greater than 0")
        book = PixelBook.create(filename, width, height, frames)
        self.save_book(book)
        return book