"""What the viewer is showing: the open book, its frame and the last error."""

from __future__ import annotations

from dataclasses import dataclass

from pixl.viewer.models import PixelBook


@dataclass
class AppState:
    current_book: PixelBook | None = None
    current_frame: int = 0
    is_connected: bool = False
    last_error: str | None = None

    def set_book(self, book: PixelBook) -> None:
        """Show a book from its first frame and forget any error."""
        self.current_book = book
        self.current_frame = 0
        self.last_error = None

    def clear_book(self) -> None:
        self.current_book = None
        self.current_frame = 0

    def set_frame(self, frame: int) -> None:
        """Jump to a frame; out-of-range frames are ignored."""
        if self.current_book is not None and 0 <= frame < len(self.current_book.frames):
            self.current_frame = frame

    def next_frame(self) -> None:
        """Step forward, stopping at the last frame."""
        if self.current_book is not None and self.current_frame + 1 < len(
            self.current_book.frames
        ):
            self.current_frame += 1

    def prev_frame(self) -> None:
        """Step back, stopping at the first frame."""
        if self.current_frame > 0:
            self.current_frame -= 1

    def set_error(self, error: str) -> None:
        self.last_error = error

    def clear_error(self) -> None:
        self.last_error = None