"""The viewer window: shows a pixel book and follows its changes live."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from array import array

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame  # noqa: E402

from pixl.viewer.api_client import ApiClient, ApiError  # noqa: E402
from pixl.viewer.event_client import EventClient  # noqa: E402
from pixl.viewer.file_dialog import FileDialogService  # noqa: E402
from pixl.viewer.input import (  # noqa: E402
    is_clear_error_pressed,
    is_ctrl_o_pressed,
    is_escape_pressed,
    is_left_arrow_pressed,
    is_right_arrow_pressed,
)
from pixl.viewer.models import EventKind  # noqa: E402
from pixl.viewer.rendering import Renderer  # noqa: E402
from pixl.viewer.state import AppState  # noqa: E402

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:3000"
WINDOW_WIDTH = 512
WINDOW_HEIGHT = 512
FRAME_DELAY = 0.016
BASE_TITLE = "PIXL Viewer"
_RGB_MASKS = (0x00FF0000, 0x0000FF00, 0x000000FF, 0)


def window_title(state: AppState) -> str | None:
    """The title the window should show, or None to leave it unchanged."""
    if state.last_error is not None:
        return f"{BASE_TITLE} - ERROR: {state.last_error} (Press 'C' to clear)"
    book = state.current_book
    if book is None:
        if state.is_connected:
            return f"{BASE_TITLE} - Press Ctrl+O to open a pixel book"
        return f"{BASE_TITLE} - Server not connected"
    if 0 <= state.current_frame < len(book.frames):
        return (
            f"{BASE_TITLE} - {book.filename} "
            f"(Frame {state.current_frame + 1}/{len(book.frames)})"
        )
    return None


class Viewer:
    """Window, server connection and display state of the pixel book viewer."""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        *,
        api_client: ApiClient | None = None,
        event_client: EventClient | None = None,
        file_dialog: FileDialogService | None = None,
        width: int = WINDOW_WIDTH,
        height: int = WINDOW_HEIGHT,
    ) -> None:
        self.base_url = base_url
        self.renderer = Renderer(width, height)
        self.api_client = api_client if api_client is not None else ApiClient(base_url)
        self.event_client = event_client if event_client is not None else EventClient(base_url)
        self.file_dialog = (
            file_dialog if file_dialog is not None else FileDialogService(self.api_client)
        )
        self.state = AppState()
        self.title = BASE_TITLE
        self._screen: pygame.Surface | None = None
        self._reported_error: str | None = None

    async def _check_connection(self) -> None:
        try:
            healthy = await self.api_client.health_check()
        except ApiError:
            healthy = False
        self.state.is_connected = healthy
        if healthy:
            logger.info("connected to PIXL server")
        else:
            self.state.set_error(f"Cannot connect to PIXL server at {self.base_url}")
            logger.warning("cannot connect to PIXL server")

    async def run(self) -> None:
        """Check the server, then show the window until it is closed or Escape is pressed."""
        await self._check_connection()
        pygame.display.init()
        try:
            self._screen = pygame.display.set_mode(
                (self.renderer.width, self.renderer.height), pygame.RESIZABLE
            )
            while await self._handle_input():
                await self.handle_real_time_updates()
                self.render()
                self._present()
                await asyncio.sleep(FRAME_DELAY)
        finally:
            self._screen = None
            pygame.display.quit()

    async def _handle_input(self) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type != pygame.KEYDOWN:
                continue
            key, mods = event.key, event.mod
            if is_escape_pressed(key, mods):
                return False
            if is_ctrl_o_pressed(key, mods):
                if not self.state.is_connected:
                    logger.warning("cannot open file dialog: server not connected")
                    self.state.set_error("Server not connected")
                elif self.state.last_error is None:
                    await self.open_file_dialog()
            if is_clear_error_pressed(key, mods):
                self.state.clear_error()
            if is_left_arrow_pressed(key, mods):
                self.state.prev_frame()
            if is_right_arrow_pressed(key, mods):
                self.state.next_frame()
        return True

    async def open_file_dialog(self) -> None:
        """Let the user pick a book and load it; errors end up in the state."""
        self.state.clear_error()
        try:
            filename = await self.file_dialog.show_open_dialog()
        except (RuntimeError, OSError) as exc:
            message = f"File dialog error: {exc}"
            logger.error(message)
            self.state.set_error(message)
            return
        if filename is None:
            logger.info("user cancelled file selection")
            return
        await self.load_book(filename)

    async def load_book(self, filename: str) -> None:
        """Fetch and show a book, then follow its live events."""
        logger.info("attempting to load book: %s", filename)
        try:
            book = await self.api_client.get_book(filename)
        except ApiError as exc:
            message = (
                f"Failed to load '{filename}': {exc}. "
                "Make sure the server is running and the file exists."
            )
            logger.error("load error: %s", message)
            self.state.set_error(message)
            return
        logger.info(
            "loaded book %s (%d frames, %dx%d)",
            book.filename,
            len(book.frames),
            book.width,
            book.height,
        )
        self.state.set_book(book)
        try:
            await self.event_client.connect(filename)
        except (OSError, RuntimeError) as exc:
            logger.warning("could not connect to real-time updates: %s", exc)

    async def handle_real_time_updates(self) -> None:
        """React to the events received since the last call."""
        events = await self.event_client.poll_events()
        for event in events or ():
            if event.kind is EventKind.DRAWING_OPERATION:
                if self.state.current_book is not None:
                    await self.load_book(self.state.current_book.filename)
            elif event.kind is EventKind.BOOK_SAVED:
                logger.info("book saved remotely")
            elif event.kind is EventKind.FRAME_CHANGED and event.frame_index is not None:
                self.state.set_frame(event.frame_index)

    def render(self) -> str:
        """Redraw the display buffer and return the window title."""
        if self._screen is not None:
            self.renderer.update_size(*self._screen.get_size())
        book = self.state.current_book
        if book is None:
            self.renderer.clear()
        elif 0 <= self.state.current_frame < len(book.frames):
            self.renderer.render_frame(
                book.frames[self.state.current_frame], book.width, book.height
            )

        title = window_title(self.state)
        if title is not None and title != self.title:
            self.title = title
            if self._screen is not None:
                pygame.display.set_caption(title)

        error = self.state.last_error
        if error is not None and error != self._reported_error:
            logger.error("%s", error)
            self._reported_error = error
        return self.title

    def _present(self) -> None:
        if self._screen is None:
            return
        width, height = self.renderer.width, self.renderer.height
        surface = pygame.Surface((width, height), 0, 32, _RGB_MASKS)
        data = array("I", self.renderer.buffer).tobytes()
        row_bytes = width * 4
        pitch = surface.get_pitch()
        pixels = surface.get_buffer()
        if pitch == row_bytes:
            pixels.write(data, 0)
        else:
            for row in range(height):
                pixels.write(data[row * row_bytes : (row + 1) * row_bytes], row * pitch)
        del pixels
        self._screen.blit(surface, (0, 0))
        pygame.display.flip()

    async def load_demo_book(self) -> None:
        """Show the first book the server lists; raise ConnectionError if not connected."""
        if not self.state.is_connected:
            raise ConnectionError("Server not connected")
        try:
            books = await self.api_client.list_books()
        except ApiError as exc:
            self.state.set_error(f"Failed to list books: {exc}")
            return
        if not books:
            self.state.set_error("No pixel books found on server")
            return
        await self.load_book(books[0].filename)

    async def close(self) -> None:
        """Stop following events and release the HTTP session."""
        await self.event_client.disconnect()
        await self.api_client.close()


async def _run(server_url: str) -> None:
    viewer = Viewer(server_url)
    try:
        try:
            await viewer.load_demo_book()
        except ConnectionError as exc:
            print(f"Could not load demo book: {exc}")
        await viewer.run()
    finally:
        await viewer.close()


def main(argv: list[str] | None = None) -> int:
    """Run the pixel book viewer."""
    parser = argparse.ArgumentParser(prog="pixl-viewer", description="View pixel books live.")
    parser.add_argument("--server-url", default=DEFAULT_SERVER_URL)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    print("Starting PIXL Viewer...")
    asyncio.run(_run(args.server_url))
    print("PIXL Viewer shutting down.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())