"""Choosing pixel book files with the desktop's file dialogs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pixl.viewer.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

PXL_EXTENSION = "pxl"
OPEN_TITLE = "Open Pixel Book"
SAVE_TITLE = "Save Pixel Book"
_FILETYPES = (("Pixel Books", "*.pxl"), ("All Files", "*"))


class _Dialogs(Protocol):
    def open_file(self, title: str, directory: str | None) -> str | None: ...

    def save_file(self, title: str, initial_name: str | None) -> str | None: ...


class _TkDialogs:
    """Native dialogs shown through Tk."""

    @staticmethod
    def _root():
        try:
            import tkinter
        except ImportError as exc:
            raise RuntimeError(f"no file dialog available: {exc}") from exc
        try:
            root = tkinter.Tk()
        except tkinter.TclError as exc:
            raise RuntimeError(f"cannot open a file dialog: {exc}") from exc
        root.withdraw()
        return root

    def open_file(self, title: str, directory: str | None) -> str | None:
        from tkinter import filedialog

        root = self._root()
        try:
            options = {"parent": root, "title": title, "filetypes": _FILETYPES}
            if directory is not None:
                options["initialdir"] = directory
            chosen = filedialog.askopenfilename(**options)
        finally:
            root.destroy()
        return chosen if isinstance(chosen, str) and chosen else None

    def save_file(self, title: str, initial_name: str | None) -> str | None:
        from tkinter import filedialog

        root = self._root()
        try:
            options = {"parent": root, "title": title, "filetypes": _FILETYPES}
            if initial_name is not None:
                options["initialfile"] = initial_name
            chosen = filedialog.asksaveasfilename(**options)
        finally:
            root.destroy()
        return chosen if isinstance(chosen, str) and chosen else None


def validate_pixel_book_filename(filename: str) -> bool:
    """True if ``filename`` is non-empty and has the ``.pxl`` extension."""
    return bool(filename) and Path(filename).suffix == f".{PXL_EXTENSION}"


def ensure_pxl_extension(filename: str) -> str:
    """``filename`` itself if it is a pixel book name, else with ``.pxl`` appended."""
    if validate_pixel_book_filename(filename):
        return filename
    return f"{filename}.{PXL_EXTENSION}"


def _base_name(chosen: str | None) -> str | None:
    if not chosen:
        return None
    return Path(chosen).name


class FileDialogService:
    """Asks the user for pixel book files; only the chosen file's name is returned."""

    def __init__(self, api_client: ApiClient, dialogs: _Dialogs | None = None) -> None:
        self.api_client = api_client
        self._dialogs: _Dialogs = dialogs if dialogs is not None else _TkDialogs()

    async def show_open_dialog(self) -> str | None:
        """Pick a book, starting in the server's storage directory; None if cancelled."""
        try:
            server_path = await self.api_client.get_path()
        except ApiError as exc:
            logger.warning("could not get server path, using current directory: %s", exc)
            server_path = "."
        logger.info("opening file dialog in path: %s", server_path)
        name = _base_name(self._dialogs.open_file(OPEN_TITLE, server_path))
        if name is None:
            logger.info("no file selected")
        else:
            logger.info("selected file: %s", name)
        return name

    async def open_pixel_book_dialog(self) -> str | None:
        """Pick a book to open; None if cancelled."""
        return _base_name(self._dialogs.open_file(OPEN_TITLE, None))

    async def save_pixel_book_dialog(self, current_filename: str | None = None) -> str | None:
        """Pick a name to save a book under; None if cancelled."""
        return _base_name(self._dialogs.save_file(SAVE_TITLE, current_filename))