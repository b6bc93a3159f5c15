import pytest

from pixl.viewer.api_client import ApiError
from pixl.viewer.file_dialog import (
    FileDialogService,
    ensure_pxl_extension,
    validate_pixel_book_filename,
)


class FakeDialogs:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def open_file(self, title, directory):
        self.calls.append(("open", title, directory))
        return self.result

    def save_file(self, title, initial_name):
        self.calls.append(("save", title, initial_name))
        return self.result


class FakeApi:
    def __init__(self, path=None):
        self.path = path

    async def get_path(self):
        if self.path is None:
            raise ApiError("unreachable")
        return self.path


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("art.pxl", True),
        ("dir/art.pxl", True),
        ("", False),
        ("art", False),
        ("art.png", False),
        (".pxl", False),
    ],
)
def test_validate_pixel_book_filename(filename, expected):
    assert validate_pixel_book_filename(filename) is expected


def test_ensure_pxl_extension_keeps_valid_name():
    assert ensure_pxl_extension("art.pxl") == "art.pxl"


def test_ensure_pxl_extension_appends():
    assert ensure_pxl_extension("art") == "art.pxl"
    assert ensure_pxl_extension("art.png") == "art.png.pxl"


def test_ensure_pxl_extension_result_is_valid():
    for name in ("a", "b.txt", "c.pxl"):
        assert validate_pixel_book_filename(ensure_pxl_extension(name))


@pytest.mark.asyncio
async def test_show_open_dialog_starts_in_server_path():
    dialogs = FakeDialogs("/srv/books/art.pxl")
    service = FileDialogService(FakeApi("/srv/books"), dialogs)
    assert await service.show_open_dialog() == "art.pxl"
    assert dialogs.calls == [("open", "Open Pixel Book", "/srv/books")]


@pytest.mark.asyncio
async def test_show_open_dialog_falls_back_to_current_directory():
    dialogs = FakeDialogs("/tmp/other.pxl")
    service = FileDialogService(FakeApi(None), dialogs)
    assert await service.show_open_dialog() == "other.pxl"
    assert dialogs.calls[0][2] == "."


@pytest.mark.asyncio
async def test_show_open_dialog_cancelled():
    service = FileDialogService(FakeApi("/srv"), FakeDialogs(None))
    assert await service.show_open_dialog() is None


@pytest.mark.asyncio
async def test_open_pixel_book_dialog_returns_base_name():
    dialogs = FakeDialogs("/x/y/z.pxl")
    service = FileDialogService(FakeApi("/srv"), dialogs)
    assert await service.open_pixel_book_dialog() == "z.pxl"
    assert dialogs.calls == [("open", "Open Pixel Book", None)]


@pytest.mark.asyncio
async def test_save_pixel_book_dialog_passes_current_name():
    dialogs = FakeDialogs("/x/saved.pxl")
    service = FileDialogService(FakeApi("/srv"), dialogs)
    assert await service.save_pixel_book_dialog("draft.pxl") == "saved.pxl"
    assert dialogs.calls == [("save", "Save Pixel Book", "draft.pxl")]


@pytest.mark.asyncio
async def test_save_pixel_book_dialog_cancelled():
    dialogs = FakeDialogs("")
    service = FileDialogService(FakeApi("/srv"), dialogs)
    assert await service.save_pixel_book_dialog() is None
    assert dialogs.calls == [("save", "Save Pixel Book", None)]