from datetime import datetime, timezone

import pytest

from pixl.viewer.api_client import ApiError
from pixl.viewer.app import Viewer, window_title
from pixl.viewer.models import EventKind, Frame, PixelBook, PixelBookEvent
from pixl.viewer.state import AppState


def make_book(name="art.pxl", frames=2, rgba=(0, 0, 0, 0)):
    return PixelBook(name, 1, 1, [Frame(i, bytes(rgba)) for i in range(frames)])


class FakeApi:
    def __init__(self, books=None, listing=None, fail=False):
        self.books = books or {}
        self.listing = listing or []
        self.fail = fail
        self.requested = []

    async def get_book(self, filename):
        self.requested.append(filename)
        if self.fail or filename not in self.books:
            raise ApiError("boom")
        return self.books[filename]

    async def list_books(self):
        if self.fail:
            raise ApiError("boom")
        return self.listing

    async def health_check(self):
        return not self.fail

    async def close(self):
        pass


class FakeEvents:
    def __init__(self, events=None):
        self.events = list(events or [])
        self.connected = []

    async def connect(self, filename):
        self.connected.append(filename)

    async def poll_events(self):
        events, self.events = self.events, []
        return events or None

    async def disconnect(self):
        pass


class FakeDialog:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    async def show_open_dialog(self):
        if self.error is not None:
            raise self.error
        return self.result


class Info:
    def __init__(self, filename):
        self.filename = filename


def make_viewer(api=None, events=None, dialog=None, **kwargs):
    return Viewer(
        api_client=api or FakeApi(),
        event_client=events or FakeEvents(),
        file_dialog=dialog or FakeDialog(),
        **kwargs,
    )


def event(kind, **extra):
    return PixelBookEvent("art.pxl", datetime.now(timezone.utc), kind, **extra)


def test_window_title_without_book():
    state = AppState(is_connected=True)
    assert window_title(state) == "PIXL Viewer - Press Ctrl+O to open a pixel book"
    state.is_connected = False
    assert window_title(state) == "PIXL Viewer - Server not connected"


def test_window_title_with_book_mentions_frame():
    state = AppState()
    state.set_book(make_book())
    state.next_frame()
    assert window_title(state) == "PIXL Viewer - art.pxl (Frame 2/2)"


def test_window_title_error_wins():
    state = AppState()
    state.set_book(make_book())
    state.set_error("oops")
    assert window_title(state) == "PIXL Viewer - ERROR: oops (Press 'C' to clear)"


def test_window_title_book_without_frames_leaves_title():
    state = AppState()
    state.set_book(make_book(frames=0))
    assert window_title(state) is None


@pytest.mark.asyncio
async def test_load_book_success_connects_events():
    book = make_book()
    events = FakeEvents()
    viewer = make_viewer(api=FakeApi({"art.pxl": book}), events=events)
    await viewer.load_book("art.pxl")
    assert viewer.state.current_book is book
    assert events.connected == ["art.pxl"]


@pytest.mark.asyncio
async def test_load_book_failure_sets_error():
    viewer = make_viewer(api=FakeApi())
    await viewer.load_book("gone.pxl")
    assert viewer.state.current_book is None
    assert viewer.state.last_error == (
        "Failed to load 'gone.pxl': boom. "
        "Make sure the server is running and the file exists."
    )


@pytest.mark.asyncio
async def test_frame_changed_event_moves_frame():
    events = FakeEvents([event(EventKind.FRAME_CHANGED, frame_index=1)])
    viewer = make_viewer(events=events)
    viewer.state.set_book(make_book())
    await viewer.handle_real_time_updates()
    assert viewer.state.current_frame == 1


@pytest.mark.asyncio
async def test_drawing_event_reloads_book():
    fresh = make_book()
    api = FakeApi({"art.pxl": fresh})
    events = FakeEvents([event(EventKind.DRAWING_OPERATION)])
    viewer = make_viewer(api=api, events=events)
    viewer.state.set_book(make_book())
    await viewer.handle_real_time_updates()
    assert api.requested == ["art.pxl"]
    assert viewer.state.current_book is fresh


@pytest.mark.asyncio
async def test_saved_event_changes_nothing():
    events = FakeEvents([event(EventKind.BOOK_SAVED)])
    api = FakeApi()
    viewer = make_viewer(api=api, events=events)
    viewer.state.set_book(make_book())
    await viewer.handle_real_time_updates()
    assert api.requested == []
    assert viewer.state.current_frame == 0


@pytest.mark.asyncio
async def test_load_demo_book_requires_connection():
    viewer = make_viewer()
    with pytest.raises(ConnectionError):
        await viewer.load_demo_book()


@pytest.mark.asyncio
async def test_load_demo_book_with_no_books():
    viewer = make_viewer(api=FakeApi(listing=[]))
    viewer.state.is_connected = True
    await viewer.load_demo_book()
    assert viewer.state.last_error == "No pixel books found on server"


@pytest.mark.asyncio
async def test_load_demo_book_loads_first_listed():
    book = make_book("first.pxl")
    api = FakeApi({"first.pxl": book}, listing=[Info("first.pxl"), Info("second.pxl")])
    viewer = make_viewer(api=api)
    viewer.state.is_connected = True
    await viewer.load_demo_book()
    assert viewer.state.current_book is book


@pytest.mark.asyncio
async def test_load_demo_book_list_failure():
    viewer = make_viewer(api=FakeApi(fail=True))
    viewer.state.is_connected = True
    await viewer.load_demo_book()
    assert viewer.state.last_error == "Failed to list books: boom"


@pytest.mark.asyncio
async def test_open_file_dialog_loads_choice():
    book = make_book()
    viewer = make_viewer(api=FakeApi({"art.pxl": book}), dialog=FakeDialog("art.pxl"))
    viewer.state.set_error("old")
    await viewer.open_file_dialog()
    assert viewer.state.current_book is book
    assert viewer.state.last_error is None


@pytest.mark.asyncio
async def test_open_file_dialog_cancelled_keeps_state():
    viewer = make_viewer(dialog=FakeDialog(None))
    await viewer.open_file_dialog()
    assert viewer.state.current_book is None
    assert viewer.state.last_error is None


@pytest.mark.asyncio
async def test_open_file_dialog_error_is_reported():
    viewer = make_viewer(dialog=FakeDialog(error=RuntimeError("no display")))
    await viewer.open_file_dialog()
    assert viewer.state.last_error == "File dialog error: no display"


def test_render_opaque_book_fills_buffer():
    viewer = make_viewer(width=4, height=4)
    viewer.state.set_book(make_book(frames=1, rgba=(255, 0, 0, 255)))
    title = viewer.render()
    assert set(viewer.renderer.buffer) == {0xFF0000}
    assert title == window_title(viewer.state)


def test_render_without_book_clears_buffer():
    viewer = make_viewer(width=4, height=4)
    viewer.renderer.buffer[:] = [7] * 16
    viewer.render()
    assert viewer.renderer.buffer == [0] * 16
    assert viewer.title == "PIXL Viewer - Server not connected"