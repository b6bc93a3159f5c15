import asyncio
import json
from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pixl.server.event_service import EventKind as ServerEventKind
from pixl.server.event_service import PixelBookEvent as ServerEvent
from pixl.viewer.event_client import EventClient, parse_sse_event
from pixl.viewer.models import EventKind

MOMENT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _data(event):
    return "data: " + json.dumps(event.to_dict())


def test_parse_book_saved():
    event = parse_sse_event(_data(ServerEvent("a.pxl", MOMENT, ServerEventKind.BOOK_SAVED)))
    assert event.kind is EventKind.BOOK_SAVED
    assert event.filename == "a.pxl"
    assert event.timestamp == MOMENT


def test_parse_skips_other_lines():
    text = "event: message\n" + _data(
        ServerEvent("a.pxl", MOMENT, ServerEventKind.FRAME_CHANGED, frame_index=4)
    )
    event = parse_sse_event(text)
    assert event.frame_index == 4


@pytest.mark.parametrize(
    "text",
    [
        'data: {"type":"heartbeat","filename":"a.pxl","timestamp":"2024-01-02T03:04:05Z"}',
        'data: {"type":"connected","filename":"a.pxl","timestamp":"2024-01-02T03:04:05Z"}',
        "data: not json",
        "event: message",
        "",
    ],
)
def test_parse_returns_none_for_non_events(text):
    assert parse_sse_event(text) is None


@pytest.mark.asyncio
async def test_poll_empty_returns_none():
    client = EventClient("http://127.0.0.1:1")
    assert await client.poll_events() is None


@pytest.mark.asyncio
async def test_connect_and_disconnect_flags():
    client = EventClient("http://127.0.0.1:1")
    await client.connect("a.pxl")
    assert client.is_connected() is True
    assert client.current_filename == "a.pxl"
    await client.disconnect()
    assert client.is_connected() is False
    assert client.current_filename is None


async def _stream(request):
    response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
    await response.prepare(request)
    await response.write(b'data: {"type":"connected","filename":"a.pxl"}\n\n')
    for index in range(105):
        event = ServerEvent("a.pxl", MOMENT, ServerEventKind.FRAME_CHANGED, frame_index=index)
        await response.write((_data(event) + "\n\n").encode("utf-8"))
    await response.write_eof()
    return response


@pytest.mark.asyncio
async def test_stream_keeps_latest_hundred_events():
    app = web.Application()
    app.router.add_get("/books/{filename}/events", _stream)
    async with TestServer(app) as server:
        client = EventClient(str(server.make_url("")).rstrip("/"))
        await client.connect("a.pxl")
        await asyncio.wait_for(client._listener, 5)
        events = await client.poll_events()
        await client.disconnect()
    assert [event.frame_index for event in events] == list(range(5, 105))
    assert await client.poll_events() is None


@pytest.mark.asyncio
async def test_failed_stream_buffers_nothing():
    async with TestServer(web.Application()) as server:
        client = EventClient(str(server.make_url("")).rstrip("/"))
        await client.connect("missing.pxl")
        await asyncio.wait_for(client._listener, 5)
        assert await client.poll_events() is None
        assert client.is_connected() is True
        await client.disconnect()