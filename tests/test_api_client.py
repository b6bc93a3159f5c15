import contextlib

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pixl.viewer.api_client import ApiClient, ApiError

BOOKS = {
    "books": [
        {"filename": "a.pxl", "size": 40, "created": "2024-01-02T03:04:05Z",
         "modified": "2024-01-02T03:04:06.5Z", "frames": 2}
    ]
}
BOOK = {"filename": "a.pxl", "width": 1, "height": 1,
        "frames": [{"index": 0, "pixels": [1, 2, 3, 4]}]}


def _app(routes):
    app = web.Application()
    for path, handler in routes.items():
        app.router.add_get(path, handler)
    return app


def _json(payload, status=200):
    async def handler(request):
        return web.json_response(payload, status=status)
    return handler


@contextlib.asynccontextmanager
async def _client(routes):
    async with TestServer(_app(routes)) as server:
        client = ApiClient(str(server.make_url("")).rstrip("/"))
        try:
            yield client
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_list_books():
    async with _client({"/books": _json(BOOKS)}) as client:
        books = await client.list_books()
    assert [book.filename for book in books] == ["a.pxl"]
    assert books[0].frames == 2
    assert books[0].size == 40


@pytest.mark.asyncio
async def test_get_book():
    async with _client({"/books/{name}": _json(BOOK)}) as client:
        book = await client.get_book("a.pxl")
    assert book.filename == "a.pxl"
    assert book.frames[0].pixels == bytes([1, 2, 3, 4])


@pytest.mark.asyncio
async def test_get_path():
    async with _client({"/path": _json({"path": "/tmp/books"})}) as client:
        assert await client.get_path() == "/tmp/books"


@pytest.mark.asyncio
async def test_health_check_reflects_status():
    async with _client({"/": _json({"status": "healthy"})}) as client:
        assert await client.health_check() is True
    async with _client({"/": _json({}, status=500)}) as client:
        assert await client.health_check() is False


@pytest.mark.asyncio
async def test_error_status_raises():
    async with _client({}) as client:
        with pytest.raises(ApiError, match="Server error: 404"):
            await client.get_book("missing.pxl")


@pytest.mark.asyncio
async def test_malformed_body_raises():
    async with _client({"/books": _json({"nothing": []})}) as client:
        with pytest.raises(ApiError):
            await client.list_books()


@pytest.mark.asyncio
async def test_unreachable_server_raises():
    async with ApiClient("http://127.0.0.1:1") as client:
        with pytest.raises(ApiError):
            await client.health_check()