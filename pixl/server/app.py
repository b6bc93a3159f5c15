"""HTTP API serving pixel books, drawing on them and streaming their events."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from aiohttp import web

from pixl.server.drawing import apply_operations
from pixl.server.errors import BookNotFoundError, PixelError
from pixl.server.event_service import EventService
from pixl.server.file_service import FileService
from pixl.server.operations import parse_operations
from pixl.server.validation import validate_dimensions, validate_filename

logger = logging.getLogger(__name__)

FILE_SERVICE = web.AppKey("file_service", FileService)
EVENT_SERVICE = web.AppKey("event_service", EventService)

POLL_INTERVAL = 0.5
HEARTBEAT_PERIOD = 10
MAX_FRAMES = 1000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

_U16_MAX = 0xFFFF
_USIZE_MAX = 0xFFFFFFFFFFFFFFFF


def _error(message: str, status: int) -> web.Response:
    return web.Response(text=message, status=status)


def _describe(exc: Exception) -> str:
    if isinstance(exc, PixelError):
        return str(exc)
    if isinstance(exc, OSError):
        return f"IO error: {exc}"
    return str(exc)


def _load_error(exc: Exception) -> web.Response:
    status = 404 if isinstance(exc, BookNotFoundError) else 500
    return _error(_describe(exc), status)


class _BadRequest(Exception):
    pass


async def _read_object(request: web.Request) -> Mapping[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise _BadRequest(f"Parse error: {exc}") from None
    if not isinstance(body, Mapping):
        raise _BadRequest("Parse error: expected a JSON object")
    return body


def _require(body: Mapping[str, Any], key: str) -> Any:
    if key not in body:
        raise _BadRequest(f"Parse error: missing field `{key}`")
    return body[key]


def _string(body: Mapping[str, Any], key: str) -> str:
    value = _require(body, key)
    if not isinstance(value, str):
        raise _BadRequest(f"Parse error: `{key}` must be a string")
    return value


def _unsigned(body: Mapping[str, Any], key: str, maximum: int) -> int:
    value = _require(body, key)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise _BadRequest(f"Parse error: `{key}` must be an integer in 0..={maximum}")
    return value


async def health_check(request: web.Request) -> web.Response:
    """Report that the server is up."""
    return web.json_response({"status": "healthy", "service": "pixl-server"})


async def get_path(request: web.Request) -> web.Response:
    """Return the directory books are stored in."""
    return web.json_response({"path": str(request.app[FILE_SERVICE].path)})


async def set_path(request: web.Request) -> web.Response:
    """Change the directory books are stored in."""
    try:
        body = await _read_object(request)
        path = _string(body, "path")
    except _BadRequest as exc:
        return _error(str(exc), 400)
    try:
        request.app[FILE_SERVICE].set_path(Path(path))
    except PixelError as exc:
        return _error(str(exc), 400)
    return web.json_response({"path": path})


async def list_books(request: web.Request) -> web.Response:
    """List the books in the storage directory."""
    try:
        books = request.app[FILE_SERVICE].list_books()
    except (PixelError, OSError) as exc:
        return _error(_describe(exc), 500)
    return web.json_response({"books": [book.to_dict() for book in books]})


async def get_book(request: web.Request) -> web.Response:
    """Return a whole book with its pixel data."""
    filename = request.match_info["filename"]
    if not validate_filename(filename):
        return _error("Invalid filename", 400)
    try:
        book = request.app[FILE_SERVICE].load_book(filename)
    except (PixelError, OSError) as exc:
        return _load_error(exc)
    return web.json_response(book.to_dict())


async def create_book(request: web.Request) -> web.Response:
    """Create a blank book."""
    try:
        body = await _read_object(request)
        filename = _string(body, "filename")
        width = _unsigned(body, "width", _U16_MAX)
        height = _unsigned(body, "height", _U16_MAX)
        frames = _unsigned(body, "frames", _USIZE_MAX)
    except _BadRequest as exc:
        return _error(str(exc), 400)

    if not validate_filename(filename):
        return _error("Invalid filename", 400)
    if not validate_dimensions(width, height):
        return _error("Invalid dimensions", 400)
    if frames == 0 or frames > MAX_FRAMES:
        return _error("Frame count must be between 1 and 1000", 400)

    service = request.app[FILE_SERVICE]
    try:
        book = service.create_book(filename, width, height, frames)
    except (PixelError, OSError) as exc:
        return _error(_describe(exc), 500)
    return web.json_response(
        {"success": True, "filename": book.filename, "path": str(service.path / filename)}
    )


async def update_book(request: web.Request) -> web.Response:
    """Apply drawing operations to a book, save it and announce the changes."""
    filename = request.match_info["filename"]
    try:
        body = await _read_object(request)
        operations = parse_operations(_require(body, "operations"))
    except _BadRequest as exc:
        return _error(str(exc), 400)
    except ValueError as exc:
        return _error(f"Parse error: {exc}", 400)

    logger.info("update_book called for %s with %d operations", filename, len(operations))
    if not validate_filename(filename):
        return _error("Invalid filename", 400)

    service = request.app[FILE_SERVICE]
    try:
        book = service.load_book(filename)
    except (PixelError, OSError) as exc:
        return _load_error(exc)

    try:
        apply_operations(book, operations)
    except PixelError as exc:
        logger.warning("drawing operation failed: %s", exc)
        return _error(str(exc), 400)

    try:
        service.save_book(book)
    except (PixelError, OSError) as exc:
        logger.error("save failed: %s", exc)
        return _error(_describe(exc), 500)

    events = request.app[EVENT_SERVICE]
    for operation in operations:
        await events.on_drawing_operation(filename, operation)
    await events.on_book_saved(filename)

    return web.json_response(
        {"success": True, "operations_applied": len(operations), "filename": filename}
    )


def _compact(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"))


async def _send(response: web.StreamResponse, data: str) -> None:
    await response.write(f"data: {data}\n\n".encode("utf-8"))


def _closed(request: web.Request) -> bool:
    transport = request.transport
    return transport is None or transport.is_closing()


async def pixel_book_events(request: web.Request) -> web.StreamResponse:
    """Stream a book's events as server-sent events, polling every half second."""
    filename = request.match_info["filename"]
    if not validate_filename(filename):
        return _error("Invalid filename", 400)

    events = request.app[EVENT_SERVICE]
    response = web.StreamResponse(
        headers={"Content-Type": "text/event-stream", "Cache-Control": "no-cache"}
    )
    await response.prepare(request)

    last_check = datetime.now(timezone.utc)
    try:
        await _send(
            response,
            _compact(
                {
                    "type": "connected",
                    "filename": filename,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            ),
        )
        logger.info("SSE client connected for book: %s", filename)

        while not _closed(request):
            recent = await events.get_recent_events(filename, last_check)
            for event in recent:
                await _send(response, _compact(event.to_dict()))
            last_check = datetime.now(timezone.utc)

            if int(last_check.timestamp()) % HEARTBEAT_PERIOD == 0:
                await _send(
                    response,
                    _compact(
                        {
                            "type": "heartbeat",
                            "filename": filename,
                            "timestamp": last_check.isoformat(),
                        }
                    ),
                )
            await asyncio.sleep(POLL_INTERVAL)
    except (ConnectionResetError, ConnectionError):
        logger.info("SSE client for %s went away", filename)
    return response


def create_app(base_path: str | Path) -> web.Application:
    """Build the web application storing books under ``base_path``."""
    app = web.Application()
    app[FILE_SERVICE] = FileService(base_path)
    app[EVENT_SERVICE] = EventService()
    app.router.add_get("/", health_check)
    app.router.add_get("/path", get_path)
    app.router.add_put("/path", set_path)
    app.router.add_get("/books", list_books)
    app.router.add_post("/books", create_book)
    app.router.add_get("/books/{filename}", get_book)
    app.router.add_put("/books/{filename}", update_book)
    app.router.add_get("/books/{filename}/events", pixel_book_events)
    return app


def _default_path() -> Path:
    try:
        return Path.home()
    except RuntimeError:
        return Path(".")


def main(argv: list[str] | None = None) -> int:
    """Run the pixel book server."""
    parser = argparse.ArgumentParser(prog="pixl-server", description="Serve pixel books over HTTP.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--path", type=Path, default=None, help="directory books are stored in")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG)
    app = create_app(args.path if args.path is not None else _default_path())
    print(f"PIXL Server starting on http://{args.host}:{args.port}")
    web.run_app(app, host=args.host, port=args.port, print=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())