"""Model Context Protocol server exposing pixel book tools over stdio.

Every tool talks to a running pixel book HTTP server. The server URL comes
from the ``PIXL_SERVER_URL`` environment variable and defaults to
``http://localhost:3000``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Sequence

import aiohttp

from pixl.server.operations import (
    DrawLine,
    DrawPixel,
    DrawPolygon,
    DrawShape,
    FillArea,
    LineType,
    Operation,
    Point,
    SetColor,
    ShapeType,
    Size,
    dump_operation,
    parse_operations,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:3000"
SERVER_NAME = "pixl-mcp-server"
SERVER_VERSION = "0.1.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

INSTRUCTIONS = (
    "This server provides comprehensive tools for creating and manipulating pixel art images. "
    "The PIXL MCP Server acts as a bridge between AI models and the PIXL API, enabling "
    "AI-driven pixel art creation through a rich set of drawing tools and file management "
    "capabilities."
)

_CONNECT_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError)


def _pretty(body: Any) -> str:
    return json.dumps(body, indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class _Reply:
    status: int
    reason: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def status_line(self) -> str:
        return f"{self.status} {self.reason}".rstrip()

    def json(self) -> Any:
        return json.loads(self.text)


class _Unreachable(Exception):
    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Failed to connect to PIXL server: {cause}")


def _parse_points(points_json: str) -> list[Point]:
    data = json.loads(points_json)
    if not isinstance(data, list):
        raise ValueError(f"expected an array of points, got {data!r}")
    points = []
    for item in data:
        if not isinstance(item, Mapping) or "x" not in item or "y" not in item:
            raise ValueError(f"expected a point object with `x` and `y`, got {item!r}")
        coords = []
        for key in ("x", "y"):
            value = item[key]
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
                raise ValueError(f"{key}: expected an integer in 0..=65535, got {value!r}")
            coords.append(value)
        points.append(Point(*coords))
    return points


class PixlMcpServer:
    """Tools for creating and drawing on pixel books held by a PIXL server."""

    def __init__(self, server_url: str | None = None) -> None:
        if server_url is None:
            server_url = os.environ.get("PIXL_SERVER_URL", DEFAULT_SERVER_URL)
        self.server_url = server_url
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> PixlMcpServer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _fetch(self, method: str, path: str, payload: Any = None) -> _Reply:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        url = f"{self.server_url}{path}"
        try:
            async with self._session.request(method, url, json=payload) as response:
                raw = await response.read()
                return _Reply(
                    response.status,
                    response.reason or "",
                    raw.decode("utf-8", errors="replace"),
                )
        except _CONNECT_ERRORS as exc:
            raise _Unreachable(exc) from exc

    async def health_check(self) -> str:
        """Check if the PIXL server is running and healthy."""
        try:
            reply = await self._fetch("GET", "/")
        except _Unreachable as exc:
            return str(exc)
        if not reply.ok:
            return f"PIXL server is not healthy: {reply.status_line}"
        try:
            body = reply.json()
        except ValueError as exc:
            return f"PIXL server response error: {exc}"
        return f"PIXL server is healthy: {_pretty(body)}"

    async def get_path(self) -> str:
        """Get the current file system path where pixel books are stored."""
        try:
            reply = await self._fetch("GET", "/path")
        except _Unreachable as exc:
            return str(exc)
        if not reply.ok:
            return f"Failed to get path: {reply.status_line}"
        try:
            body = reply.json()
        except ValueError as exc:
            return f"Failed to parse response: {exc}"
        path = body.get("path") if isinstance(body, Mapping) else None
        return f"Current path: {path if isinstance(path, str) else 'unknown'}"

    async def set_path(self, path: str) -> str:
        """Set the file system path where pixel books should be stored."""
        try:
            reply = await self._fetch("PUT", "/path", {"path": path})
        except _Unreachable as exc:
            return str(exc)
        if reply.ok:
            return f"Path set to: {path}"
        return f"Failed to set path: {reply.text}"

    async def list_books(self) -> str:
        """List all available pixel books in the current directory."""
        try:
            reply = await self._fetch("GET", "/books")
        except _Unreachable as exc:
            return str(exc)
        if not reply.ok:
            return f"Failed to list books: {reply.status_line}"
        try:
            body = reply.json()
        except ValueError as exc:
            return f"Failed to parse response: {exc}"
        return f"Available pixel books:\n{_pretty(body)}"

    async def create_book(self, filename: str, width: int, height: int, frames: int) -> str:
        """Create a new pixel book with specified dimensions and frame count."""
        request = {"filename": filename, "width": width, "height": height, "frames": frames}
        try:
            reply = await self._fetch("POST", "/books", request)
        except _Unreachable as exc:
            return str(exc)
        if not reply.ok:
            return f"Failed to create book: {reply.text}"
        try:
            body = reply.json()
        except ValueError as exc:
            return f"Created pixel book '{filename}' but failed to parse response: {exc}"
        return (
            f"Created pixel book '{filename}' ({width}x{height}, {frames} frames): "
            f"{_pretty(body)}"
        )

    async def get_book(self, filename: str) -> str:
        """Get information about a specific pixel book."""
        try:
            reply = await self._fetch("GET", f"/books/{filename}")
        except _Unreachable as exc:
            return str(exc)
        if not reply.ok:
            return f"Failed to get book '{filename}': {reply.text}"
        try:
            body = reply.json()
        except ValueError as exc:
            return f"Failed to parse response: {exc}"
        return f"Pixel book '{filename}' details:\n{_pretty(body)}"

    async def draw_pixel(
        self, filename: str, frame: int, x: int, y: int, r: int, g: int, b: int, a: int
    ) -> str:
        """Draw a single pixel at specified coordinates with a given color."""
        return await self.apply_operations(filename, [DrawPixel(frame, x, y, (r, g, b, a))])

    async def set_color(self, filename: str, r: int, g: int, b: int, a: int) -> str:
        """Set the current drawing color (for tools that use current color)."""
        return await self.apply_operations(filename, [SetColor((r, g, b, a))])

    async def draw_line(
        self,
        filename: str,
        frame: int,
        start_x: int,
        start_y: int,
        end_x: int,
        end_y: int,
        line_type: str,
        r: int,
        g: int,
        b: int,
        a: int,
    ) -> str:
        """Draw a line between two points."""
        try:
            kind = LineType(line_type.lower())
        except ValueError:
            return "Invalid line type. Use 'straight' or 'curved'"
        operation = DrawLine(
            frame, Point(start_x, start_y), Point(end_x, end_y), kind, (r, g, b, a)
        )
        return await self.apply_operations(filename, [operation])

    async def draw_shape(
        self,
        filename: str,
        frame: int,
        shape_type: str,
        x: int,
        y: int,
        width: int,
        height: int,
        filled: bool,
        r: int,
        g: int,
        b: int,
        a: int,
    ) -> str:
        """Draw a shape (rectangle, circle, oval, or triangle)."""
        try:
            shape = ShapeType(shape_type.lower())
        except ValueError:
            return "Invalid shape type. Use 'rectangle', 'circle', 'oval', or 'triangle'"
        operation = DrawShape(
            frame, shape, Point(x, y), Size(width, height), filled, (r, g, b, a)
        )
        return await self.apply_operations(filename, [operation])

    async def draw_polygon(
        self,
        filename: str,
        frame: int,
        points_json: str,
        filled: bool,
        r: int,
        g: int,
        b: int,
        a: int,
    ) -> str:
        """Draw a polygon from a list of points."""
        try:
            points = _parse_points(points_json)
        except ValueError as exc:
            return (
                f"Invalid points JSON: {exc}. "
                'Expected format: [{"x": 10, "y": 20}, ...]'
            )
        if len(points) < 3:
            return "Polygon must have at least 3 points"
        operation = DrawPolygon(frame, tuple(points), filled, (r, g, b, a))
        return await self.apply_operations(filename, [operation])

    async def fill_area(
        self, filename: str, frame: int, x: int, y: int, r: int, g: int, b: int, a: int
    ) -> str:
        """Fill an area starting from the specified point with the given color (flood fill)."""
        return await self.apply_operations(filename, [FillArea(frame, x, y, (r, g, b, a))])

    async def batch_operations(self, filename: str, operations_json: str) -> str:
        """Apply multiple drawing operations in a single batch."""
        try:
            operations = parse_operations(json.loads(operations_json))
        except ValueError as exc:
            return f"Invalid operations JSON: {exc}"
        return await self.apply_operations(filename, operations)

    async def apply_operations(self, filename: str, operations: Sequence[Operation]) -> str:
        """Send drawing operations to a pixel book and report the outcome."""
        operations = list(operations)
        request = {"operations": [dump_operation(op) for op in operations]}
        try:
            reply = await self._fetch("PUT", f"/books/{filename}", request)
        except _Unreachable as exc:
            return str(exc)
        count = len(operations)
        if not reply.ok:
            return f"Failed to apply operations to '{filename}': {reply.text}"
        try:
            body = reply.json()
        except ValueError as exc:
            return (
                f"Applied {count} operation(s) to '{filename}' "
                f"but failed to parse response: {exc}"
            )
        return f"Applied {count} operation(s) to '{filename}': {_pretty(body)}"


class _Kind(Enum):
    STRING = "string"
    BOOL = "bool"
    U8 = "u8"
    U16 = "u16"
    USIZE = "usize"
    OPERATIONS = "operations"


_INT_LIMITS = {
    _Kind.U8: ("uint8", 0xFF),
    _Kind.U16: ("uint16", 0xFFFF),
    _Kind.USIZE: ("uint", 0xFFFFFFFFFFFFFFFF),
}

_COLOR = (("r", _Kind.U8), ("g", _Kind.U8), ("b", _Kind.U8), ("a", _Kind.U8))

_TOOLS: dict[str, tuple[str, tuple[tuple[str, _Kind], ...]]] = {
    "health_check": ("Check if the PIXL server is running and healthy", ()),
    "get_path": ("Get the current file system path where pixel books are stored", ()),
    "set_path": (
        "Set the file system path where pixel books should be stored",
        (("path", _Kind.STRING),),
    ),
    "list_books": ("List all available pixel books in the current directory", ()),
    "create_book": (
        "Create a new pixel book with specified dimensions and frame count",
        (
            ("filename", _Kind.STRING),
            ("width", _Kind.U16),
            ("height", _Kind.U16),
            ("frames", _Kind.USIZE),
        ),
    ),
    "get_book": (
        "Get information about a specific pixel book",
        (("filename", _Kind.STRING),),
    ),
    "draw_pixel": (
        "Draw a single pixel at specified coordinates with a given color",
        (
            ("filename", _Kind.STRING),
            ("frame", _Kind.USIZE),
            ("x", _Kind.U16),
            ("y", _Kind.U16),
        )
        + _COLOR,
    ),
    "set_color": (
        "Set the current drawing color (for tools that use current color)",
        (("filename", _Kind.STRING),) + _COLOR,
    ),
    "draw_line": (
        "Draw a line between two points",
        (
            ("filename", _Kind.STRING),
            ("frame", _Kind.USIZE),
            ("start_x", _Kind.U16),
            ("start_y", _Kind.U16),
            ("end_x", _Kind.U16),
            ("end_y", _Kind.U16),
            ("line_type", _Kind.STRING),
        )
        + _COLOR,
    ),
    "draw_shape": (
        "Draw a shape (rectangle, circle, oval, or triangle)",
        (
            ("filename", _Kind.STRING),
            ("frame", _Kind.USIZE),
            ("shape_type", _Kind.STRING),
            ("x", _Kind.U16),
            ("y", _Kind.U16),
            ("width", _Kind.U16),
            ("height", _Kind.U16),
            ("filled", _Kind.BOOL),
        )
        + _COLOR,
    ),
    "draw_polygon": (
        "Draw a polygon from a list of points",
        (
            ("filename", _Kind.STRING),
            ("frame", _Kind.USIZE),
            ("points_json", _Kind.STRING),
            ("filled", _Kind.BOOL),
        )
        + _COLOR,
    ),
    "fill_area": (
        "Fill an area starting from the specified point with the given color (flood fill)",
        (
            ("filename", _Kind.STRING),
            ("frame", _Kind.USIZE),
            ("x", _Kind.U16),
            ("y", _Kind.U16),
        )
        + _COLOR,
    ),
    "batch_operations": (
        "Apply multiple drawing operations in a single batch",
        (("filename", _Kind.STRING), ("operations_json", _Kind.STRING)),
    ),
    "apply_operations": (
        "Helper method to apply operations to a pixel book",
        (("filename", _Kind.STRING), ("operations", _Kind.OPERATIONS)),
    ),
}


def _schema(kind: _Kind) -> dict[str, Any]:
    if kind is _Kind.STRING:
        return {"type": "string"}
    if kind is _Kind.BOOL:
        return {"type": "boolean"}
    if kind is _Kind.OPERATIONS:
        return {"type": "array", "items": {"type": "object"}}
    fmt, maximum = _INT_LIMITS[kind]
    return {"type": "integer", "format": fmt, "minimum": 0, "maximum": maximum}


def tool_definitions() -> list[dict[str, Any]]:
    """Describe every tool with its JSON input schema."""
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": {
                "type": "object",
                "properties": {param: _schema(kind) for param, kind in params},
                "required": [param for param, _ in params],
            },
        }
        for name, (description, params) in _TOOLS.items()
    ]


class _RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _invalid(message: str) -> _RpcError:
    return _RpcError(-32602, message)


def _convert(name: str, kind: _Kind, value: Any) -> Any:
    if kind is _Kind.STRING:
        if not isinstance(value, str):
            raise _invalid(f"`{name}` must be a string")
        return value
    if kind is _Kind.BOOL:
        if not isinstance(value, bool):
            raise _invalid(f"`{name}` must be a boolean")
        return value
    if kind is _Kind.OPERATIONS:
        try:
            return parse_operations(value)
        except ValueError as exc:
            raise _invalid(f"`{name}`: {exc}") from None
    _, maximum = _INT_LIMITS[kind]
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise _invalid(f"`{name}` must be an integer in 0..={maximum}")
    return value


async def _call_tool(server: PixlMcpServer, params: Mapping[str, Any]) -> dict[str, Any]:
    name = params.get("name")
    if name not in _TOOLS:
        raise _invalid(f"unknown tool: {name!r}")
    arguments = params.get("arguments") or {}
    if not isinstance(arguments, Mapping):
        raise _invalid("`arguments` must be an object")
    _, spec = _TOOLS[name]
    kwargs = {}
    for param, kind in spec:
        if param not in arguments:
            raise _invalid(f"missing argument `{param}`")
        kwargs[param] = _convert(param, kind, arguments[param])
    text = await getattr(server, name)(**kwargs)
    return {"content": [{"type": "text", "text": text}], "isError": False}


async def _dispatch(server: PixlMcpServer, method: Any, params: Mapping[str, Any]) -> Any:
    if method == "initialize":
        return {
            "protocolVersion": params.get("protocolVersion", DEFAULT_PROTOCOL_VERSION),
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            "instructions": INSTRUCTIONS,
        }
    if method == "ping":
        return {}
    if method == "tools/list":
        return {"tools": tool_definitions()}
    if method == "tools/call":
        return await _call_tool(server, params)
    if isinstance(method, str) and method.startswith("notifications/"):
        return None
    raise _RpcError(-32601, f"Method not found: {method}")


def _rpc_error(msg_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


async def handle_message(server: PixlMcpServer, message: Any) -> dict[str, Any] | None:
    """Answer one JSON-RPC message; notifications get no answer (None)."""
    if not isinstance(message, Mapping) or not isinstance(message.get("method"), str):
        msg_id = message.get("id") if isinstance(message, Mapping) else None
        return _rpc_error(msg_id, -32600, "Invalid Request")
    is_notification = "id" not in message
    msg_id = message.get("id")
    params = message.get("params") or {}
    if not isinstance(params, Mapping):
        return None if is_notification else _rpc_error(msg_id, -32602, "params must be an object")
    try:
        result = await _dispatch(server, message["method"], params)
    except _RpcError as exc:
        return None if is_notification else _rpc_error(msg_id, exc.code, exc.message)
    if is_notification:
        return None
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


async def _handle_line(server: PixlMcpServer, line: str) -> Any:
    try:
        message = json.loads(line)
    except ValueError as exc:
        return _rpc_error(None, -32700, f"Parse error: {exc}")
    if isinstance(message, list):
        replies = [await handle_message(server, item) for item in message]
        replies = [reply for reply in replies if reply is not None]
        return replies or None
    return await handle_message(server, message)


async def serve_stdio(server: PixlMcpServer) -> None:
    """Serve newline-delimited JSON-RPC on stdin and stdout until stdin closes."""
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        reply = await _handle_line(server, line)
        if reply is not None:
            sys.stdout.write(json.dumps(reply, ensure_ascii=False) + "\n")
            sys.stdout.flush()


async def _run(server_url: str | None) -> None:
    async with PixlMcpServer(server_url) as server:
        await serve_stdio(server)


def main(argv: list[str] | None = None) -> int:
    """Run the MCP server on stdio."""
    parser = argparse.ArgumentParser(
        prog="pixl-mcp", description="Pixel book tools over the Model Context Protocol."
    )
    parser.add_argument("--server-url", default=None, help="URL of the pixel book server")
    args = parser.parse_args(argv)

    # stdout carries the protocol, so logs may only go to stderr and only on request.
    if "PIXL_MCP_DEBUG" in os.environ:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    asyncio.run(_run(args.server_url))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())