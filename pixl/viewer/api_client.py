"""HTTP client for the pixel book server, as used by the viewer."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Mapping, TypeVar

import aiohttp

from pixl.viewer.models import PixelBook, PixelBookInfo

T = TypeVar("T")


class ApiError(Exception):
    """The server could not be reached or answered with an error."""


def _decode(build: Callable[[Any], T], data: Any, what: str) -> T:
    try:
        return build(data)
    except (ValueError, KeyError, TypeError) as exc:
        raise ApiError(f"invalid {what} in response: {exc}") from exc


def _books(data: Any) -> list[PixelBookInfo]:
    if not isinstance(data, Mapping) or not isinstance(data.get("books"), list):
        raise ValueError("expected an object with a `books` array")
    return [PixelBookInfo.from_dict(item) for item in data["books"]]


def _path(data: Any) -> str:
    if not isinstance(data, Mapping) or not isinstance(data.get("path"), str):
        raise ValueError("expected an object with a `path` string")
    return data["path"]


class ApiClient:
    """Reads books and settings from a pixel book server."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _get(self, path: str) -> tuple[int, str, bytes]:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        url = f"{self.base_url}{path}"
        try:
            async with self._session.get(url) as response:
                return response.status, response.reason or "", await response.read()
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            raise ApiError(f"request to {url} failed: {exc}") from exc

    async def _get_json(self, path: str) -> Any:
        status, reason, body = await self._get(path)
        if not 200 <= status < 300:
            raise ApiError(f"Server error: {status} {reason}".rstrip())
        try:
            return json.loads(body)
        except ValueError as exc:
            raise ApiError(f"invalid JSON in response: {exc}") from exc

    async def list_books(self) -> list[PixelBookInfo]:
        """The books in the server's storage directory."""
        return _decode(_books, await self._get_json("/books"), "book list")

    async def get_book(self, filename: str) -> PixelBook:
        """A whole book with its pixel data."""
        return _decode(PixelBook.from_dict, await self._get_json(f"/books/{filename}"), "book")

    async def get_path(self) -> str:
        """The server's storage directory."""
        return _decode(_path, await self._get_json("/path"), "path")

    async def health_check(self) -> bool:
        """True if the server answers its health endpoint successfully."""
        status, _, _ = await self._get("/")
        return 200 <= status < 300