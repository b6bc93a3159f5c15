"""Listening to a book's server-sent events and buffering them for the viewer."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections import deque

import aiohttp

from pixl.viewer.models import PixelBookEvent

logger = logging.getLogger(__name__)

MAX_BUFFERED_EVENTS = 100
_DATA_PREFIX = "data: "


def parse_sse_event(event_text: str) -> PixelBookEvent | None:
    """The first book event found on a ``data:`` line of one SSE message, if any."""
    for line in event_text.splitlines():
        if not line.startswith(_DATA_PREFIX):
            continue
        data = line[len(_DATA_PREFIX):]
        try:
            return PixelBookEvent.from_dict(json.loads(data))
        except ValueError as exc:
            # Connection and heartbeat messages are not book events.
            if "heartbeat" not in data and "connected" not in data:
                logger.warning("failed to parse SSE event: %s - data: %s", exc, data)
    return None


class EventClient:
    """Follows one book's event stream in the background."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.current_filename: str | None = None
        self._events: deque[PixelBookEvent] = deque(maxlen=MAX_BUFFERED_EVENTS)
        self._listener: asyncio.Task[None] | None = None

    async def connect(self, filename: str) -> None:
        """Start listening for ``filename``'s events, replacing any earlier listener."""
        await self._stop_listener()
        self.current_filename = filename
        url = f"{self.base_url}/books/{filename}/events"
        logger.info("connecting to SSE endpoint: %s", url)
        self._listener = asyncio.create_task(self._listen(url))

    async def _listen(self, url: str) -> None:
        try:
            await self._stream(url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # the listener must never take the viewer down
            logger.warning("SSE connection error: %s", exc)
        else:
            logger.info("SSE connection closed")

    async def _stream(self, url: str) -> None:
        timeout = aiohttp.ClientTimeout(total=None, sock_read=None)
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers) as response:
                if not 200 <= response.status < 300:
                    raise ConnectionError(
                        f"SSE connection failed: {response.status} {response.reason or ''}".rstrip()
                    )
                buffer = ""
                async for chunk in response.content.iter_any():
                    buffer += chunk.decode("utf-8", errors="replace")
                    while "\n\n" in buffer:
                        event_text, buffer = buffer.split("\n\n", 1)
                        event = parse_sse_event(event_text)
                        if event is not None:
                            logger.debug("received SSE event: %s", event)
                            self._events.append(event)

    async def _stop_listener(self) -> None:
        task, self._listener = self._listener, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def disconnect(self) -> None:
        """Stop following the current book."""
        self.current_filename = None
        await self._stop_listener()
        logger.info("disconnected from real-time updates")

    async def poll_events(self) -> list[PixelBookEvent] | None:
        """Take every buffered event, oldest first; None if there are none."""
        if not self._events:
            return None
        events = list(self._events)
        self._events.clear()
        return events

    def is_connected(self) -> bool:
        return self.current_filename is not None