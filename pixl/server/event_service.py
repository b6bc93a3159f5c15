"""In-memory record of what happened to each pixel book, for live viewers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pixl.server.operations import Operation, dump_operation

logger = logging.getLogger(__name__)


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class EventKind(str, Enum):
    DRAWING_OPERATION = "drawing_operation"
    BOOK_SAVED = "book_saved"
    BOOK_LOADED = "book_loaded"
    FRAME_CHANGED = "frame_changed"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class PixelBookEvent:
    """Something that happened to one book at one moment."""

    filename: str
    timestamp: datetime
    kind: EventKind
    operation: Operation | None = None
    frame_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """The JSON object form; the event type is tagged by ``type``."""
        event_type: dict[str, Any] = {"type": self.kind.value}
        if self.kind is EventKind.DRAWING_OPERATION:
            event_type["operation"] = dump_operation(self.operation)
        elif self.kind is EventKind.FRAME_CHANGED:
            event_type["frame_index"] = self.frame_index
        return {
            "filename": self.filename,
            "timestamp": _rfc3339(self.timestamp),
            "event_type": event_type,
        }


class EventService:
    """Keeps every emitted event, grouped by book filename."""

    def __init__(self) -> None:
        self._events: dict[str, list[PixelBookEvent]] = {}

    async def emit_event(
        self,
        filename: str,
        kind: EventKind | str,
        operation: Operation | None = None,
        frame_index: int | None = None,
    ) -> PixelBookEvent:
        """Record an event for ``filename`` stamped with the current time."""
        kind = EventKind(kind)
        if kind is EventKind.DRAWING_OPERATION and operation is None:
            raise ValueError("a drawing_operation event needs an operation")
        if kind is EventKind.FRAME_CHANGED and frame_index is None:
            raise ValueError("a frame_changed event needs a frame index")

        event = PixelBookEvent(
            filename=filename,
            timestamp=datetime.now(timezone.utc),
            kind=kind,
            operation=operation if kind is EventKind.DRAWING_OPERATION else None,
            frame_index=frame_index if kind is EventKind.FRAME_CHANGED else None,
        )
        logger.debug("emitting event for %s: %s", filename, kind.value)
        file_events = self._events.setdefault(filename, [])
        file_events.append(event)
        logger.debug("total events for %s: %d", filename, len(file_events))
        return event

    async def get_recent_events(self, filename: str, since: datetime) -> list[PixelBookEvent]:
        """Events for ``filename`` stamped strictly after ``since``, oldest first."""
        return [event for event in self._events.get(filename, ()) if event.timestamp > since]

    async def clear_old_events(self, filename: str, older_than: datetime) -> None:
        """Drop events for ``filename`` not stamped strictly after ``older_than``."""
        if filename in self._events:
            self._events[filename] = [
                event for event in self._events[filename] if event.timestamp > older_than
            ]

    async def on_drawing_operation(self, filename: str, operation: Operation) -> None:
        await self.emit_event(filename, EventKind.DRAWING_OPERATION, operation=operation)

    async def on_book_saved(self, filename: str) -> None:
        await self.emit_event(filename, EventKind.BOOK_SAVED)

    async def on_book_loaded(self, filename: str) -> None:
        await self.emit_event(filename, EventKind.BOOK_LOADED)

    async def on_frame_changed(self, filename: str, frame_index: int) -> None:
        await self.emit_event(filename, EventKind.FRAME_CHANGED, frame_index=frame_index)