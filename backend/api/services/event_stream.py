"""Server-sent event stream for a single HTTP response.

The producer (an illustration run) calls emit()/close(); the HTTP response
iterates frames(). Frames are handed over one at a time as soon as they are
emitted. Once the consumer goes away, further emits are dropped.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional

from backend.core.types import StreamEvent

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering (nginx)
}


def format_sse(event: str, data: dict[str, Any]) -> str:
    """Encode one event as an SSE frame: event line, data line, blank line."""
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


class EventStream:
    """Ordered, unbuffered channel of SSE frames between a run and a response."""

    def __init__(self):
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        """True once the consumer stopped reading before the stream was closed."""
        return self._disconnected

    @property
    def is_open(self) -> bool:
        return not self._closed and not self._disconnected

    async def emit(self, event: str, data: Optional[dict[str, Any]] = None) -> bool:
        """Queue one frame. Returns False if the stream can no longer be written."""
        if not self.is_open:
            logger.debug(f"Dropping '{event}' event: stream is no longer open")
            return False
        await self._queue.put(format_sse(event, data or {}))
        return True

    async def send(self, event: StreamEvent) -> bool:
        return await self.emit(event.event, event.data)

    async def close(self) -> None:
        """End the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(None)

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames until the stream is closed."""
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    return
                yield frame
        finally:
            if not self._closed:
                self._disconnected = True
