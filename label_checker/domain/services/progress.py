"""Push channel carrying pipeline events to a transport adapter."""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional

from ..models.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    VerificationEvent,
    is_terminal,
)

logger = logging.getLogger(__name__)


class ChannelClosedError(RuntimeError):
    """Raised when publishing after the terminal event."""


class ProgressChannel:
    """Single-writer event channel closed by exactly one terminal event.

    Progress percentages never decrease: a lower value is raised to the last
    one published.
    """

    def __init__(self, maxsize: int = 0):
        """Initialize the channel.

        Args:
            maxsize: Queue bound, 0 for unbounded
        """
        self._queue: asyncio.Queue[Optional[VerificationEvent]] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._last_progress = 0

    @property
    def closed(self) -> bool:
        """Whether a terminal event has been published."""
        return self._closed

    async def progress(
        self, message: str, progress: int, data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Publish a progress event."""
        progress = max(self._last_progress, min(100, progress))
        await self.publish(ProgressEvent(message=message, progress=progress, data=data))

    async def fail(self, message: str) -> None:
        """Publish the terminal error event."""
        await self.publish(ErrorEvent(message=message))

    async def complete(self, data: Dict[str, Any]) -> None:
        """Publish the terminal completion event."""
        await self.publish(CompleteEvent(data=data))

    async def publish(self, event: VerificationEvent) -> None:
        """Enqueue an event; a terminal event closes the channel."""
        if self._closed:
            raise ChannelClosedError(f"Channel closed, dropping {event.type} event")
        if isinstance(event, ProgressEvent):
            self._last_progress = event.progress
        if is_terminal(event):
            self._closed = True
        await self._queue.put(event)
        if self._closed:
            await self._queue.put(None)

    async def events(self) -> AsyncIterator[VerificationEvent]:
        """Drain events until the terminal one has been delivered."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def __aiter__(self) -> AsyncIterator[VerificationEvent]:
        return self.events()
