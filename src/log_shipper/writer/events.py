"""Typed error notifications published by the writer."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorSource(str, Enum):
    """Component that produced a WriterErrorEvent.

    Attributes:
        FLUSH: A bulk flush failed and was rolled back.
        PROBE: Every connectivity ping failed.
        TEMPLATE: The index template could not be fetched or created.
    """

    FLUSH = "flush"
    PROBE = "probe"
    TEMPLATE = "template"


@dataclass(frozen=True, slots=True)
class WriterErrorEvent:
    """One unrecoverable failure reported to the writer's owner.

    Attributes:
        source: Which component failed.
        error: The underlying exception.
        timestamp: Unix timestamp when the failure was published.
    """

    source: ErrorSource
    error: BaseException
    timestamp: float = field(default_factory=time.time)


class ErrorChannel:
    """Bounded, non-blocking channel of WriterErrorEvent.

    Publishing never waits: when the channel is full the oldest event is
    dropped and counted. Consumers either await events or register callbacks.

    Args:
        maxsize: Maximum number of undelivered events kept. Default 1000.

    Example:
        ```python
        writer.start()
        while True:
            event = await writer.errors.get()
            print(event.source, event.error)
        ```
    """

    def __init__(self, maxsize: int = 1000) -> None:
        self._queue: asyncio.Queue[WriterErrorEvent] = asyncio.Queue(maxsize=maxsize)
        self._subscribers: list[Callable[[WriterErrorEvent], None]] = []
        self._published = 0
        self._dropped = 0

    @property
    def published(self) -> int:
        """Total number of events published."""
        return self._published

    @property
    def dropped(self) -> int:
        """Number of events discarded because nobody consumed them in time."""
        return self._dropped

    def __len__(self) -> int:
        return self._queue.qsize()

    def subscribe(self, callback: Callable[[WriterErrorEvent], None]) -> None:
        """Register a callback invoked synchronously for every published event."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[WriterErrorEvent], None]) -> None:
        """Remove a previously registered callback."""
        self._subscribers.remove(callback)

    def publish(self, source: ErrorSource, error: BaseException) -> WriterErrorEvent:
        """Publish a failure without blocking.

        Args:
            source: Component that failed.
            error: The underlying exception.

        Returns:
            WriterErrorEvent: The published event.
        """
        event = WriterErrorEvent(source=source, error=error)
        self._published += 1

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self._dropped += 1
            self._queue.put_nowait(event)

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Error channel subscriber failed")

        return event

    async def get(self) -> WriterErrorEvent:
        """Wait for the next event."""
        return await self._queue.get()

    def get_nowait(self) -> WriterErrorEvent:
        """Return the next event.

        Raises:
            asyncio.QueueEmpty: If no event is pending.
        """
        return self._queue.get_nowait()

    def drain(self) -> list[WriterErrorEvent]:
        """Remove and return every pending event, oldest first."""
        events = []
        while not self._queue.empty():
            events.append(self._queue.get_nowait())
        return events
