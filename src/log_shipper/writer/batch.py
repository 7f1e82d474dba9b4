"""Ordered in-memory buffer of pending bulk write operations."""

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BufferEntry:
    """A single pending write operation.

    Attributes:
        action: Target index name.
        document: Already-serialized JSON document.
    """

    action: str
    document: str


class BufferedBatch:
    """Ordered, unbounded queue of BufferEntry shared by producers and the flusher.

    Every mutation happens under one ``threading.Lock`` so producers on any
    thread can append while the event loop drains or restores. The lock is
    never held across I/O, so ``append`` does not wait for a flush.

    Example:
        ```python
        batch = BufferedBatch()
        batch.append(BufferEntry("logs-2024.01.01", '{"message": "hi"}'))

        in_flight = batch.drain_all()
        try:
            await store.submit_bulk(in_flight, 1, 5.0)
        except StoreError:
            batch.restore_front(in_flight)
        ```
    """

    def __init__(self) -> None:
        self._entries: deque[BufferEntry] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def is_empty(self) -> bool:
        """Check if no entries are pending."""
        return len(self) == 0

    def append(self, entry: BufferEntry) -> None:
        """Queue an entry behind everything already pending."""
        with self._lock:
            self._entries.append(entry)

    def drain_all(self) -> list[BufferEntry]:
        """Atomically remove and return every pending entry, oldest first."""
        with self._lock:
            drained = list(self._entries)
            self._entries.clear()
        return drained

    def restore_front(self, entries: Iterable[BufferEntry]) -> None:
        """Reinsert previously drained entries ahead of anything appended since.

        Args:
            entries: Entries in their original order.
        """
        restored = list(entries)
        if not restored:
            return
        with self._lock:
            self._entries.extendleft(reversed(restored))

    def snapshot(self) -> list[BufferEntry]:
        """Return a copy of the pending entries without removing them."""
        with self._lock:
            return list(self._entries)
