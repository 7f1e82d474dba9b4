"""Bulk flusher: drains the batch into one bulk request, rolling back on failure."""

import asyncio
import json
import logging
import time
from datetime import UTC, datetime

from log_shipper.store.base import BulkStore
from log_shipper.writer.batch import BufferedBatch

logger = logging.getLogger(__name__)


class BulkFlusher:
    """Submits the pending batch to the store as a single bulk request.

    On any failure the exact drained sequence is put back at the front of the
    live batch and the error is re-raised, so nothing is dropped and the next
    flush retries it together with whatever was appended meanwhile.

    Args:
        batch: The live batch shared with producers.
        store: Store collaborator receiving the bulk request.
        wait_for_active_shards: Shard copies that must acknowledge the write.
        timeout: Bulk request timeout in seconds.
    """

    def __init__(
        self,
        batch: BufferedBatch,
        store: BulkStore,
        wait_for_active_shards: int | str = 1,
        timeout: float = 5.0,
    ) -> None:
        self._batch = batch
        self._store = store
        self._wait_for_active_shards = wait_for_active_shards
        self._timeout = timeout
        self._lock = asyncio.Lock()

        # Metrics
        self._flush_count = 0
        self._failed_count = 0
        self._documents_written = 0

    @property
    def flush_count(self) -> int:
        """Number of successful non-empty flushes."""
        return self._flush_count

    @property
    def failed_count(self) -> int:
        """Number of flushes that were rolled back."""
        return self._failed_count

    @property
    def documents_written(self) -> int:
        """Number of entries acknowledged by the store."""
        return self._documents_written

    async def flush(self) -> int:
        """Flush everything pending.

        Returns:
            int: Number of entries written; 0 when the batch was empty.

        Raises:
            StoreError: If the bulk request failed. Entries are restored first.
        """
        async with self._lock:
            if self._batch.is_empty:
                logger.debug("nothing to flush")
                return 0

            in_flight = self._batch.drain_all()
            start_time = time.perf_counter()
            try:
                await self._store.submit_bulk(
                    in_flight,
                    self._wait_for_active_shards,
                    self._timeout,
                )
            except BaseException as exc:
                # CancelledError included: entries must survive loop shutdown too.
                self._batch.restore_front(in_flight)
                self._failed_count += 1
                self._log_result("bulk_flush_failed", len(in_flight), start_time, exc)
                raise

            self._flush_count += 1
            self._documents_written += len(in_flight)
            self._log_result("bulk_flush_succeeded", len(in_flight), start_time)
            return len(in_flight)

    def _log_result(
        self,
        event: str,
        count: int,
        start_time: float,
        exc: BaseException | None = None,
    ) -> None:
        log_entry = {
            "event": event,
            "entries": count,
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 3),
            "pending": len(self._batch),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        if exc is None:
            logger.debug(json.dumps(log_entry))
        else:
            log_entry["error"] = repr(exc)
            logger.warning(json.dumps(log_entry))
