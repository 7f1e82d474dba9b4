"""Buffered bulk writer: the surface exposed to logging adapters."""

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Self

from log_shipper.bootstrap.probe import ConnectivityProbe
from log_shipper.config import WriterConfig
from log_shipper.errors import ProbeExhaustedError, TemplateProvisioningError
from log_shipper.store.base import BulkStore
from log_shipper.writer.batch import BufferedBatch, BufferEntry
from log_shipper.writer.events import ErrorChannel, ErrorSource, WriterErrorEvent
from log_shipper.writer.flusher import BulkFlusher
from log_shipper.writer.scheduler import FlushScheduler

logger = logging.getLogger(__name__)


@dataclass
class WriterMetrics:
    """Metrics for tracking writer throughput and failures."""

    pending: int
    flushes: int
    failed_flushes: int
    documents_written: int
    errors_published: int
    events_dropped: int
    connected: bool


class BulkWriter:
    """
    Buffered, non-blocking bulk writer with rollback on failure.

    ``append`` queues a document and returns immediately from any thread. A
    FlushScheduler periodically hands the whole batch to a BulkFlusher; failed
    batches are restored to the front of the buffer and retried on the next
    cycle. Failures are reported through ``errors``, never raised into
    ``append``.

    When a ConnectivityProbe is given it runs once, in the background, the
    first time the writer starts. Its outcome does not gate flushing.

    Args:
        store: Store collaborator receiving bulk requests.
        config: Writer settings.
        probe: Optional connectivity probe run on first start.
        on_error: Optional callback subscribed to the error channel.

    Example:
        ```python
        async with BulkWriter(store, WriterConfig(flush_interval=2.0)) as writer:
            writer.append("logs-2024.01.01", {"message": "hello"})
        # remaining entries are flushed on exit
        ```
    """

    def __init__(
        self,
        store: BulkStore,
        config: WriterConfig | None = None,
        probe: ConnectivityProbe | None = None,
        on_error: Callable[[WriterErrorEvent], None] | None = None,
    ) -> None:
        self._config = config or WriterConfig()
        self._store = store
        self._batch = BufferedBatch()
        self._flusher = BulkFlusher(
            self._batch,
            store,
            wait_for_active_shards=self._config.wait_for_active_shards,
            timeout=self._config.bulk_timeout,
        )
        self._errors = ErrorChannel(maxsize=self._config.max_error_events)
        if on_error is not None:
            self._errors.subscribe(on_error)
        self._scheduler = FlushScheduler(
            self._flusher.flush,
            interval=self._config.flush_interval,
            on_error=self._report_flush_error,
        )
        self._probe = probe
        self._probe_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def errors(self) -> ErrorChannel:
        """Channel of failures reported by the flush cycle and the probe."""
        return self._errors

    @property
    def pending(self) -> int:
        """Number of entries waiting to be flushed."""
        return len(self._batch)

    @property
    def is_running(self) -> bool:
        """Check if periodic flushing is active."""
        return self._scheduler.is_running

    @property
    def connected(self) -> bool:
        """Whether the connectivity probe reached the store."""
        return self._probe is not None and self._probe.state.connected

    @property
    def probe_task(self) -> asyncio.Task[None] | None:
        """Background task running the connectivity probe, once started."""
        return self._probe_task

    @property
    def scheduler(self) -> FlushScheduler:
        return self._scheduler

    def append(self, index: str, document: Mapping[str, Any] | str) -> None:
        """Queue one document for the given index. Never raises.

        Strings must hold one JSON document; they are re-encoded on a single
        line so the bulk body keeps its framing. Invalid documents are logged
        and dropped.

        Args:
            index: Target index name.
            document: JSON-serializable mapping, or an already-serialized JSON string.
        """
        try:
            if isinstance(document, str):
                document = json.loads(document)
            payload = json.dumps(document, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Dropping document that is not valid JSON")
            return
        self._batch.append(BufferEntry(action=index, document=payload))

    def start(self) -> None:
        """Start periodic flushing; run the probe on first start.

        Must be called from within a running event loop.
        """
        self._scheduler.start()
        if self._probe is not None and self._probe_task is None:
            self._probe_task = asyncio.get_running_loop().create_task(self._run_probe())

    def stop(self) -> None:
        """Stop scheduling further flushes. An in-flight flush still completes."""
        self._scheduler.stop()

    async def flush(self) -> int:
        """Flush pending entries now.

        Returns:
            int: Number of entries written.

        Raises:
            StoreError: If the bulk request failed; entries stay buffered.
        """
        return await self._flusher.flush()

    async def close(self) -> None:
        """Stop the writer, wait for the in-flight flush and flush what is left.

        A failing final flush is reported on the error channel and the entries
        remain buffered.
        """
        self.stop()
        await self._scheduler.wait_idle()

        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._probe_task

        try:
            await self._flusher.flush()
        except Exception as exc:
            self._report_flush_error(exc)

    def get_metrics(self) -> WriterMetrics:
        """Get current writer metrics.

        Returns:
            WriterMetrics: Current metrics.
        """
        return WriterMetrics(
            pending=len(self._batch),
            flushes=self._flusher.flush_count,
            failed_flushes=self._flusher.failed_count,
            documents_written=self._flusher.documents_written,
            errors_published=self._errors.published,
            events_dropped=self._errors.dropped,
            connected=self.connected,
        )

    def _report_flush_error(self, exc: Exception) -> None:
        self._errors.publish(ErrorSource.FLUSH, exc)

    async def _run_probe(self) -> None:
        if self._probe is None:
            return
        try:
            await self._probe.run()
        except ProbeExhaustedError as exc:
            self._errors.publish(ErrorSource.PROBE, exc)
        except TemplateProvisioningError as exc:
            self._errors.publish(ErrorSource.TEMPLATE, exc)
        except Exception as exc:
            logger.exception("Connectivity probe failed unexpectedly")
            self._errors.publish(ErrorSource.PROBE, exc)
