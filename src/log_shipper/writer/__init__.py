"""Buffered bulk writer module."""

from log_shipper.writer.batch import BufferedBatch, BufferEntry
from log_shipper.writer.events import ErrorChannel, ErrorSource, WriterErrorEvent
from log_shipper.writer.flusher import BulkFlusher
from log_shipper.writer.scheduler import FlushScheduler, SchedulerState
from log_shipper.writer.bulk_writer import BulkWriter, WriterMetrics

__all__ = [
    "BufferEntry",
    "BufferedBatch",
    "BulkFlusher",
    "BulkWriter",
    "ErrorChannel",
    "ErrorSource",
    "FlushScheduler",
    "SchedulerState",
    "WriterErrorEvent",
    "WriterMetrics",
]
