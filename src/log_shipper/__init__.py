"""Async Log Shipper.

Buffered, non-blocking shipping of application log records to Elasticsearch,
with rollback of failed bulk writes and a bootstrap connectivity probe.
"""

from log_shipper.adapters import ElasticsearchHandler, LogData, default_transformer
from log_shipper.bootstrap import ConnectivityProbe, ProbeState
from log_shipper.config import ProbeConfig, ShipperConfig, WriterConfig
from log_shipper.errors import (
    BulkRejectedError,
    ProbeExhaustedError,
    ShipperError,
    StoreError,
    StoreProtocolError,
    StoreResponseError,
    StoreUnavailableError,
    TemplateNotFoundError,
    TemplateProvisioningError,
)
from log_shipper.store import BulkStore, ElasticsearchStore
from log_shipper.writer import (
    BufferedBatch,
    BufferEntry,
    BulkFlusher,
    BulkWriter,
    ErrorSource,
    FlushScheduler,
    WriterErrorEvent,
)

__version__ = "0.1.0"

__all__ = [
    "BufferEntry",
    "BufferedBatch",
    "BulkFlusher",
    "BulkRejectedError",
    "BulkStore",
    "BulkWriter",
    "ConnectivityProbe",
    "ElasticsearchHandler",
    "ElasticsearchStore",
    "ErrorSource",
    "FlushScheduler",
    "LogData",
    "ProbeConfig",
    "ProbeExhaustedError",
    "ProbeState",
    "ShipperConfig",
    "ShipperError",
    "StoreError",
    "StoreProtocolError",
    "StoreResponseError",
    "StoreUnavailableError",
    "TemplateNotFoundError",
    "TemplateProvisioningError",
    "WriterConfig",
    "WriterErrorEvent",
    "default_transformer",
]
