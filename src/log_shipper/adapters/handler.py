"""Stdlib logging handler shipping records through a BulkWriter."""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from log_shipper.adapters.index_name import index_name
from log_shipper.adapters.transform import LogData, Transformer, default_transformer
from log_shipper.bootstrap.probe import ConnectivityProbe
from log_shipper.config import ShipperConfig
from log_shipper.store.base import BulkStore
from log_shipper.store.elasticsearch import ElasticsearchStore
from log_shipper.writer.bulk_writer import BulkWriter
from log_shipper.writer.events import WriterErrorEvent

# Diagnostics of the shipper and of its store client are never shipped.
INTERNAL_LOGGERS = ("log_shipper", "opensearch", "opensearchpy")

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def is_internal_logger(name: str) -> bool:
    """True for an internal logger or one of its children."""
    return any(name == root or name.startswith(f"{root}.") for root in INTERNAL_LOGGERS)


def record_meta(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the structured fields of a record.

    Includes the logger name, any ``extra=`` attributes and the formatted
    exception, if present.
    """
    meta: dict[str, Any] = {"logger": record.name}
    for key, value in vars(record).items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            meta[key] = value
    if record.exc_info:
        meta["exception"] = logging.Formatter().formatException(record.exc_info)
    return meta


class ElasticsearchHandler(logging.Handler):
    """Logging handler that ships records to Elasticsearch in bulk.

    Records are transformed and appended to a BulkWriter; ``emit`` never
    performs I/O. The writer starts on construction, so the handler must be
    created inside a running event loop unless ``start=False``. A connectivity
    probe provisions the index template in the background.

    Args:
        config: Shipper settings; defaults to ``ShipperConfig()``.
        store: Store collaborator; defaults to an ElasticsearchStore on ``config.node_url``.
        level: Minimum level handled.
        transformer: Maps LogData to the stored document.
        timestamp: Callable returning the record timestamp; defaults to the record's creation time.
        on_error: Callback receiving every WriterErrorEvent.
        start: Start the writer immediately.

    Example:
        ```python
        async def main():
            handler = ElasticsearchHandler(ShipperConfig(index_prefix="myapp"))
            logging.getLogger().addHandler(handler)
            logging.getLogger("app").info("started", extra={"port": 8080})
            ...
            await handler.aclose()
        ```
    """

    def __init__(
        self,
        config: ShipperConfig | None = None,
        store: BulkStore | None = None,
        level: int = logging.NOTSET,
        transformer: Transformer = default_transformer,
        timestamp: Callable[[], str] | None = None,
        on_error: Callable[[WriterErrorEvent], None] | None = None,
        start: bool = True,
    ) -> None:
        super().__init__(level)
        self._config = config or ShipperConfig()
        self._owns_store = store is None
        self._store: BulkStore = store or ElasticsearchStore(self._config.node_url)
        self._transformer = transformer
        self._timestamp = timestamp

        probe = ConnectivityProbe(
            self._store,
            replace(self._config.probe, template_name=self._config.template_name),
            index_prefix=self._config.index_prefix,
        )
        self.writer = BulkWriter(
            self._store,
            self._config.writer,
            probe=probe,
            on_error=on_error,
        )
        if start:
            self.writer.start()

    @property
    def config(self) -> ShipperConfig:
        return self._config

    def current_index(self) -> str:
        """Index that records logged now are written to."""
        return index_name(
            self._config.index,
            self._config.index_prefix,
            self._config.index_date_format,
        )

    def to_log_data(self, record: logging.LogRecord) -> LogData:
        if self._timestamp is not None:
            timestamp = self._timestamp()
        else:
            timestamp = datetime.fromtimestamp(record.created, UTC).isoformat()
        return LogData(
            message=record.getMessage(),
            level=record.levelname.lower(),
            meta=record_meta(record),
            timestamp=timestamp,
        )

    def emit(self, record: logging.LogRecord) -> None:
        if is_internal_logger(record.name):
            return
        try:
            document = self._transformer(self.to_log_data(record))
            self.writer.append(self.current_index(), document)
        except Exception:
            self.handleError(record)

    async def search(self, q: str) -> dict[str, Any]:
        """Search the current index with a query-string query.

        Raises:
            NotImplementedError: If the store does not support search.
        """
        search = getattr(self._store, "search", None)
        if search is None:
            raise NotImplementedError(f"{type(self._store).__name__} does not support search")
        result: dict[str, Any] = await search(self.current_index(), q)
        return result

    def close(self) -> None:
        """Stop periodic flushing. Use ``aclose()`` to also flush what is left."""
        self.writer.stop()
        super().close()

    async def aclose(self) -> None:
        """Flush remaining records, stop the writer and release the store."""
        try:
            await self.writer.close()
        finally:
            if self._owns_store:
                await self._store.close()
            super().close()
