"""Elasticsearch store on the async opensearch-py client.

Implements the BulkStore protocol against the REST API shared by Elasticsearch
and OpenSearch:

- ``POST /_bulk`` with an NDJSON body for bulk writes
- ``HEAD /`` for liveness
- ``GET`` / ``PUT /_template/<name>`` for legacy index templates
- ``POST /<index>/_search`` for the search helper

Every client failure surfaces as a ``StoreError`` subclass.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Self

from opensearchpy import (
    AsyncOpenSearch,
    ConnectionError as ClientConnectionError,
    ImproperlyConfigured,
    NotFoundError,
    OpenSearchException,
    TransportError,
)

from log_shipper.errors import (
    BulkRejectedError,
    StoreProtocolError,
    StoreResponseError,
    StoreUnavailableError,
    TemplateNotFoundError,
)

if TYPE_CHECKING:
    from log_shipper.writer.batch import BufferEntry


def encode_bulk_body(entries: Sequence[BufferEntry]) -> str:
    """Render entries as a bulk NDJSON body, one action line per document.

    Args:
        entries: Entries in submission order. Documents must be single-line JSON.

    Returns:
        str: NDJSON body terminated by a newline.
    """
    lines: list[str] = []
    for entry in entries:
        lines.append(json.dumps({"index": {"_index": entry.action}}))
        lines.append(entry.document)
    return "\n".join(lines) + "\n"


def _failed_items(response: dict[str, Any]) -> list[dict[str, Any]]:
    failed = []
    for item in response.get("items", []):
        for result in item.values():
            if "error" in result:
                failed.append(result)
    return failed


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate client exceptions into the store error hierarchy."""
    try:
        yield
    except ClientConnectionError as exc:
        # Includes ConnectionTimeout and transport-level decode failures.
        raise StoreUnavailableError(f"{operation} failed: {exc}") from exc
    except TransportError as exc:
        status = exc.status_code if isinstance(exc.status_code, int) else 0
        raise StoreResponseError(status, exc.info) from exc
    except (OpenSearchException, ImproperlyConfigured, ValueError) as exc:
        raise StoreProtocolError(f"{operation} failed: {exc!r}") from exc


class ElasticsearchStore:
    """Async Elasticsearch store implementing the BulkStore protocol.

    Retries are disabled on the client: the flush cycle and the connectivity
    probe own retry policy. The client opens its HTTP session lazily inside the
    running event loop.

    Args:
        node_url: Base URL of the Elasticsearch node.
        request_timeout: Default timeout for non-bulk requests, in seconds.
        headers: Extra headers sent with every request (e.g. authorization).
        client: Optional externally owned client; it is not closed by ``close()``.

    Example:
        ```python
        async with ElasticsearchStore("http://localhost:9200") as store:
            if await store.ping():
                await store.submit_bulk(entries, wait_for_active_shards=1, timeout=5.0)
        ```
    """

    def __init__(
        self,
        node_url: str = "http://localhost:9200",
        request_timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        client: AsyncOpenSearch | None = None,
    ) -> None:
        self._node_url = node_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or AsyncOpenSearch(
            hosts=[self._node_url],
            timeout=request_timeout,
            headers=headers or {},
            max_retries=0,
            retry_on_status=(),
            retry_on_timeout=False,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def node_url(self) -> str:
        """Base URL of the Elasticsearch node."""
        return self._node_url

    @property
    def client(self) -> AsyncOpenSearch:
        return self._client

    async def submit_bulk(
        self,
        entries: Sequence[BufferEntry],
        wait_for_active_shards: int | str,
        timeout: float,
    ) -> int:
        """Write all entries in one ``_bulk`` request.

        Returns:
            int: Number of entries written.

        Raises:
            StoreUnavailableError: If the node could not be reached in time.
            StoreResponseError: If the request was refused as a whole.
            BulkRejectedError: If any item was rejected.
        """
        if not entries:
            return 0

        with _store_errors("bulk"):
            response = await self._client.bulk(
                body=encode_bulk_body(entries),
                wait_for_active_shards=wait_for_active_shards,
                timeout=f"{int(timeout * 1000)}ms",
                request_timeout=timeout,
            )

        if isinstance(response, dict) and response.get("errors"):
            raise BulkRejectedError(_failed_items(response), total=len(entries))

        return len(entries)

    async def ping(self) -> bool:
        """Return True if the node answers ``HEAD /`` with a 2xx status."""
        with _store_errors("ping"):
            return bool(await self._client.ping())

    async def get_template(self, name: str) -> dict[str, Any]:
        """Fetch a legacy index template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            StoreResponseError: On any other error status.
        """
        with _store_errors(f"get template {name}"):
            try:
                body = await self._client.indices.get_template(name=name)
            except NotFoundError as exc:
                raise TemplateNotFoundError(name) from exc
        if not isinstance(body, dict):
            return {}
        template: dict[str, Any] = body.get(name, body)
        return template

    async def create_template(self, name: str, body: dict[str, Any]) -> None:
        """Create a legacy index template without overwriting an existing one.

        Raises:
            StoreResponseError: If the node refused the template.
        """
        with _store_errors(f"create template {name}"):
            await self._client.indices.put_template(name=name, body=body, create=True)

    async def search(self, index: str, q: str) -> dict[str, Any]:
        """Run a Lucene query-string search against an index.

        Raises:
            StoreResponseError: On error status.
        """
        with _store_errors(f"search {index}"):
            result = await self._client.search(index=index, q=q)
        return result if isinstance(result, dict) else {}

    async def close(self) -> None:
        """Close the client if this store created it."""
        if self._owns_client:
            with _store_errors("close"):
                await self._client.close()
