"""Base protocols for the remote store layer."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from log_shipper.writer.batch import BufferEntry


class BulkStore(Protocol):
    """Protocol for the remote search/index store the shipper writes to.

    Failures are signalled by raising a ``StoreError`` subclass.
    """

    async def submit_bulk(
        self,
        entries: Sequence[BufferEntry],
        wait_for_active_shards: int | str,
        timeout: float,
    ) -> int:
        """Write all entries in one bulk request. Returns count written."""
        ...

    async def ping(self) -> bool:
        """Return True if the store is reachable."""
        ...

    async def get_template(self, name: str) -> dict[str, Any]:
        """Fetch a template body. Raises TemplateNotFoundError when absent."""
        ...

    async def create_template(self, name: str, body: dict[str, Any]) -> None:
        """Create a template; never overwrites an existing one."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
