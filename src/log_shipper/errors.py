"""Exception hierarchy for the log shipper.

Flush and probe failures are never raised into the logging caller; they are
delivered through the writer's error channel as typed events carrying one of
these exceptions.
"""

from typing import Any


class ShipperError(Exception):
    """Base error for the log shipper."""

    pass


class StoreError(ShipperError):
    """Raised by a store collaborator when an operation fails."""

    pass


class StoreUnavailableError(StoreError):
    """Store could not be reached (connection refused, timeout, reset)."""

    pass


class StoreResponseError(StoreError):
    """Store answered with an error status."""

    def __init__(self, status: int, body: Any = None) -> None:
        super().__init__(f"Store responded with HTTP {status}: {body!r}")
        self.status = status
        self.body = body


class StoreProtocolError(StoreError):
    """Store exchange failed outside HTTP semantics (undecodable body, bad client setup)."""

    pass


class BulkRejectedError(StoreError):
    """Bulk request was accepted but one or more items were rejected.

    The whole batch is treated as failed and rolled back.
    """

    def __init__(self, failed_items: list[dict[str, Any]], total: int) -> None:
        super().__init__(f"{len(failed_items)} of {total} bulk items rejected")
        self.failed_items = failed_items
        self.total = total


class TemplateNotFoundError(StoreError):
    """Requested index template does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Index template '{name}' not found")
        self.name = name


class ProbeExhaustedError(ShipperError):
    """Raised when every connectivity ping has failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.attempt_count: int = 0


class TemplateProvisioningError(ShipperError):
    """Raised when the index template could not be fetched or created."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"Provisioning of template '{name}' failed: {message}")
        self.name = name


__all__ = [
    "BulkRejectedError",
    "ProbeExhaustedError",
    "ShipperError",
    "StoreError",
    "StoreProtocolError",
    "StoreResponseError",
    "StoreUnavailableError",
    "TemplateNotFoundError",
    "TemplateProvisioningError",
]
