"""Mapping of log records to the documents stored in Elasticsearch."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class LogData:
    """Framework-neutral view of one log record.

    Attributes:
        message: Rendered log message.
        level: Level name, e.g. "info" or "error".
        meta: Extra structured fields attached to the record.
        timestamp: ISO-8601 timestamp of the record.
    """

    message: str
    level: str
    meta: dict[str, Any] = field(default_factory=dict)
    timestamp: str | None = None


Transformer = Callable[[LogData], dict[str, Any]]


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(UTC).isoformat()


def default_transformer(log_data: LogData) -> dict[str, Any]:
    """Transform log data into a logstash-like document.

    Args:
        log_data: The record to transform.

    Returns:
        dict[str, Any]: Document with ``@timestamp``, ``message``, ``severity``
        and ``fields`` keys.
    """
    return {
        "@timestamp": log_data.timestamp or utc_timestamp(),
        "message": log_data.message,
        "severity": log_data.level,
        "fields": dict(log_data.meta),
    }
