"""Configuration models for the log shipper.

Every option has a code default. ``from_env`` constructors read the
``LOG_SHIPPER_*`` environment variables and fall back to those defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

ENV_PREFIX = "LOG_SHIPPER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, "true" if default else "false").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _shards(raw: str) -> int | str:
    # Elasticsearch also accepts "all".
    if raw == "all":
        return raw
    return int(raw)


@dataclass(frozen=True, slots=True)
class WriterConfig:
    """Configuration for the buffered bulk writer.

    Attributes:
        flush_interval: Seconds between flush cycles; also the bulk timeout (default: 5.0).
        wait_for_active_shards: Shard copies that must acknowledge a bulk write (default: 1).
        max_error_events: Capacity of the error channel before the oldest event is dropped.
    """

    flush_interval: float = 5.0
    wait_for_active_shards: int | str = 1
    max_error_events: int = 1000

    def __post_init__(self) -> None:
        if self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if self.max_error_events < 1:
            raise ValueError("max_error_events must be at least 1")

    @property
    def bulk_timeout(self) -> float:
        """Timeout applied to each bulk submit, in seconds."""
        return self.flush_interval

    @classmethod
    def from_env(cls, flush_interval: float = 5.0) -> WriterConfig:
        return cls(
            flush_interval=float(_env("FLUSH_INTERVAL", str(flush_interval))),
            wait_for_active_shards=_shards(_env("WAIT_FOR_ACTIVE_SHARDS", "1")),
            max_error_events=int(_env("MAX_ERROR_EVENTS", "1000")),
        )


@dataclass(frozen=True, slots=True)
class ProbeConfig:
    """Configuration for the bootstrap connectivity probe.

    Implements the formula: delay = min(min_delay × factor^retry, max_delay)

    Attributes:
        max_retries: Pings after the first one (default: 3).
        backoff_factor: Multiplier applied per retry (default: 3.0).
        min_delay: Delay before the first retry, in seconds (default: 1.0).
        max_delay: Delay cap in seconds (default: 60.0).
        ensure_template: Create the index template when it is missing (default: True).
        template_name: Name of the index template; None derives "template_<index_prefix>".
        template_body: Template body; None selects the built-in template.
    """

    max_retries: int = 3
    backoff_factor: float = 3.0
    min_delay: float = 1.0
    max_delay: float = 60.0
    ensure_template: bool = True
    template_name: str | None = None
    template_body: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")

    @classmethod
    def from_env(cls) -> ProbeConfig:
        return cls(
            max_retries=int(_env("PROBE_MAX_RETRIES", "3")),
            backoff_factor=float(_env("PROBE_BACKOFF_FACTOR", "3.0")),
            min_delay=float(_env("PROBE_MIN_DELAY", "1.0")),
            max_delay=float(_env("PROBE_MAX_DELAY", "60.0")),
            ensure_template=_env_bool("ENSURE_TEMPLATE", True),
            template_name=_env("TEMPLATE_NAME", "") or None,
        )


@dataclass(frozen=True, slots=True)
class ShipperConfig:
    """Top-level configuration used by the logging handler and the CLI.

    Attributes:
        node_url: Base URL of the Elasticsearch node.
        index: Fixed index name; None derives a dated name from ``index_prefix``.
        index_prefix: Prefix of dated index names (default: "logs").
        index_date_format: strftime pattern of the dated suffix (default: "%Y.%m.%d").
        writer: Bulk writer settings.
        probe: Connectivity probe settings.
    """

    node_url: str = "http://localhost:9200"
    index: str | None = None
    index_prefix: str = "logs"
    index_date_format: str = "%Y.%m.%d"
    writer: WriterConfig = field(default_factory=lambda: WriterConfig(flush_interval=2.0))
    probe: ProbeConfig = field(default_factory=ProbeConfig)

    @property
    def template_name(self) -> str:
        """Index template name, derived from the prefix unless set explicitly."""
        return self.probe.template_name or f"template_{self.index_prefix}"

    @classmethod
    def from_env(cls) -> ShipperConfig:
        index_prefix = _env("INDEX_PREFIX", "logs")
        return cls(
            node_url=_env("NODE_URL", "http://localhost:9200"),
            index=_env("INDEX", "") or None,
            index_prefix=index_prefix,
            index_date_format=_env("INDEX_DATE_FORMAT", "%Y.%m.%d"),
            writer=WriterConfig.from_env(flush_interval=2.0),
            probe=ProbeConfig.from_env(),
        )


__all__ = [
    "ENV_PREFIX",
    "ProbeConfig",
    "ShipperConfig",
    "WriterConfig",
]
