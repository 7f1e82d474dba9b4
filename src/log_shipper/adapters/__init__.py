"""Logging framework adapters."""

from log_shipper.adapters.handler import ElasticsearchHandler
from log_shipper.adapters.index_name import index_name
from log_shipper.adapters.transform import LogData, default_transformer

__all__ = [
    "ElasticsearchHandler",
    "LogData",
    "default_transformer",
    "index_name",
]
