"""Remote store module."""

from log_shipper.store.base import BulkStore
from log_shipper.store.elasticsearch import ElasticsearchStore, encode_bulk_body

__all__ = [
    "BulkStore",
    "ElasticsearchStore",
    "encode_bulk_body",
]
