"""Built-in index template for shipped log documents."""

import copy
from typing import Any

_MAPPING: dict[str, Any] = {
    "dynamic_templates": [
        {
            "strings_as_keywords": {
                "match_mapping_type": "string",
                "path_match": "fields.*",
                "mapping": {"type": "keyword", "ignore_above": 1024},
            }
        }
    ],
    "properties": {
        "@timestamp": {"type": "date"},
        "message": {"type": "text"},
        "severity": {"type": "keyword"},
        "fields": {"type": "object", "dynamic": True},
    },
}


def default_template(index_prefix: str = "logs") -> dict[str, Any]:
    """Return the built-in template body matching ``<index_prefix>-*`` indices.

    Args:
        index_prefix: Prefix of the dated log indices.

    Returns:
        dict[str, Any]: A fresh legacy index template body.
    """
    return {
        "index_patterns": [f"{index_prefix}-*"],
        "settings": {
            "number_of_shards": 1,
            "number_of_replicas": 0,
            "index.refresh_interval": "5s",
        },
        "mappings": copy.deepcopy(_MAPPING),
    }
