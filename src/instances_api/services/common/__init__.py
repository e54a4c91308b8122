"""Helpers shared by the instances-api services.

Attributes:
    sort_records: Presentation ordering of published records.
    parse_sort_keys: Validates a sort specification string.
    to_json: JSON export of ordered ``(host, record)`` pairs.
"""

from .sorting import (
    DEFAULT_SORT,
    SORT_KEYS,
    SortSpec,
    parse_sort_keys,
    sort_records,
    to_json,
    version_key,
)


__all__ = [
    "DEFAULT_SORT",
    "SORT_KEYS",
    "SortSpec",
    "parse_sort_keys",
    "sort_records",
    "to_json",
    "version_key",
]
