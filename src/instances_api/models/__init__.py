"""Pure frozen dataclasses with zero I/O.

Bottom of the layer graph: depends only on the standard library and
``rfc3986``, and is imported by every other layer.

Attributes:
    RawTarget: One entry of the discovered instance list.
        See [RawTarget][instances_api.models.target.RawTarget].
    ProbeRecord: What a direct probe learned about a target.
        See [ProbeRecord][instances_api.models.record.ProbeRecord].
    Record: A published, reconciled instance entry.
        See [Record][instances_api.models.record.Record].
"""

from .constants import OVERLAY_TYPES, ServiceName, TargetType
from .record import JsonValue, ProbeRecord, Record, dig
from .target import RawTarget, decode_region, target_type


__all__ = [
    "OVERLAY_TYPES",
    "JsonValue",
    "ProbeRecord",
    "RawTarget",
    "Record",
    "ServiceName",
    "TargetType",
    "decode_region",
    "dig",
    "target_type",
]
