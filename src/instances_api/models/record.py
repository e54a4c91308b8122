"""
Per-target probe results and published instance records.

[ProbeRecord][instances_api.models.record.ProbeRecord] is what the prober
learns about one target in one cycle;
[Record][instances_api.models.record.Record] is the reconciled entry
published to readers, a probe record plus the matching uptime monitor
payload. Both are frozen. The ``stats`` and ``monitor`` payloads are opaque
JSON values kept deeply frozen; only the handful of fields the presentation
sort inspects are read through [dig()][instances_api.models.record.dig].
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from ._validation import (
    deep_freeze,
    thaw,
    validate_bool,
    validate_optional_str,
    validate_str_not_empty,
)


#: A parsed JSON document (null, bool, number, string, array or object).
JsonValue = Any


def dig(payload: JsonValue, *path: str | int) -> JsonValue:
    """Read a nested value from an opaque payload without raising.

    Each path element indexes an object (``str``) or an array (``int``).

    Returns:
        The value at ``path``, or ``None`` when any step is missing or the
        intermediate value has the wrong shape.

    Examples:
        ```python
        dig({"usage": {"users": {"total": 12}}}, "usage", "users", "total")  # 12
        dig(None, "software", "version")                                   # None
        ```
    """
    current = payload
    for key in path:
        if isinstance(key, str) and isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(key, int) and isinstance(current, tuple | list):
            if not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            return None
        if current is None:
            return None
    return current


@dataclass(frozen=True, slots=True)
class ProbeRecord:
    """What a direct probe learned about one target.

    Attributes:
        host: Target host, the reconciliation key.
        type: ``"onion"``, ``"i2p"`` or the URI scheme.
        uri: Normalized target URI.
        flag: Raw regional indicator pair, or ``None``.
        region: Decoded two-letter region code, or ``None``.
        stats: Status endpoint payload (deeply frozen), or ``None`` when the
            target was unreachable, unparseable or not probed.
        cors: The capability probe succeeded and allowed any origin.
        api: The capability probe returned a well-formed result list.
    """

    host: str
    type: str
    uri: str
    flag: str | None = None
    region: str | None = None
    stats: JsonValue = field(default=None, hash=False)
    cors: bool = False
    api: bool = False

    def __post_init__(self) -> None:
        validate_str_not_empty(self.host, "host")
        validate_str_not_empty(self.type, "type")
        validate_str_not_empty(self.uri, "uri")
        validate_optional_str(self.flag, "flag")
        validate_optional_str(self.region, "region")
        validate_bool(self.cors, "cors")
        validate_bool(self.api, "api")
        object.__setattr__(self, "stats", deep_freeze(self.stats))


@dataclass(frozen=True, slots=True)
class Record:
    """A published instance: probe fields plus the matched monitor payload.

    The ``monitor`` payload is required; a host without a monitor is never
    published.

    Attributes:
        host: Target host.
        type: ``"onion"``, ``"i2p"`` or the URI scheme.
        uri: Normalized target URI.
        flag: Raw regional indicator pair, or ``None``.
        region: Decoded region code, or ``None``.
        stats: Status endpoint payload, or ``None``.
        cors: Capability probe allowed any origin.
        api: Capability probe succeeded.
        monitor: Uptime monitor payload (deeply frozen).
    """

    host: str
    type: str
    uri: str
    monitor: JsonValue = field(hash=False)
    flag: str | None = None
    region: str | None = None
    stats: JsonValue = field(default=None, hash=False)
    cors: bool = False
    api: bool = False

    def __post_init__(self) -> None:
        validate_str_not_empty(self.host, "host")
        if self.monitor is None:
            raise ValueError(f"monitor payload is required for {self.host}")
        object.__setattr__(self, "monitor", deep_freeze(self.monitor))
        object.__setattr__(self, "stats", deep_freeze(self.stats))

    @classmethod
    def merge(cls, probe: ProbeRecord, monitor: JsonValue) -> Self:
        """Combine a probe record with its matching monitor payload."""
        return cls(
            host=probe.host,
            type=probe.type,
            uri=probe.uri,
            monitor=monitor,
            flag=probe.flag,
            region=probe.region,
            stats=probe.stats,
            cors=probe.cors,
            api=probe.api,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the published JSON shape (the host is the outer key)."""
        return {
            "flag": self.flag,
            "region": self.region,
            "stats": thaw(self.stats),
            "cors": self.cors,
            "api": self.api,
            "type": self.type,
            "uri": self.uri,
            "monitor": thaw(self.monitor),
        }
