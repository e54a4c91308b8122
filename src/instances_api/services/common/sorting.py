"""Presentation ordering and JSON export of published records.

A sort specification is a comma-separated list of key names, optionally
followed by ``-reverse``: ``"type,users"``, ``"health-reverse"``,
``"location,name"``. Records are compared key by key, moving to the next
key only on a tie, and the whole sequence is reversed at the end when
requested.

Keys:

| Key        | Value compared (ascending)                                        |
|------------|-------------------------------------------------------------------|
| `health`   | negated 30-day uptime ratio from the monitor, `0.0` if absent     |
| `location` | region code, `"ZZ"` if absent                                     |
| `name`     | host                                                              |
| `signup`   | `0` open registration, `1` closed, `2` unknown                    |
| `type`     | target type                                                       |
| `cors`     | `0` true, `1` false, `2` unknown                                  |
| `api`      | `0` true, `1` false, `2` unknown                                  |
| `users`    | negated total user count, `0` if absent                           |
| `version`  | negated numeric components of the release before the first `-`    |

See Also:
    [Api][instances_api.services.api.Api]: Serves the sorted export.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from instances_api.core.exceptions import SortKeyError
from instances_api.models import Record, dig


DEFAULT_SORT: Final = "type,users"
REVERSE_SUFFIX: Final = "-reverse"

_VERSION_COMPONENTS = 3
_LEADING_DIGITS = re.compile(r"\d+")


def _number(value: Any) -> float | None:
    """Coerce a JSON scalar to a finite number; booleans and junk are ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float | str):
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _tristate(value: bool | None) -> int:
    if value is None:
        return 2
    return 0 if value else 1


def _health(record: Record) -> float:
    ratio = _number(dig(record.monitor, "30dRatio", "ratio"))
    return -ratio if ratio is not None else 0.0


def _location(record: Record) -> str:
    return record.region or "ZZ"


def _name(record: Record) -> str:
    return record.host


def _signup(record: Record) -> int:
    value = dig(record.stats, "openRegistrations")
    return _tristate(value if isinstance(value, bool) else None)


def _type(record: Record) -> str:
    return record.type


def _cors(record: Record) -> int:
    return _tristate(record.cors)


def _api(record: Record) -> int:
    return _tristate(record.api)


def _users(record: Record) -> float:
    total = _number(dig(record.stats, "usage", "users", "total"))
    return -total if total is not None else 0


def version_key(version: Any) -> tuple[int, ...]:
    """Comparison value for a software version string.

    ``"2.0.1-abcdef"`` becomes ``(-2, 0, -1)``: the part before the first
    ``-`` is split on dots, each component contributes its leading digits
    (``0`` when it has none) negated, and the result is padded with zeros
    to three components. Anything that is not a string gives ``(0, 0, 0)``.
    """
    if not isinstance(version, str):
        return (0,) * _VERSION_COMPONENTS
    parts: list[int] = []
    for component in version.split("-", 1)[0].split("."):
        match = _LEADING_DIGITS.match(component)
        parts.append(-int(match.group()) if match else 0)
    parts.extend([0] * (_VERSION_COMPONENTS - len(parts)))
    return tuple(parts)


def _version(record: Record) -> tuple[int, ...]:
    return version_key(dig(record.stats, "software", "version"))


SORT_KEYS: Final[Mapping[str, Callable[[Record], Any]]] = {
    "health": _health,
    "location": _location,
    "name": _name,
    "signup": _signup,
    "type": _type,
    "cors": _cors,
    "api": _api,
    "users": _users,
    "version": _version,
}


@dataclass(frozen=True, slots=True)
class SortSpec:
    """A parsed sort specification."""

    keys: tuple[str, ...]
    reverse: bool = False

    def key(self, item: tuple[str, Record]) -> tuple[Any, ...]:
        record = item[1]
        return tuple(SORT_KEYS[name](record) for name in self.keys)


def parse_sort_keys(sort_by: str | None) -> SortSpec:
    """Parse and validate a sort specification.

    Matching is case-insensitive. ``None`` or an empty string selects
    ``DEFAULT_SORT``.

    Raises:
        SortKeyError: If any key is not one of ``SORT_KEYS``.

    Examples:
        ```python
        parse_sort_keys("Location,Name-reverse")
        # SortSpec(keys=('location', 'name'), reverse=True)
        ```
    """
    spec = (sort_by or DEFAULT_SORT).strip().lower()
    reverse = spec.endswith(REVERSE_SUFFIX)
    keys = tuple(k.strip() for k in spec.split("-", 1)[0].split(","))
    for name in keys:
        if name not in SORT_KEYS:
            raise SortKeyError(name)
    return SortSpec(keys=keys, reverse=reverse)


def sort_records(
    records: Mapping[str, Record], sort_by: str | SortSpec | None = None
) -> list[tuple[str, Record]]:
    """Order published records for presentation.

    Args:
        records: Host to record mapping, typically a store snapshot.
        sort_by: Sort specification string or an already parsed
            [SortSpec][instances_api.services.common.sorting.SortSpec].

    Returns:
        ``(host, record)`` pairs in presentation order.

    Raises:
        SortKeyError: If the specification names an unknown key.
    """
    spec = sort_by if isinstance(sort_by, SortSpec) else parse_sort_keys(sort_by)
    ordered = sorted(records.items(), key=spec.key)
    if spec.reverse:
        ordered.reverse()
    return ordered


def to_json(pairs: Iterable[tuple[str, Record]], *, pretty: bool = False) -> str:
    """Serialize ``(host, record)`` pairs as a JSON array of two-element arrays."""
    payload = [[host, record.to_dict()] for host, record in pairs]
    if pretty:
        return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
