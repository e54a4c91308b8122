"""instances-api exception hierarchy.

Typed exceptions for the error categories of the refresh pipeline and the
read surface. I/O boundaries catch these (together with ``OSError``,
``TimeoutError`` and ``aiohttp.ClientError``) and degrade the affected
field instead of failing the cycle; ``CancelledError`` always propagates.

Exception hierarchy:

```text
InstancesApiError (base -- never raised directly)
├── ConfigurationError       -- config validation, bad YAML, unknown sort key
│   └── SortKeyError         -- unknown presentation sort key
├── ConnectivityError        -- target or monitor service unreachable
│   └── TargetTimeoutError   -- a per-target or per-source budget expired
└── PayloadError             -- response body is not the expected shape
```

See Also:
    [BaseService][instances_api.core.base_service.BaseService]: Top-level
        error boundary in
        [run_forever()][instances_api.core.base_service.BaseService.run_forever].
    [sort_records()][instances_api.services.common.sorting.sort_records]:
        Raises [SortKeyError][instances_api.core.exceptions.SortKeyError].
"""

from __future__ import annotations


class InstancesApiError(Exception):
    """Base exception for all instances-api errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(InstancesApiError):
    """Invalid or missing configuration (YAML, CLI flags, query parameters)."""


class SortKeyError(ConfigurationError):
    """A presentation sort specification names an unknown key.

    Attributes:
        key: The offending sort key name.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"unknown sort key: {key!r}")
        self.key = key


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(InstancesApiError):
    """A target instance or the monitor service could not be reached."""


class TargetTimeoutError(ConnectivityError):
    """A per-target probe or a whole-source fetch exceeded its time budget."""


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class PayloadError(InstancesApiError, ValueError):
    """A response body parsed but did not have the expected structure.

    Also a ``ValueError``, so boundaries that already catch JSON decoding
    errors catch this one too.
    """
