r"""instances-api -- aggregated health listing of public video-frontend instances.

A refresher periodically discovers the public instance list, probes every
instance directly, fetches the third-party uptime monitor listing,
reconciles both sources by host and atomically publishes the merged set. A
small HTTP service serves the published set as sorted JSON.

Imports flow strictly downward:

```text
              services         Refresher (scheduler), Api (read surface)
             /   |    \
          core sources utils   Store, base service, logging, metrics /
             \   |    /        discovery, prober, monitors / HTTP helpers
              models           Frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from instances_api import Refresher``) use lazy
    loading and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("instances-api")

__all__ = [
    "Api",
    "ApiConfig",
    "BaseService",
    "Logger",
    "ProbeRecord",
    "PublishedStore",
    "RawTarget",
    "Record",
    "Refresher",
    "RefresherConfig",
    "sort_records",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("instances_api.core", "BaseService"),
    "Logger": ("instances_api.core", "Logger"),
    "PublishedStore": ("instances_api.core", "PublishedStore"),
    "ProbeRecord": ("instances_api.models", "ProbeRecord"),
    "RawTarget": ("instances_api.models", "RawTarget"),
    "Record": ("instances_api.models", "Record"),
    "Api": ("instances_api.services", "Api"),
    "ApiConfig": ("instances_api.services", "ApiConfig"),
    "Refresher": ("instances_api.services", "Refresher"),
    "RefresherConfig": ("instances_api.services", "RefresherConfig"),
    "sort_records": ("instances_api.services.common", "sort_records"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'instances_api' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
