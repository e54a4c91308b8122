"""Long-running services of instances-api.

Attributes:
    Refresher: Discovers, probes, fetches monitors, reconciles and
        publishes on a fixed interval.
        See [Refresher][instances_api.services.refresher.Refresher].
    Api: Read-only HTTP surface over the published records.
        See [Api][instances_api.services.api.Api].
"""

from .api import Api, ApiConfig
from .refresher import CycleOutcome, CycleTimeoutsConfig, Refresher, RefresherConfig, reconcile


__all__ = [
    "Api",
    "ApiConfig",
    "CycleOutcome",
    "CycleTimeoutsConfig",
    "Refresher",
    "RefresherConfig",
    "reconcile",
]
