"""Data sources feeding the refresh cycle.

Depends on ``instances_api.models``, ``instances_api.core.exceptions`` and
``instances_api.utils``; consumed by ``instances_api.services``. Every
fetcher here is total: failures come back as logs, never as exceptions.

Attributes:
    discover_targets: Instance list document to
        [RawTarget][instances_api.models.target.RawTarget] stream.
    probe_target: Direct status and capability probe of one target.
    fetch_monitors: Paginated uptime monitor listing.
"""

from .configs import DiscoveryConfig, MonitorsConfig, ProbeConfig
from .discovery import discover_targets, fetch_instances_document, parse_targets
from .logs import FetchLogs, ProbeLogs
from .monitors import MonitorListing, MonitorPage, fetch_monitors, fetch_page, parse_page
from .prober import SessionFactory, TargetProbe, probe_target


__all__ = [
    "DiscoveryConfig",
    "FetchLogs",
    "MonitorListing",
    "MonitorPage",
    "MonitorsConfig",
    "ProbeConfig",
    "ProbeLogs",
    "SessionFactory",
    "TargetProbe",
    "discover_targets",
    "fetch_instances_document",
    "fetch_monitors",
    "fetch_page",
    "parse_page",
    "parse_targets",
    "probe_target",
]
