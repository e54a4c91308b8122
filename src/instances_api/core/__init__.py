"""Core layer shared by all instances-api services.

Depends only on ``instances_api.models`` and is depended upon by
``instances_api.services``.

Attributes:
    BaseService: Abstract generic service with run/run_forever/shutdown
        lifecycle, factory methods and metrics integration.
        See [BaseService][instances_api.core.base_service.BaseService].
    PublishedStore: Atomically swapped result of the last successful
        refresh cycle. See [PublishedStore][instances_api.core.store.PublishedStore].
    Logger: Structured logger with key=value and JSON output.
        See [Logger][instances_api.core.logger.Logger].
    MetricsServer: Prometheus ``/metrics`` endpoint.
        See [MetricsServer][instances_api.core.metrics.MetricsServer].
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    InstancesApiError,
    PayloadError,
    SortKeyError,
    TargetTimeoutError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .store import PublishedStore, StoreSnapshot
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "ConnectivityError",
    "InstancesApiError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "PayloadError",
    "PublishedStore",
    "SortKeyError",
    "StoreSnapshot",
    "StructuredFormatter",
    "TargetTimeoutError",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
