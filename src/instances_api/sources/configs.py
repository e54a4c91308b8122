"""Configuration models for the three data sources.

Each model is embedded in
[RefresherConfig][instances_api.services.refresher.RefresherConfig] and can
be overridden from YAML.

Examples:
    ```yaml
    probe:
      connect_timeout: 10.0
      read_timeout: 10.0
      target_timeout: 30.0
      max_parallel: 50
    monitors:
      listing_path: /api/getMonitorList/89VnzSKAn
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


DEFAULT_INSTANCES_URL = (
    "https://raw.githubusercontent.com/iv-org/documentation/master/docs/instances.md"
)


def _validate_path(v: str) -> str:
    if not v.startswith("/"):
        raise ValueError(f"path must start with '/': {v!r}")
    return v


class DiscoveryConfig(BaseModel):
    """Where and how the instance list document is fetched.

    See Also:
        [discover_targets()][instances_api.sources.discovery.discover_targets]:
            Consumer of this configuration.
    """

    url: str = Field(default=DEFAULT_INSTANCES_URL, description="Instance list document URL")
    blocked_delimiter: str = Field(
        default="### Blocked:",
        min_length=1,
        description="Only the part of the document before this marker is parsed",
    )
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="Fetch timeout")
    max_response_size: int = Field(
        default=2_097_152,
        ge=1024,
        le=52_428_800,
        description="Maximum document size in bytes (default: 2 MB)",
    )


class ProbeConfig(BaseModel):
    """Per-target probe settings.

    See Also:
        [probe_target()][instances_api.sources.prober.probe_target]:
            Consumer of this configuration.
    """

    connect_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    read_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    target_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Budget for both calls against one target; late targets are dropped",
    )
    max_parallel: int = Field(
        default=50, ge=1, le=1000, description="Maximum outstanding target probes"
    )
    stats_path: str = Field(default="/api/v1/stats")
    capability_path: str = Field(default="/api/v1/trending")
    identity_field: str = Field(
        default="videoId",
        min_length=1,
        description="Field every capability result entry must carry as a string",
    )
    max_response_size: int = Field(
        default=1_048_576,
        ge=1024,
        le=52_428_800,
        description="Maximum probe response size in bytes (default: 1 MB)",
    )

    _check_paths = field_validator("stats_path", "capability_path")(_validate_path)


class MonitorsConfig(BaseModel):
    """Uptime monitor listing settings.

    See Also:
        [fetch_monitors()][instances_api.sources.monitors.fetch_monitors]:
            Consumer of this configuration.
    """

    base_url: str = Field(default="https://stats.uptimerobot.com")
    listing_path: str = Field(default="/api/getMonitorList/89VnzSKAn")
    connect_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    read_timeout: float = Field(default=10.0, ge=0.1, le=120.0)
    max_parallel_pages: int = Field(
        default=0,
        ge=0,
        le=1000,
        description="Maximum concurrent page requests (0 = one task per page, unbounded)",
    )
    max_response_size: int = Field(default=5_242_880, ge=1024, le=52_428_800)

    _check_path = field_validator("listing_path")(_validate_path)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")
