"""Refresher service configuration models.

See Also:
    [Refresher][instances_api.services.refresher.Refresher]: The service
        class that consumes these configurations.
    [BaseServiceConfig][instances_api.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

from instances_api.core.base_service import BaseServiceConfig
from instances_api.sources.configs import DiscoveryConfig, MonitorsConfig, ProbeConfig


class CycleTimeoutsConfig(BaseModel):
    """Overall budgets for the two halves of a cycle.

    When a budget expires the outstanding work is cancelled and that source
    counts as having produced nothing, which aborts the cycle.
    """

    monitors: float = Field(
        default=300.0, ge=1.0, le=3600.0, description="Budget for the whole monitor listing"
    )
    probes: float = Field(
        default=1200.0,
        ge=1.0,
        le=7200.0,
        description="Budget for discovery plus every target probe",
    )


class RefresherConfig(BaseServiceConfig):
    """Refresher service configuration.

    A failed cycle keeps the previously published records, so the loop
    never gives up by default (``max_consecutive_failures=0``).

    See Also:
        [Refresher][instances_api.services.refresher.Refresher]: The service
            class that consumes this configuration.
    """

    interval: float = Field(
        default=300.0,
        ge=1.0,
        description="Seconds to sleep after each cycle before the next one starts",
    )
    max_consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    monitors: MonitorsConfig = Field(default_factory=MonitorsConfig)
    timeouts: CycleTimeoutsConfig = Field(default_factory=CycleTimeoutsConfig)

    @model_validator(mode="after")
    def target_timeout_within_budget(self) -> Self:
        if self.probe.target_timeout > self.timeouts.probes:
            raise ValueError(
                f"probe.target_timeout ({self.probe.target_timeout}) must not exceed "
                f"timeouts.probes ({self.timeouts.probes})"
            )
        return self
