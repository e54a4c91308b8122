"""
Operation logs for source fetches.

Every call into a target or the monitor service ends in a log object rather
than an exception: ``success`` says whether the call produced usable data
and ``reason`` carries the failure cause. The refresher inspects these in
one place to log and count failures.

See Also:
    [TargetProbe][instances_api.sources.prober.TargetProbe]: Pairs a
        [ProbeLogs][instances_api.sources.logs.ProbeLogs] with its record.
    [MonitorListing][instances_api.sources.monitors.MonitorListing]: Carries
        a [FetchLogs][instances_api.sources.logs.FetchLogs] for page 1.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, StrictBool, model_validator


def _check_phase(name: str, success: bool | None, reason: str | None) -> None:
    if success is None:
        if reason is not None:
            raise ValueError(f"{name}_reason must be None when {name} was not attempted")
        return
    if success and reason is not None:
        raise ValueError(f"{name}_reason must be None when {name}_success is True")
    if not success and reason is None:
        raise ValueError(f"{name}_reason is required when {name}_success is False")


class FetchLogs(BaseModel):
    """Outcome of a single fetch.

    ``success=True`` requires ``reason=None``; ``success=False`` requires a
    reason string.
    """

    model_config = ConfigDict(frozen=True)

    success: StrictBool
    reason: str | None = None

    @model_validator(mode="after")
    def validate_semantic(self) -> Self:
        _check_phase("fetch", self.success, self.reason)
        return self

    @classmethod
    def ok(cls) -> Self:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> Self:
        return cls(success=False, reason=reason)


class ProbeLogs(BaseModel):
    """Outcome of both calls made against one target.

    Overlay targets are ``skipped``: neither call is attempted and both
    phases stay ``None``. Otherwise each phase follows the success/reason
    rule of [FetchLogs][instances_api.sources.logs.FetchLogs].

    Attributes:
        skipped: The target was not probed (overlay network).
        stats_success: Whether the status endpoint returned parseable JSON.
        stats_reason: Failure cause for the status call.
        api_success: Whether the capability probe passed.
        api_reason: Failure cause for the capability probe.
    """

    model_config = ConfigDict(frozen=True)

    skipped: StrictBool = False
    stats_success: StrictBool | None = None
    stats_reason: str | None = None
    api_success: StrictBool | None = None
    api_reason: str | None = None

    @model_validator(mode="after")
    def validate_semantic(self) -> Self:
        _check_phase("stats", self.stats_success, self.stats_reason)
        _check_phase("api", self.api_success, self.api_reason)
        if self.skipped and (self.stats_success is not None or self.api_success is not None):
            raise ValueError("a skipped target cannot have call results")
        return self

    @property
    def reasons(self) -> dict[str, str]:
        """Failure reasons keyed by phase, for structured logging."""
        found: dict[str, str] = {}
        if self.stats_reason:
            found["stats_reason"] = self.stats_reason
        if self.api_reason:
            found["api_reason"] = self.api_reason
        return found
