"""Pure helpers for the refresher: reconciliation and cycle bookkeeping.

See Also:
    [Refresher][instances_api.services.refresher.Refresher]: The only
        caller of [reconcile()][instances_api.services.refresher.utils.reconcile].
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from instances_api.models import Record


if TYPE_CHECKING:
    from collections.abc import Mapping

    from instances_api.models import JsonValue, ProbeRecord


def reconcile(
    monitors: Mapping[str, JsonValue], probes: Mapping[str, ProbeRecord]
) -> dict[str, Record]:
    """Join probe records with monitor payloads by host.

    The monitor listing decides membership. Monitors without a probed
    target (instances pending approval or already delisted) are dropped,
    and so are probed targets without a monitor. Every remaining host gets
    a [Record][instances_api.models.record.Record] carrying its probe
    fields plus its monitor payload.

    The result depends only on the two mappings, not on the order in which
    probe results arrived.

    Examples:
        ```python
        reconcile({"a": {...}, "b": {...}}, {"a": probe_a})  # {"a": Record(...)}
        ```
    """
    merged: dict[str, Record] = {}
    for host in monitors.keys() & probes.keys():
        merged[host] = Record.merge(probes[host], monitors[host])
    return merged


@dataclass(frozen=True, slots=True)
class ProbeCollection:
    """Probe records gathered in one cycle.

    Attributes:
        records: Host to probe record for every target that answered in time.
        discovered: Targets found in the instance list.
        timed_out: Targets dropped because their probe overran its budget.
        failed: Targets whose probe task failed unexpectedly.
    """

    records: Mapping[str, ProbeRecord]
    discovered: int = 0
    timed_out: int = 0
    failed: int = 0


@dataclass(frozen=True, slots=True)
class CycleOutcome:
    """Summary of one refresh cycle, logged once and fed to metrics.

    Attributes:
        published: Whether the store was replaced.
        monitors: Monitor payloads with a usable name.
        probes: Targets with a probe record.
        records: Records published (0 when aborted).
        timed_out_targets: Targets dropped by the per-target deadline.
        reason: Why the cycle was aborted, or ``None``.
        version: Store version after the cycle.
    """

    published: bool
    monitors: int
    probes: int
    records: int = 0
    timed_out_targets: int = 0
    reason: str | None = None
    version: int = 0
