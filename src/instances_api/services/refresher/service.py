"""Refresher service for instances-api.

Runs the refresh cycle on a fixed interval:

1. Concurrently, [collect_monitors()][instances_api.services.refresher.Refresher.collect_monitors]
   fetches the uptime monitor listing and
   [collect_probes()][instances_api.services.refresher.Refresher.collect_probes]
   discovers targets and probes each one.
2. If either side came back empty the cycle is aborted and the published
   store keeps the previous cycle's records.
3. Otherwise both sides are reconciled and the store is replaced wholesale.

Each side runs under its own overall deadline and every target probe under
a per-target deadline. An expired deadline cancels the work behind it
rather than abandoning it. At most ``probe.max_parallel`` probes are
outstanding at once.

See Also:
    [RefresherConfig][instances_api.services.refresher.RefresherConfig]:
        Configuration model for sources, deadlines and scheduling.
    [reconcile()][instances_api.services.refresher.utils.reconcile]:
        The join of monitors and probes.
    [PublishedStore][instances_api.core.store.PublishedStore]: Replaced at
        the end of every successful cycle.

Examples:
    ```python
    from instances_api.core import PublishedStore
    from instances_api.services import Refresher

    store = PublishedStore()
    refresher = Refresher.from_yaml("config/services/refresher.yaml", store=store)

    async with refresher:
        await refresher.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, ClassVar

import aiohttp

from instances_api.core.base_service import BaseService
from instances_api.core.exceptions import TargetTimeoutError
from instances_api.models.constants import ServiceName
from instances_api.sources import discover_targets, fetch_monitors, probe_target

from .configs import RefresherConfig
from .utils import CycleOutcome, ProbeCollection, reconcile


if TYPE_CHECKING:
    from instances_api.core.store import PublishedStore
    from instances_api.models import JsonValue, ProbeRecord, RawTarget, Record
    from instances_api.sources import SessionFactory, TargetProbe


class Refresher(BaseService[RefresherConfig]):
    """Discovery, probing, monitor fetch, reconciliation and publication.

    The only writer of the [PublishedStore][instances_api.core.store.PublishedStore].
    One cycle runs at a time: the next starts only after the inherited
    ``run_forever()`` loop has slept ``interval`` seconds.

    See Also:
        [RefresherConfig][instances_api.services.refresher.RefresherConfig]:
            Configuration model for this service.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.REFRESHER
    CONFIG_CLASS: ClassVar[type[RefresherConfig]] = RefresherConfig

    def __init__(
        self,
        store: PublishedStore,
        config: RefresherConfig | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        super().__init__(store=store, config=config)
        self._session_factory: SessionFactory = (
            session_factory if session_factory is not None else aiohttp.ClientSession
        )
        self._last_outcome: CycleOutcome | None = None

    @property
    def last_outcome(self) -> CycleOutcome | None:
        """Summary of the most recent cycle, or ``None`` before the first."""
        return self._last_outcome

    async def run(self) -> None:
        """Execute one refresh cycle."""
        await self.refresh()

    async def refresh(self) -> CycleOutcome:
        """Run one full cycle and publish its result if both sources delivered.

        A cycle whose sources share no host is aborted as well, so the store
        is empty only before the first successful cycle. If one side raises,
        the other is cancelled and the error propagates.

        Returns:
            The [CycleOutcome][instances_api.services.refresher.utils.CycleOutcome]
            of this cycle.
        """
        start = time.monotonic()
        self._logger.info("cycle_started")

        try:
            async with asyncio.TaskGroup() as tg:
                monitors_task = tg.create_task(self.collect_monitors())
                probes_task = tg.create_task(self.collect_probes())
        except ExceptionGroup as eg:
            raise eg.exceptions[0] from eg
        monitors = monitors_task.result()
        probes = probes_task.result()

        records: dict[str, Record] = {}
        reason: str | None = None
        if not monitors:
            reason = "no monitors"
        elif not probes.records:
            reason = "no probe results"
        else:
            records = reconcile(monitors, probes.records)
            if not records:
                reason = "no host in both sources"

        if reason is None:
            version = self._store.publish(records).version
        else:
            version = self._store.version
            self.inc_counter("cycles_aborted")
            self._logger.error(
                "cycle_aborted",
                reason=reason,
                monitors=len(monitors),
                probes=len(probes.records),
                kept_version=version,
            )

        outcome = CycleOutcome(
            published=reason is None,
            monitors=len(monitors),
            probes=len(probes.records),
            records=len(records),
            timed_out_targets=probes.timed_out,
            reason=reason,
            version=version,
        )
        self._last_outcome = outcome
        self.set_gauge("instances_published", len(self._store.records()))
        self.set_gauge("monitors_fetched", outcome.monitors)
        self.set_gauge("targets_probed", outcome.probes)
        self.set_gauge("targets_timed_out", outcome.timed_out_targets)

        self._logger.info(
            "cycle_completed",
            published=outcome.published,
            records=outcome.records,
            monitors=outcome.monitors,
            probes=outcome.probes,
            discovered=probes.discovered,
            timed_out=outcome.timed_out_targets,
            version=outcome.version,
            duration=round(time.monotonic() - start, 2),
        )
        return outcome

    # -------------------------------------------------------------------------
    # Monitors
    # -------------------------------------------------------------------------

    async def collect_monitors(self) -> dict[str, JsonValue]:
        """Fetch the monitor listing under the overall monitor deadline.

        Returns:
            Monitor name to payload; empty when the deadline expired or
            page 1 failed.
        """
        budget = self._config.timeouts.monitors
        try:
            async with asyncio.timeout(budget):
                listing = await fetch_monitors(self._config.monitors, self._session_factory)
        except TimeoutError:
            self._logger.error("monitors_timeout", timeout=budget)
            return {}

        if not listing.logs.success:
            self._logger.error("monitors_fetch_failed", error=listing.reason)
        if listing.pages_failed:
            self.inc_counter("monitor_pages_failed", listing.pages_failed)
            self._logger.warning(
                "monitor_pages_failed",
                failed=listing.pages_failed,
                pages=listing.pages_total,
            )

        monitors = listing.keyed()
        self._logger.debug("monitors_collected", monitors=len(monitors))
        return monitors

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    async def collect_probes(self) -> ProbeCollection:
        """Discover targets and probe them all under the overall probe deadline.

        Returns:
            The probe records that arrived in time; empty when the overall
            deadline expired.
        """
        budget = self._config.timeouts.probes
        try:
            async with asyncio.timeout(budget):
                return await self._probe_all()
        except TimeoutError:
            self._logger.error("probes_timeout", timeout=budget)
            return ProbeCollection(records={})

    async def _discover(self) -> list[RawTarget]:
        async with self._session_factory() as session:
            return [t async for t in discover_targets(session, self._config.discovery)]

    async def _probe_all(self) -> ProbeCollection:
        targets = await self._discover()
        self._logger.info("targets_discovered", count=len(targets))
        if not targets:
            return ProbeCollection(records={})

        semaphore = asyncio.Semaphore(self._config.probe.max_parallel)

        async def _bounded_probe(target: RawTarget) -> TargetProbe | None:
            async with semaphore:
                if not self.is_running:
                    return None
                return await self._probe_one(target)

        results = await asyncio.gather(
            *(_bounded_probe(t) for t in targets), return_exceptions=True
        )

        # gather(return_exceptions=True) captures CancelledError as a result
        for r in results:
            if isinstance(r, asyncio.CancelledError):
                raise r

        records: dict[str, ProbeRecord] = {}
        timed_out = 0
        failed = 0
        for target, result in zip(targets, results, strict=True):
            if isinstance(result, TargetTimeoutError):
                timed_out += 1
                self._logger.warning("probe_timeout", host=target.host, error=str(result))
            elif isinstance(result, BaseException):
                failed += 1
                self._logger.error(
                    "probe_worker_failed",
                    host=target.host,
                    error=str(result),
                    error_type=type(result).__name__,
                )
            elif result is not None:
                records[result.host] = result.record

        self._logger.info(
            "probes_completed",
            probed=len(records),
            timed_out=timed_out,
            failed=failed,
        )
        return ProbeCollection(
            records=records, discovered=len(targets), timed_out=timed_out, failed=failed
        )

    async def _probe_one(self, target: RawTarget) -> TargetProbe:
        """Probe one target under the per-target deadline.

        Raises:
            TargetTimeoutError: The deadline expired; the probe was cancelled
                and the target is dropped for this cycle.
        """
        budget = self._config.probe.target_timeout
        try:
            async with asyncio.timeout(budget):
                probe = await probe_target(target, self._config.probe, self._session_factory)
        except TimeoutError as e:
            raise TargetTimeoutError(f"no answer within {budget}s") from e

        reasons = probe.logs.reasons
        if reasons:
            self._logger.debug("probe_degraded", host=target.host, **reasons)
        return probe
