"""
Unit tests for services.refresher.service module.

Tests:
- Full refresh cycle against a scripted network
- Publication of exactly the hosts present in both sources
- Aborted cycles leave the store untouched
- Per-target and overall deadlines
- Concurrency bound on outstanding probes
- Metrics and structured logs
"""

import asyncio
from unittest.mock import patch

import pytest
from fixtures.instances import (
    DE,
    INSTANCES_URL,
    MONITORS_URL,
    ONION,
    US,
    MockHttp,
    make_record,
    monitor,
)

from instances_api.core.store import PublishedStore
from instances_api.models import ProbeRecord
from instances_api.models.constants import ServiceName
from instances_api.services.refresher import Refresher, RefresherConfig
from instances_api.sources import ProbeLogs, TargetProbe
from instances_api.sources.prober import probe_target as real_probe_target


SERVICE_MODULE = "instances_api.services.refresher.service"


def _events(mock_method) -> list[str]:
    return [c[0][0] for c in mock_method.call_args_list]


def _kwargs(mock_method, event: str) -> dict:
    for c in mock_method.call_args_list:
        if c[0][0] == event:
            return c[1]
    raise AssertionError(f"{event} not logged")


async def _hang(*_args, **_kwargs):
    await asyncio.sleep(3600)


# ============================================================================
# Initialization
# ============================================================================


class TestInit:
    def test_service_name(self):
        assert Refresher.SERVICE_NAME == ServiceName.REFRESHER
        assert Refresher.CONFIG_CLASS is RefresherConfig

    def test_defaults(self, store: PublishedStore):
        refresher = Refresher(store)
        assert refresher.config.interval == 300.0
        assert refresher.last_outcome is None
        assert refresher.store is store

    def test_from_dict(self, store: PublishedStore):
        refresher = Refresher.from_dict({"probe": {"max_parallel": 3}}, store=store)
        assert refresher.config.probe.max_parallel == 3


# ============================================================================
# Successful Cycle
# ============================================================================


class TestRefresh:
    async def test_publishes_hosts_in_both_sources(self, refresher: Refresher, network: MockHttp):
        outcome = await refresher.refresh()

        assert set(refresher.store.records()) == {"yewtu.be", "noflag.example.net", ONION}
        assert outcome.published is True
        assert outcome.reason is None
        assert outcome.monitors == 4
        assert outcome.probes == 5
        assert outcome.records == 3
        assert outcome.version == 1
        assert refresher.last_outcome is outcome

    async def test_clearnet_record(self, refresher: Refresher, network: MockHttp):
        await refresher.refresh()

        record = refresher.store.records()["yewtu.be"]
        assert record.type == "https"
        assert record.uri == "https://yewtu.be"
        assert record.flag == DE
        assert record.region == "DE"
        assert record.api is True
        assert record.cors is True
        assert record.stats["software"]["version"] == "2.0.0"
        assert record.monitor["name"] == "yewtu.be"

    async def test_overlay_record_not_probed(self, refresher: Refresher, network: MockHttp):
        await refresher.refresh()

        record = refresher.store.records()[ONION]
        assert record.type == "onion"
        assert record.region == "US"
        assert record.stats is None
        assert record.api is False
        assert record.cors is False
        assert not any(".onion" in call for call in network.calls)
        assert not any("inv.i2p" in call for call in network.calls)

    async def test_unreachable_target_still_published(
        self, refresher: Refresher, network: MockHttp
    ):
        network.routes.pop("https://noflag.example.net/api/v1/stats")
        network.routes.pop("https://noflag.example.net/api/v1/trending")

        await refresher.refresh()

        record = refresher.store.records()["noflag.example.net"]
        assert record.stats is None
        assert record.api is False

    async def test_blocked_hosts_never_probed(self, refresher: Refresher, network: MockHttp):
        await refresher.refresh()
        assert not any("blocked.example.com" in call for call in network.calls)

    async def test_second_cycle_replaces_records(self, refresher: Refresher, network: MockHttp):
        await refresher.refresh()
        network.add_monitor_page(1, [monitor("yewtu.be")], total=1)

        outcome = await refresher.refresh()

        assert set(refresher.store.records()) == {"yewtu.be"}
        assert outcome.version == 2

    async def test_partial_monitor_listing(self, refresher: Refresher, network: MockHttp):
        network.add(
            f"{MONITORS_URL}?page=2",
            status=500,
            body={},
        )

        with (
            patch.object(refresher, "inc_counter") as mock_counter,
            patch.object(refresher._logger, "warning") as mock_warning,
        ):
            outcome = await refresher.refresh()

        assert outcome.published is True
        assert set(refresher.store.records()) == {"yewtu.be", "noflag.example.net"}
        mock_counter.assert_any_call("monitor_pages_failed", 1)
        assert "monitor_pages_failed" in _events(mock_warning)

    async def test_run_delegates_to_refresh(self, refresher: Refresher, network: MockHttp):
        await refresher.run()
        assert refresher.last_outcome is not None
        assert refresher.last_outcome.published is True


# ============================================================================
# Aborted Cycles
# ============================================================================


class TestAbortedCycle:
    async def test_no_monitors_keeps_store(
        self, refresher: Refresher, mock_http: MockHttp, instances_document: str
    ):
        refresher.store.publish({"old.example": make_record("old.example")})
        mock_http.add(INSTANCES_URL, raw=instances_document.encode())
        mock_http.add_instance("https://yewtu.be")

        with patch.object(refresher._logger, "error") as mock_error:
            outcome = await refresher.refresh()

        assert outcome.published is False
        assert outcome.reason == "no monitors"
        assert outcome.version == 1
        assert set(refresher.store.records()) == {"old.example"}
        assert refresher.store.version == 1
        assert "monitors_fetch_failed" in _events(mock_error)
        assert _kwargs(mock_error, "cycle_aborted")["kept_version"] == 1

    async def test_no_targets_keeps_store(self, refresher: Refresher, mock_http: MockHttp):
        refresher.store.publish({"old.example": make_record("old.example")})
        mock_http.add_monitor_page(1, [monitor("yewtu.be")], total=1)

        outcome = await refresher.refresh()

        assert outcome.reason == "no probe results"
        assert outcome.monitors == 1
        assert set(refresher.store.records()) == {"old.example"}

    async def test_no_overlap_keeps_store(
        self, refresher: Refresher, mock_http: MockHttp, instances_document: str
    ):
        mock_http.add(INSTANCES_URL, raw=instances_document.encode())
        mock_http.add_monitor_page(1, [monitor("elsewhere.example")], total=1)

        outcome = await refresher.refresh()

        assert outcome.published is False
        assert outcome.reason == "no host in both sources"
        assert refresher.store.version == 0
        assert refresher.store.records() == {}

    async def test_abort_counted(self, refresher: Refresher, mock_http: MockHttp):
        with patch.object(refresher, "inc_counter") as mock_counter:
            await refresher.refresh()
        mock_counter.assert_any_call("cycles_aborted")

    async def test_abort_does_not_raise_in_run(self, refresher: Refresher, mock_http: MockHttp):
        await refresher.run()
        assert refresher.last_outcome.published is False

    async def test_shutdown_skips_pending_probes(self, refresher: Refresher, network: MockHttp):
        refresher.request_shutdown()

        outcome = await refresher.refresh()

        assert outcome.reason == "no probe results"
        assert not any("/api/v1/" in call for call in network.calls)


# ============================================================================
# Deadlines
# ============================================================================


class TestDeadlines:
    async def test_hanging_target_dropped_without_abort(
        self, store: PublishedStore, network: MockHttp
    ):
        network.add_instance("https://noflag.example.net", hang=True)
        config = RefresherConfig(probe={"target_timeout": 1.0})
        refresher = Refresher(store, config, session_factory=network.factory())

        with patch.object(refresher._logger, "warning") as mock_warning:
            outcome = await refresher.refresh()

        assert outcome.published is True
        assert outcome.timed_out_targets == 1
        assert outcome.probes == 4
        assert set(store.records()) == {"yewtu.be", ONION}
        assert _kwargs(mock_warning, "probe_timeout")["host"] == "noflag.example.net"

    async def test_overall_probe_deadline(self, store: PublishedStore, network: MockHttp):
        config = RefresherConfig(probe={"target_timeout": 1.0}, timeouts={"probes": 1.0})
        refresher = Refresher(store, config, session_factory=network.factory())

        with (
            patch.object(refresher, "_probe_all", side_effect=_hang),
            patch.object(refresher._logger, "error") as mock_error,
        ):
            outcome = await refresher.refresh()

        assert outcome.reason == "no probe results"
        assert "probes_timeout" in _events(mock_error)
        assert store.version == 0

    async def test_overall_monitor_deadline(self, store: PublishedStore, network: MockHttp):
        config = RefresherConfig(timeouts={"monitors": 1.0})
        refresher = Refresher(store, config, session_factory=network.factory())

        with (
            patch(f"{SERVICE_MODULE}.fetch_monitors", side_effect=_hang),
            patch.object(refresher._logger, "error") as mock_error,
        ):
            outcome = await refresher.refresh()

        assert outcome.reason == "no monitors"
        assert "monitors_timeout" in _events(mock_error)


# ============================================================================
# Worker Pool
# ============================================================================


class TestProbePool:
    async def test_max_parallel_respected(self, store: PublishedStore, network: MockHttp):
        config = RefresherConfig(probe={"max_parallel": 2})
        refresher = Refresher(store, config, session_factory=network.factory())
        active = 0
        peak = 0

        async def fake_probe(target, probe_config, session_factory=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return TargetProbe(
                record=ProbeRecord(host=target.host, type=target.type, uri=target.uri),
                logs=ProbeLogs(skipped=True),
            )

        with patch(f"{SERVICE_MODULE}.probe_target", side_effect=fake_probe):
            outcome = await refresher.refresh()

        assert outcome.probes == 5
        assert peak == 2

    async def test_worker_failure_isolated(self, refresher: Refresher, network: MockHttp):
        async def flaky_probe(target, probe_config, session_factory=None):
            if target.host == "noflag.example.net":
                raise RuntimeError("worker crashed")
            return await real_probe_target(target, probe_config, session_factory)

        with (
            patch(f"{SERVICE_MODULE}.probe_target", side_effect=flaky_probe),
            patch.object(refresher._logger, "error") as mock_error,
        ):
            outcome = await refresher.refresh()

        assert outcome.published is True
        assert set(refresher.store.records()) == {"yewtu.be", ONION}
        assert _kwargs(mock_error, "probe_worker_failed")["error_type"] == "RuntimeError"

    async def test_cancellation_propagates(self, refresher: Refresher, network: MockHttp):
        with (
            patch(f"{SERVICE_MODULE}.probe_target", side_effect=asyncio.CancelledError),
            pytest.raises(asyncio.CancelledError),
        ):
            await refresher.refresh()

    async def test_failing_side_cancels_other(self, refresher: Refresher):
        cancelled = asyncio.Event()

        async def slow_monitors():
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def broken_probes():
            await asyncio.sleep(0)
            raise RecursionError("nested too deep")

        with (
            patch.object(refresher, "collect_monitors", side_effect=slow_monitors),
            patch.object(refresher, "collect_probes", side_effect=broken_probes),
            pytest.raises(RecursionError, match="nested too deep"),
        ):
            await refresher.refresh()

        assert cancelled.is_set()
        assert refresher.store.version == 0


# ============================================================================
# Metrics and Logs
# ============================================================================


class TestReporting:
    async def test_gauges(self, refresher: Refresher, network: MockHttp):
        with patch.object(refresher, "set_gauge") as mock_gauge:
            await refresher.refresh()

        mock_gauge.assert_any_call("instances_published", 3)
        mock_gauge.assert_any_call("monitors_fetched", 4)
        mock_gauge.assert_any_call("targets_probed", 5)
        mock_gauge.assert_any_call("targets_timed_out", 0)

    async def test_cycle_completed_logged(self, refresher: Refresher, network: MockHttp):
        with patch.object(refresher._logger, "info") as mock_info:
            await refresher.refresh()

        fields = _kwargs(mock_info, "cycle_completed")
        assert fields["published"] is True
        assert fields["records"] == 3
        assert fields["discovered"] == 5
        assert "duration" in fields
        assert _kwargs(mock_info, "targets_discovered")["count"] == 5

    async def test_degraded_probe_logged(self, refresher: Refresher, network: MockHttp):
        network.add("https://yewtu.be/api/v1/trending", status=404, body={})

        with patch.object(refresher._logger, "debug") as mock_debug:
            await refresher.refresh()

        fields = _kwargs(mock_debug, "probe_degraded")
        assert fields["host"] == "yewtu.be"
        assert fields["api_reason"] == "HTTP 404"

    async def test_region_passed_through(self, refresher: Refresher, network: MockHttp):
        network.add_monitor_page(1, [monitor("invidious.example.org")], total=1)

        await refresher.refresh()

        record = refresher.store.records()["invidious.example.org"]
        assert record.flag == US
        assert record.uri == "https://invidious.example.org/"
