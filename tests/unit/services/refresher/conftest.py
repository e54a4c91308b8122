"""Shared fixtures and helpers for services.refresher test package."""

from __future__ import annotations

import pytest
from fixtures.instances import INSTANCES_URL, ONION, MockHttp, monitor

from instances_api.core.store import PublishedStore
from instances_api.services.refresher import Refresher, RefresherConfig


CLEARNET_ORIGINS = (
    "https://yewtu.be",
    "https://invidious.example.org",
    "https://noflag.example.net",
)


@pytest.fixture
def refresher_config() -> RefresherConfig:
    """Config with short per-target and overall budgets."""
    return RefresherConfig(
        interval=60.0,
        probe={"target_timeout": 5.0, "max_parallel": 4},
        timeouts={"monitors": 10.0, "probes": 20.0},
    )


@pytest.fixture
def network(mock_http: MockHttp, instances_document: str) -> MockHttp:
    """Instance list, three healthy clearnet targets and a two-page monitor listing.

    Monitors: ``yewtu.be``, ``noflag.example.net``, the onion host and
    ``pending.example`` (not in the instance list).
    """
    mock_http.add(INSTANCES_URL, raw=instances_document.encode())
    for origin in CLEARNET_ORIGINS:
        mock_http.add_instance(origin)
    mock_http.add_monitor_page(1, [monitor("yewtu.be"), monitor("noflag.example.net")], total=4)
    mock_http.add_monitor_page(2, [monitor(ONION), monitor("pending.example")], total=4)
    return mock_http


@pytest.fixture
def refresher(
    store: PublishedStore, refresher_config: RefresherConfig, mock_http: MockHttp
) -> Refresher:
    return Refresher(store, refresher_config, session_factory=mock_http.factory())
