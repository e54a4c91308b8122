"""Canonical instance fixtures and HTTP mocks shared across all test packages.

Usage: Registered via ``pytest_plugins`` in the root ``conftest.py``; the
plain helpers (``MockHttp``, ``make_probe``, ``make_record``) are imported
directly::

    from fixtures.instances import MockHttp, make_record
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from instances_api.models import ProbeRecord, RawTarget, Record


DE = "\U0001f1e9\U0001f1ea"
US = "\U0001f1fa\U0001f1f8"
MONITORS_URL = "https://stats.uptimerobot.com/api/getMonitorList/89VnzSKAn"
INSTANCES_URL = "https://raw.githubusercontent.com/iv-org/documentation/master/docs/instances.md"
ONION = "c" * 56 + ".onion"


# =============================================================================
# HTTP mocks
# =============================================================================


async def _hang(*_args: Any, **_kwargs: Any) -> None:
    await asyncio.sleep(3600)


def mock_response(
    status: int = 200,
    body: Any = None,
    *,
    headers: dict[str, str] | None = None,
    raw: bytes | None = None,
) -> MagicMock:
    """Build a mock aiohttp.ClientResponse whose body is one chunk then EOF."""
    resp = MagicMock()
    resp.status = status
    resp.headers = headers or {}
    data = raw if raw is not None else json.dumps(body).encode()
    resp.content = MagicMock()
    resp.content.read = AsyncMock(side_effect=[data, b""])
    return resp


@dataclass
class _Route:
    status: int = 200
    body: Any = None
    headers: dict[str, str] | None = None
    raw: bytes | None = None
    error: BaseException | None = None
    hang: bool = False


@dataclass
class MockHttp:
    """Scripted stand-in for ``aiohttp.ClientSession``.

    Routes are keyed by URL, with ``?page=N`` appended when the request
    carries a ``page`` query parameter. Unknown URLs raise
    ``aiohttp.ClientConnectionError``.
    """

    routes: dict[str, _Route] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def add(self, url: str, **kwargs: Any) -> None:
        self.routes[url] = _Route(**kwargs)

    def _get(self, url: str, **kwargs: Any) -> MagicMock:
        params = kwargs.get("params") or {}
        key = f"{url}?page={params['page']}" if "page" in params else url
        self.calls.append(key)

        route = self.routes.get(key)
        if route is None:
            raise aiohttp.ClientConnectionError(f"connection refused: {key}")
        if route.error is not None:
            raise route.error

        ctx = MagicMock()
        if route.hang:
            ctx.__aenter__ = AsyncMock(side_effect=_hang)
        else:
            ctx.__aenter__ = AsyncMock(
                return_value=mock_response(
                    route.status, route.body, headers=route.headers, raw=route.raw
                )
            )
        ctx.__aexit__ = AsyncMock(return_value=False)
        return ctx

    def session(self) -> MagicMock:
        session = MagicMock()
        session.get = MagicMock(side_effect=self._get)
        session.__aenter__ = AsyncMock(return_value=session)
        session.__aexit__ = AsyncMock(return_value=False)
        return session

    def factory(self) -> MagicMock:
        """A ``session_factory`` returning a fresh session per call."""
        return MagicMock(side_effect=lambda *_a, **_kw: self.session())

    # -- canned endpoints -----------------------------------------------------

    def add_instance(
        self,
        origin: str,
        *,
        stats: Any = None,
        trending: Any = None,
        cors: bool = True,
        hang: bool = False,
    ) -> None:
        """Register a healthy (or hanging) target origin."""
        if stats is None:
            stats = {"software": {"version": "2.0.0"}, "usage": {"users": {"total": 10}}}
        if trending is None:
            trending = [{"videoId": "dQw4w9WgXcQ", "title": "x"}]
        headers = {"Access-Control-Allow-Origin": "*"} if cors else {}
        self.add(f"{origin}/api/v1/stats", body=stats, hang=hang)
        self.add(f"{origin}/api/v1/trending", body=trending, headers=headers, hang=hang)

    def add_monitor_page(
        self, page: int, monitors: list[Any], *, total: int, per_page: int = 2
    ) -> None:
        self.add(
            f"{MONITORS_URL}?page={page}",
            body={"psp": {"monitors": monitors, "totalMonitors": total, "perPage": per_page}},
        )


# =============================================================================
# Record builders
# =============================================================================


def make_probe(host: str = "yewtu.be", **overrides: Any) -> ProbeRecord:
    """Build a ProbeRecord with healthy clearnet defaults."""
    fields: dict[str, Any] = {
        "host": host,
        "type": "https",
        "uri": f"https://{host}",
        "stats": {"software": {"version": "2.0.0"}, "openRegistrations": True},
        "cors": True,
        "api": True,
    }
    fields.update(overrides)
    return ProbeRecord(**fields)


def make_record(host: str = "yewtu.be", monitor: Any = None, **overrides: Any) -> Record:
    """Build a published Record from a probe record and a monitor payload."""
    if monitor is None:
        monitor = {"name": host, "30dRatio": {"ratio": "99.5"}}
    return Record.merge(make_probe(host, **overrides), monitor)


def monitor(name: str, ratio: str = "99.0") -> dict[str, Any]:
    return {"name": name, "30dRatio": {"ratio": ratio}, "statusClass": "success"}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_http() -> MockHttp:
    return MockHttp()


@pytest.fixture
def target_clearnet() -> RawTarget:
    """Standard https target with a German flag."""
    return RawTarget("yewtu.be", "https://yewtu.be", DE)


@pytest.fixture
def target_onion() -> RawTarget:
    """Tor target; never probed."""
    onion = "a" * 56 + ".onion"
    return RawTarget(onion, f"http://{onion}")


@pytest.fixture
def target_i2p() -> RawTarget:
    return RawTarget("inv.i2p", "http://inv.i2p")


@pytest.fixture
def instances_document() -> str:
    """A trimmed copy of the public instance list, blocked section included."""
    return (
        "# Public Invidious Instances\n"
        "\n"
        "## List of public Invidious Instances (sorted from oldest to newest):\n"
        "\n"
        f"* [yewtu.be](https://yewtu.be) {DE} - Source code: ...\n"
        f"* [invidious.example.org](https://invidious.example.org/) {US}\n"
        "* [noflag.example.net](https://noflag.example.net)\n"
        "\n"
        "### Tor Onion Services:\n"
        "\n"
        f"* [{ONION}](http://{ONION}) {US}\n"
        "\n"
        "### I2P Eepsite:\n"
        "\n"
        "* [inv.i2p](http://inv.i2p)\n"
        "\n"
        "### Blocked:\n"
        "\n"
        "* [blocked.example.com](https://blocked.example.com)\n"
    )
