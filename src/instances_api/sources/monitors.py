"""
Paginated uptime monitor listing.

The monitor service answers ``GET <listing_path>?page=N`` with::

    {"psp": {"monitors": [...], "totalMonitors": 123, "perPage": 50}}

Page 1 is fetched first because it carries the pagination parameters; the
remaining ``ceil(totalMonitors / perPage) - 1`` pages are then requested
concurrently. Each page fails independently: a failed page is logged and
counted, the pages that did arrive are kept.

See Also:
    [MonitorsConfig][instances_api.sources.configs.MonitorsConfig]:
        Endpoint, timeouts and concurrency bound.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import aiohttp

from instances_api.core.exceptions import PayloadError
from instances_api.utils.http import probe_timeout, read_bounded_json

from .logs import FetchLogs


if TYPE_CHECKING:
    from instances_api.models import JsonValue

    from .configs import MonitorsConfig
    from .prober import SessionFactory


logger = logging.getLogger("instances_api.sources.monitors")

_NETWORK_ERRORS = (OSError, TimeoutError, aiohttp.ClientError, ValueError)


@dataclass(frozen=True, slots=True)
class MonitorPage:
    """One decoded listing page."""

    monitors: tuple[JsonValue, ...]
    total: int
    per_page: int

    @property
    def remaining_pages(self) -> int:
        """Pages still to fetch after this one, assuming this is page 1."""
        if self.per_page <= 0:
            return 0
        return max(math.ceil(self.total / self.per_page) - 1, 0)


@dataclass(frozen=True, slots=True)
class MonitorListing:
    """All monitor payloads gathered in one fetch.

    Attributes:
        monitors: Monitor payloads in page order; empty when page 1 failed.
        pages_total: Number of pages the listing announced (0 if unknown).
        pages_failed: Number of pages that could not be fetched.
        logs: Outcome of the page 1 request.
    """

    monitors: tuple[JsonValue, ...] = ()
    pages_total: int = 0
    pages_failed: int = 0
    logs: FetchLogs = field(default_factory=FetchLogs.ok)

    @property
    def reason(self) -> str | None:
        return self.logs.reason

    def keyed(self) -> dict[str, JsonValue]:
        """Map monitor ``name`` to payload.

        Payloads without a string ``name`` cannot be matched to a target and
        are dropped. A repeated name keeps its last payload.
        """
        by_name: dict[str, JsonValue] = {}
        for monitor in self.monitors:
            if not isinstance(monitor, Mapping):
                continue
            name = monitor.get("name")
            if isinstance(name, str) and name:
                by_name[name] = monitor
        return by_name


def parse_page(data: Any) -> MonitorPage:
    """Validate and decode one listing page body.

    Raises:
        PayloadError: If ``psp``, ``psp.monitors``, ``psp.totalMonitors`` or
            ``psp.perPage`` is missing or has the wrong type.
    """
    psp = data.get("psp") if isinstance(data, Mapping) else None
    if not isinstance(psp, Mapping):
        raise PayloadError("missing 'psp' object")

    monitors = psp.get("monitors")
    if not isinstance(monitors, list):
        raise PayloadError("'psp.monitors' is not a list")

    total = psp.get("totalMonitors", 0)
    per_page = psp.get("perPage", 0)
    # bool is an int subclass
    if not isinstance(total, int) or isinstance(total, bool):
        raise PayloadError("'psp.totalMonitors' is not an integer")
    if not isinstance(per_page, int) or isinstance(per_page, bool):
        raise PayloadError("'psp.perPage' is not an integer")

    return MonitorPage(monitors=tuple(monitors), total=total, per_page=per_page)


async def fetch_page(
    session: aiohttp.ClientSession, config: MonitorsConfig, page: int
) -> MonitorPage:
    """Fetch and decode a single listing page.

    Raises:
        aiohttp.ClientError: On transport failure.
        TimeoutError: When a connect or read timeout expires.
        ValueError: On a non-200 status, an oversized body, invalid JSON or
            an unexpected shape ([PayloadError][instances_api.core.exceptions.PayloadError]).
    """
    url = config.base_url + config.listing_path
    async with session.get(url, params={"page": str(page)}) as resp:
        if resp.status != HTTPStatus.OK:
            raise PayloadError(f"HTTP {resp.status}")
        data = await read_bounded_json(resp, config.max_response_size)
    return parse_page(data)


async def fetch_monitors(
    config: MonitorsConfig, session_factory: SessionFactory | None = None
) -> MonitorListing:
    """Fetch every listing page.

    Never raises except on cancellation.

    Args:
        config: Endpoint, timeouts, concurrency bound and size limit.
        session_factory: Callable returning an ``aiohttp.ClientSession``
            (default: ``aiohttp.ClientSession``).

    Returns:
        A [MonitorListing][instances_api.sources.monitors.MonitorListing].
        A page 1 failure gives an empty listing whose ``logs`` carry the
        reason.
    """
    factory = session_factory if session_factory is not None else aiohttp.ClientSession
    timeout = probe_timeout(config.connect_timeout, config.read_timeout)

    async with factory(timeout=timeout) as session:
        try:
            first = await fetch_page(session, config, 1)
        except asyncio.CancelledError:
            raise
        except _NETWORK_ERRORS as e:
            reason = str(e) or type(e).__name__
            logger.warning("monitors_first_page_failed error=%s", reason)
            return MonitorListing(pages_failed=1, logs=FetchLogs.failed(reason))

        remaining = first.remaining_pages
        semaphore = (
            asyncio.Semaphore(config.max_parallel_pages) if config.max_parallel_pages else None
        )

        async def fetch_bounded(page: int) -> MonitorPage:
            if semaphore is None:
                return await fetch_page(session, config, page)
            async with semaphore:
                return await fetch_page(session, config, page)

        results = await asyncio.gather(
            *(fetch_bounded(page) for page in range(2, remaining + 2)),
            return_exceptions=True,
        )

    monitors: list[JsonValue] = list(first.monitors)
    failed = 0
    for page, result in enumerate(results, start=2):
        if isinstance(result, MonitorPage):
            monitors.extend(result.monitors)
            continue
        if not isinstance(result, Exception):
            raise result
        failed += 1
        logger.warning(
            "monitors_page_failed page=%d error=%s", page, str(result) or type(result).__name__
        )

    listing = MonitorListing(
        monitors=tuple(monitors),
        pages_total=remaining + 1,
        pages_failed=failed,
    )
    logger.debug(
        "monitors_fetched monitors=%d pages=%d failed=%d",
        len(listing.monitors),
        listing.pages_total,
        listing.pages_failed,
    )
    return listing
