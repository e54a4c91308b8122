"""
Target discovery from the public instance list document.

The list is a markdown file. Every instance appears as a markdown link
``[host](uri)``, optionally followed by one separator character and a
regional indicator flag::

    * [yewtu.be](https://yewtu.be) 🇩🇪 ...

Only the part of the document before the blocked-instances heading is
scanned. The fetch is total: a transport or HTTP failure is logged and
yields an empty document, which in turn yields no targets.

See Also:
    [RawTarget][instances_api.models.target.RawTarget]: Produced per entry.
    [Refresher][instances_api.services.refresher.Refresher]: Consumes
        [discover_targets()][instances_api.sources.discovery.discover_targets].
"""

from __future__ import annotations

import asyncio
import logging
import re
from http import HTTPStatus
from typing import TYPE_CHECKING

import aiohttp

from instances_api.models import RawTarget
from instances_api.utils.http import read_bounded_text


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from .configs import DiscoveryConfig


logger = logging.getLogger("instances_api.sources.discovery")


_ENTRY_PATTERN = re.compile(
    r"\[(?P<host>[^ \]]+)\]"  # [host]
    r"\((?P<uri>[^)]+)\)"  # (uri)
    r"(?:.(?P<flag>[\U0001F100-\U0001F1FF]{2}))?"  # separator + regional indicator pair
)


async def fetch_instances_document(session: aiohttp.ClientSession, config: DiscoveryConfig) -> str:
    """Download the instance list document.

    Never raises except on cancellation.

    Returns:
        The document text, or ``""`` when the fetch failed.
    """
    try:
        async with session.get(
            config.url, timeout=aiohttp.ClientTimeout(total=config.timeout)
        ) as resp:
            if resp.status != HTTPStatus.OK:
                raise ValueError(f"HTTP {resp.status}")
            return await read_bounded_text(resp, config.max_response_size)
    except asyncio.CancelledError:
        raise
    except (OSError, TimeoutError, aiohttp.ClientError, ValueError) as e:
        logger.warning(
            "discovery_fetch_failed url=%s error=%s", config.url, str(e) or type(e).__name__
        )
        return ""


def parse_targets(document: str, delimiter: str = "### Blocked:") -> Iterator[RawTarget]:
    """Lazily parse the listed section of the document into targets.

    Entries whose URI has no scheme or no host are skipped. A host listed
    more than once keeps its first entry.

    Args:
        document: Full document text.
        delimiter: Heading that starts the blocked-instances section;
            everything from it onward is ignored.

    Yields:
        One [RawTarget][instances_api.models.target.RawTarget] per accepted
        entry, in document order.
    """
    listed = document.split(delimiter, 1)[0]
    seen: set[str] = set()

    for match in _ENTRY_PATTERN.finditer(listed):
        host = match["host"]
        if host in seen:
            continue
        try:
            target = RawTarget(host, match["uri"], match["flag"])
        except ValueError as e:
            logger.debug("discovery_entry_skipped host=%s error=%s", host, e)
            continue
        seen.add(host)
        yield target


async def discover_targets(
    session: aiohttp.ClientSession, config: DiscoveryConfig
) -> AsyncIterator[RawTarget]:
    """Fetch the document and yield its targets.

    One-shot: iterating again requires calling this function again, which
    re-fetches the document.
    """
    document = await fetch_instances_document(session, config)
    count = 0
    for target in parse_targets(document, config.blocked_delimiter):
        count += 1
        yield target
    logger.debug("discovery_completed url=%s targets=%d", config.url, count)
