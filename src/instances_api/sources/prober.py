"""
Direct per-target probing.

[probe_target()][instances_api.sources.prober.probe_target] makes two
independent calls against one target's origin:

1. The status endpoint (``/api/v1/stats``), whose JSON body becomes the
   opaque ``stats`` payload.
2. The capability endpoint (``/api/v1/trending``). The target has a working
   API when it answers ``200`` with a non-empty list whose first entry
   carries a string identity field; only then is ``cors`` read from the
   ``Access-Control-Allow-Origin`` header.

Overlay targets (``.onion``, ``.i2p``) are never contacted.

Warning:
    ``probe_target()`` **never raises** (except ``CancelledError``). Every
    failure degrades the affected fields and is recorded in
    [ProbeLogs][instances_api.sources.logs.ProbeLogs]. The connect and read
    timeouts bound individual socket operations, not the whole call, so
    callers must wrap it in their own deadline.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import aiohttp

from instances_api.core.exceptions import PayloadError
from instances_api.models import ProbeRecord
from instances_api.utils.http import probe_timeout, read_bounded_json

from .logs import ProbeLogs


if TYPE_CHECKING:
    from instances_api.models import JsonValue, RawTarget

    from .configs import ProbeConfig


logger = logging.getLogger("instances_api.sources.prober")

SessionFactory = Callable[..., aiohttp.ClientSession]

_NETWORK_ERRORS = (OSError, TimeoutError, aiohttp.ClientError, ValueError)


@dataclass(frozen=True, slots=True)
class TargetProbe:
    """A probe record together with the outcome of the calls behind it.

    Always check ``logs`` before relying on ``record.stats`` or
    ``record.api``.
    """

    record: ProbeRecord
    logs: ProbeLogs

    @property
    def host(self) -> str:
        return self.record.host


def _reason(e: BaseException) -> str:
    return str(e) or type(e).__name__


async def _fetch_stats(session: aiohttp.ClientSession, url: str, max_size: int) -> JsonValue:
    async with session.get(url) as resp:
        if resp.status != HTTPStatus.OK:
            raise PayloadError(f"HTTP {resp.status}")
        return await read_bounded_json(resp, max_size)


async def _probe_capability(
    session: aiohttp.ClientSession, url: str, identity_field: str, max_size: int
) -> bool:
    """Run the capability call and return the ``cors`` flag.

    Raises:
        PayloadError: If the status is not 200 or the body is not a
            non-empty list whose first entry has a string ``identity_field``.
    """
    async with session.get(url) as resp:
        if resp.status != HTTPStatus.OK:
            raise PayloadError(f"HTTP {resp.status}")
        body: Any = await read_bounded_json(resp, max_size)
        if not isinstance(body, list) or not body:
            raise PayloadError("expected a non-empty list")
        first = body[0]
        if not isinstance(first, Mapping) or not isinstance(first.get(identity_field), str):
            raise PayloadError(f"first entry has no string {identity_field!r}")
        return resp.headers.get("Access-Control-Allow-Origin") == "*"


async def probe_target(
    target: RawTarget,
    config: ProbeConfig,
    session_factory: SessionFactory | None = None,
) -> TargetProbe:
    """Probe one target and build its record.

    Args:
        target: The discovered target.
        config: Timeouts, endpoint paths and size limits.
        session_factory: Callable returning an ``aiohttp.ClientSession``
            (default: ``aiohttp.ClientSession``). One session is opened per
            target and closed before returning.

    Returns:
        A [TargetProbe][instances_api.sources.prober.TargetProbe]; never
        ``None``.
    """
    if target.is_overlay:
        return TargetProbe(
            record=ProbeRecord(
                host=target.host,
                type=target.type,
                uri=target.uri,
                flag=target.flag,
                region=target.region,
            ),
            logs=ProbeLogs(skipped=True),
        )

    factory = session_factory if session_factory is not None else aiohttp.ClientSession
    logs: dict[str, Any] = {}
    stats: JsonValue = None
    cors = False
    api = False

    async with factory(
        timeout=probe_timeout(config.connect_timeout, config.read_timeout)
    ) as session:
        try:
            stats = await _fetch_stats(
                session, target.origin + config.stats_path, config.max_response_size
            )
            logs["stats_success"] = True
        except asyncio.CancelledError:
            raise
        except _NETWORK_ERRORS as e:
            logs["stats_success"] = False
            logs["stats_reason"] = _reason(e)

        try:
            cors = await _probe_capability(
                session,
                target.origin + config.capability_path,
                config.identity_field,
                config.max_response_size,
            )
            api = True
            logs["api_success"] = True
        except asyncio.CancelledError:
            raise
        except _NETWORK_ERRORS as e:
            logs["api_success"] = False
            logs["api_reason"] = _reason(e)

    result = TargetProbe(
        record=ProbeRecord(
            host=target.host,
            type=target.type,
            uri=target.uri,
            flag=target.flag,
            region=target.region,
            stats=stats,
            cors=cors,
            api=api,
        ),
        logs=ProbeLogs.model_validate(logs),
    )

    logger.debug(
        "probe_completed host=%s stats=%s api=%s cors=%s",
        target.host,
        logs["stats_success"],
        api,
        cors,
    )
    return result
