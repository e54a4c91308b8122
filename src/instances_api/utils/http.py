"""HTTP utilities shared by the source fetchers.

Bounded body reads keep an oversized or never-ending response from
exhausting memory, and [probe_timeout][instances_api.utils.http.probe_timeout]
builds the per-call connect/read timeouts every outbound request uses.

Note:
    This module sits in the ``utils`` layer and depends only on the
    standard library, ``aiohttp`` and the core exception types.
"""

from __future__ import annotations

import json
from typing import Any

import aiohttp

from instances_api.core.exceptions import PayloadError


def _reject_constant(name: str) -> Any:
    raise PayloadError(f"non-finite number in JSON body: {name}")


def probe_timeout(connect: float, read: float) -> aiohttp.ClientTimeout:
    """Build a timeout with independent connect and read bounds.

    No ``total`` is set: each call gets ``connect`` seconds to establish the
    connection and ``read`` seconds between received chunks, rather than
    sharing one cumulative budget.
    """
    return aiohttp.ClientTimeout(total=None, sock_connect=connect, sock_read=read)


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body, refusing more than ``max_size`` bytes.

    Reads until EOF, so chunked transfer-encoding where a single read
    returns fewer bytes than requested is handled.

    Raises:
        ValueError: If the body exceeds ``max_size``.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_json(response: aiohttp.ClientResponse, max_size: int) -> Any:
    """Read and parse a JSON response body with size enforcement.

    ``NaN`` and ``Infinity`` are refused: they are not JSON and would make
    every later export of the value invalid.

    Returns:
        The parsed JSON value.

    Raises:
        ValueError: If the body exceeds ``max_size`` or is not valid JSON
            (``json.JSONDecodeError`` is a ``ValueError``).
        PayloadError: If the body contains a non-finite number constant.
    """
    body = await _read_bounded(response, max_size)
    return json.loads(body, parse_constant=_reject_constant)


async def read_bounded_text(
    response: aiohttp.ClientResponse, max_size: int, encoding: str = "utf-8"
) -> str:
    """Read a text response body with size enforcement.

    Undecodable bytes are replaced rather than rejected.

    Raises:
        ValueError: If the body exceeds ``max_size``.
    """
    body = await _read_bounded(response, max_size)
    return body.decode(encoding, errors="replace")
