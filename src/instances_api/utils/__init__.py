"""Stateless helpers usable from both ``sources`` and ``services``.

Attributes:
    read_bounded_json: Size-limited JSON body read.
    read_bounded_text: Size-limited text body read.
    probe_timeout: Independent connect/read ``aiohttp.ClientTimeout``.
"""

from .http import probe_timeout, read_bounded_json, read_bounded_text


__all__ = [
    "probe_timeout",
    "read_bounded_json",
    "read_bounded_text",
]
