"""
Discovered target instance with region decoding and type detection.

A [RawTarget][instances_api.models.target.RawTarget] is one entry of the
public instance list: the host name used as the reconciliation key, the URI
the instance is served from and an optional regional indicator flag. It
lives for a single refresh cycle only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import ValidationError
from rfc3986.validators import Validator

from ._validation import validate_optional_str, validate_str_not_empty
from .constants import OVERLAY_TYPES, REGION_INDICATOR_OFFSET


def decode_region(flag: str | None) -> str | None:
    """Decode a regional indicator pair into its ISO 3166 alpha-2 code.

    Each codepoint is shifted down by ``REGION_INDICATOR_OFFSET``, so
    ``"🇩🇪"`` becomes ``"DE"``. Total: an absent or empty flag is "no
    region" and returns ``None``.

    Examples:
        ```python
        decode_region("\\U0001F1FA\\U0001F1F8")  # 'US'
        decode_region(None)                     # None
        ```
    """
    if not flag:
        return None
    return "".join(chr(ord(c) - REGION_INDICATOR_OFFSET) for c in flag)


def target_type(host: str, scheme: str) -> str:
    """Classify a target from its host's last label, falling back to the URI scheme.

    ``foo.onion`` is ``"onion"``, ``bar.i2p`` is ``"i2p"``; anything else
    takes the scheme of its URI (``"https"``, ``"http"``).
    """
    label = host.rsplit(".", 1)[-1].lower()
    if label in OVERLAY_TYPES:
        return label
    return scheme


@dataclass(frozen=True, slots=True)
class RawTarget:
    """Immutable entry parsed from the instance list document.

    Attributes:
        host: Host name as written in the list; the reconciliation key.
        raw_uri: URI as written in the list.
        flag: Raw two-codepoint regional indicator, passed through
            unmodified, or ``None``.
        uri: Normalized URI (scheme and host lower-cased).
        scheme: URI scheme.
        origin: ``scheme://authority`` the probes are sent to.
        region: Decoded two-letter region code, or ``None``.
        type: ``"onion"``, ``"i2p"`` or the URI scheme.

    Raises:
        ValueError: If the host is empty or the URI has no scheme or host.

    Examples:
        ```python
        target = RawTarget("yewtu.be", "https://yewtu.be", "\\U0001F1E9\\U0001F1EA")
        target.region   # 'DE'
        target.type     # 'https'
        ```
    """

    host: str
    raw_uri: str = field(repr=False)
    flag: str | None = None

    uri: str = field(init=False)
    scheme: str = field(init=False)
    origin: str = field(init=False)
    region: str | None = field(init=False)
    type: str = field(init=False)

    _VALIDATOR: ClassVar[Validator] = (
        Validator()
        .require_presence_of("scheme", "host")
        .check_validity_of("scheme", "host", "port")
    )

    def __post_init__(self) -> None:
        validate_str_not_empty(self.host, "host")
        validate_str_not_empty(self.raw_uri, "raw_uri")
        validate_optional_str(self.flag, "flag")

        parsed = uri_reference(self.raw_uri.strip()).normalize()
        try:
            self._VALIDATOR.validate(parsed)
        except ValidationError as e:
            raise ValueError(f"Invalid URI {self.raw_uri!r}: {e}") from None

        object.__setattr__(self, "uri", parsed.unsplit())
        object.__setattr__(self, "scheme", parsed.scheme)
        object.__setattr__(self, "origin", f"{parsed.scheme}://{parsed.authority}")
        object.__setattr__(self, "region", decode_region(self.flag))
        object.__setattr__(self, "type", target_type(self.host, parsed.scheme))

    @property
    def is_overlay(self) -> bool:
        """Whether the target lives on an overlay network and is not probed."""
        return self.type in OVERLAY_TYPES
