"""Shared constants for the models layer.

See Also:
    [instances_api.models.target][]: Uses
        [TargetType][instances_api.models.constants.TargetType] to classify
        discovered hosts.
    [BaseService][instances_api.core.base_service.BaseService]: Uses
        [ServiceName][instances_api.models.constants.ServiceName] for logging
        and metrics labels.
"""

from __future__ import annotations

from enum import StrEnum


class TargetType(StrEnum):
    """Well-known target types.

    Overlay-network targets (``onion``, ``i2p``) are identified by the last
    label of their hostname and are never probed directly. Every other
    target's type is the scheme of its URI (usually ``https``), so the
    published ``type`` field is a plain string rather than a member of
    this enum.

    Attributes:
        ONION: Tor hidden service (``*.onion``).
        I2P: I2P eepsite (``*.i2p``).
        HTTPS: Clearnet instance served over TLS.
        HTTP: Clearnet instance served without TLS.
    """

    ONION = "onion"
    I2P = "i2p"
    HTTPS = "https"
    HTTP = "http"


#: Host labels whose targets are recorded without any network call.
OVERLAY_TYPES: frozenset[str] = frozenset({TargetType.ONION, TargetType.I2P})


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        REFRESHER: The refresh scheduler
            ([Refresher][instances_api.services.refresher.Refresher]).
        API: The read-only HTTP surface
            ([Api][instances_api.services.api.Api]).
    """

    REFRESHER = "refresher"
    API = "api"


#: Offset between a Unicode regional indicator symbol and its ASCII letter
#: (``U+1F1E6`` REGIONAL INDICATOR SYMBOL LETTER A minus ``"A"``).
REGION_INDICATOR_OFFSET = 0x1F1A5
