"""API service configuration models.

See Also:
    [Api][instances_api.services.api.Api]: The service class that consumes
        these configurations.
    [BaseServiceConfig][instances_api.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import Field, field_validator

from instances_api.core.base_service import BaseServiceConfig
from instances_api.core.exceptions import SortKeyError
from instances_api.services.common.sorting import DEFAULT_SORT, parse_sort_keys


class ApiConfig(BaseServiceConfig):
    """Configuration for the API service.

    ``interval`` is how often request statistics are logged.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        default_sort: Sort specification used when a request has no
            ``sort_by`` parameter. Validated at load time.
        hsts: Value of the ``Strict-Transport-Security`` header; empty
            disables it.
    """

    interval: float = Field(default=60.0, ge=1.0, description="Seconds between stats logs")
    host: str = Field(default="0.0.0.0", min_length=1, description="Bind address")  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    default_sort: str = Field(default=DEFAULT_SORT, min_length=1)
    hsts: str = Field(default="max-age=31536000; includeSubDomains; preload")

    @field_validator("default_sort")
    @classmethod
    def _validate_default_sort(cls, v: str) -> str:
        try:
            parse_sort_keys(v)
        except SortKeyError as e:
            raise ValueError(str(e)) from e
        return v
