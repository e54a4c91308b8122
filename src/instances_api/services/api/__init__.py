"""Read surface serving the published records.

See Also:
    [Api][instances_api.services.api.service.Api]: The service class.
    [ApiConfig][instances_api.services.api.configs.ApiConfig]: Service configuration.
"""

from .configs import ApiConfig
from .service import Api


__all__ = ["Api", "ApiConfig"]
