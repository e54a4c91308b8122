"""
Unit tests for sources.configs module.
"""

import pytest
from fixtures.instances import INSTANCES_URL
from pydantic import ValidationError

from instances_api.sources import DiscoveryConfig, MonitorsConfig, ProbeConfig


class TestDiscoveryConfig:
    def test_defaults(self):
        config = DiscoveryConfig()
        assert config.url == INSTANCES_URL
        assert config.blocked_delimiter == "### Blocked:"
        assert config.timeout == 30.0
        assert config.max_response_size == 2_097_152

    def test_empty_delimiter_rejected(self):
        with pytest.raises(ValidationError):
            DiscoveryConfig(blocked_delimiter="")


class TestProbeConfig:
    def test_defaults(self):
        config = ProbeConfig()
        assert config.connect_timeout == 10.0
        assert config.read_timeout == 10.0
        assert config.target_timeout == 30.0
        assert config.max_parallel == 50
        assert config.stats_path == "/api/v1/stats"
        assert config.capability_path == "/api/v1/trending"
        assert config.identity_field == "videoId"

    @pytest.mark.parametrize("field", ["stats_path", "capability_path"])
    def test_relative_path_rejected(self, field):
        with pytest.raises(ValidationError, match="must start with '/'"):
            ProbeConfig(**{field: "api/v1/stats"})

    def test_target_timeout_bounds(self):
        with pytest.raises(ValidationError):
            ProbeConfig(target_timeout=0.5)
        with pytest.raises(ValidationError):
            ProbeConfig(target_timeout=601)

    def test_max_parallel_minimum(self):
        with pytest.raises(ValidationError):
            ProbeConfig(max_parallel=0)


class TestMonitorsConfig:
    def test_defaults(self):
        config = MonitorsConfig()
        assert config.base_url + config.listing_path == (
            "https://stats.uptimerobot.com/api/getMonitorList/89VnzSKAn"
        )
        assert config.max_parallel_pages == 0

    def test_trailing_slash_stripped(self):
        assert MonitorsConfig(base_url="https://status.example/").base_url == (
            "https://status.example"
        )

    def test_relative_listing_path_rejected(self):
        with pytest.raises(ValidationError):
            MonitorsConfig(listing_path="api/list")
