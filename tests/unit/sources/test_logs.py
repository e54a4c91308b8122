"""
Unit tests for sources.logs module.

Tests:
- FetchLogs success/reason consistency
- ProbeLogs per-phase consistency and the skipped state
- ProbeLogs.reasons for structured logging
"""

import pytest
from pydantic import ValidationError

from instances_api.sources import FetchLogs, ProbeLogs


class TestFetchLogs:
    def test_ok(self):
        logs = FetchLogs.ok()
        assert logs.success is True
        assert logs.reason is None

    def test_failed(self):
        logs = FetchLogs.failed("HTTP 503")
        assert logs.success is False
        assert logs.reason == "HTTP 503"

    def test_success_with_reason_rejected(self):
        with pytest.raises(ValidationError, match="must be None"):
            FetchLogs(success=True, reason="oops")

    def test_failure_without_reason_rejected(self):
        with pytest.raises(ValidationError, match="is required"):
            FetchLogs(success=False)

    def test_strict_bool(self):
        with pytest.raises(ValidationError):
            FetchLogs(success=1)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            FetchLogs.ok().success = False  # type: ignore[misc]


class TestProbeLogs:
    def test_both_phases_ok(self):
        logs = ProbeLogs(stats_success=True, api_success=True)
        assert logs.skipped is False
        assert logs.reasons == {}

    def test_mixed(self):
        logs = ProbeLogs(stats_success=True, api_success=False, api_reason="HTTP 404")
        assert logs.reasons == {"api_reason": "HTTP 404"}

    def test_both_failed(self):
        logs = ProbeLogs(
            stats_success=False,
            stats_reason="refused",
            api_success=False,
            api_reason="refused",
        )
        assert logs.reasons == {"stats_reason": "refused", "api_reason": "refused"}

    def test_skipped(self):
        logs = ProbeLogs(skipped=True)
        assert logs.stats_success is None
        assert logs.api_success is None

    def test_skipped_with_results_rejected(self):
        with pytest.raises(ValidationError, match="skipped"):
            ProbeLogs(skipped=True, stats_success=True)

    def test_reason_without_attempt_rejected(self):
        with pytest.raises(ValidationError, match="not attempted"):
            ProbeLogs(stats_reason="refused")

    def test_failure_needs_reason(self):
        with pytest.raises(ValidationError, match="api_reason is required"):
            ProbeLogs(stats_success=True, api_success=False)
