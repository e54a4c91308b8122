"""
Pytest configuration and shared fixtures for instances-api tests.

Provides:
- Shared instance fixtures and HTTP mocks (``fixtures/instances.py``)
- An empty published store
- Custom pytest markers for test categorization
"""

from __future__ import annotations

import logging

import pytest

from instances_api.core.store import PublishedStore


pytest_plugins = ["fixtures.instances"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Store
# ============================================================================


@pytest.fixture
def store() -> PublishedStore:
    """A fresh, never-published store."""
    return PublishedStore()


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
