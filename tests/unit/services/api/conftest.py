"""Shared fixtures and helpers for services.api test package."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from fixtures.instances import DE, make_record

from instances_api.core.store import PublishedStore
from instances_api.services.api import Api, ApiConfig


@pytest.fixture
def api_config() -> ApiConfig:
    """Minimal API config for testing."""
    return ApiConfig(interval=60.0, host="127.0.0.1", port=9999)


@pytest.fixture
def populated_store(store: PublishedStore) -> PublishedStore:
    """Store after one publication of three records."""
    store.publish(
        {
            "small.example": make_record(
                "small.example", stats={"usage": {"users": {"total": 5}}}
            ),
            "big.example": make_record(
                "big.example",
                flag=DE,
                region="DE",
                stats={"usage": {"users": {"total": 500}}},
            ),
            "x.onion": make_record("x.onion", type="onion", uri="http://x.onion", stats=None),
        }
    )
    return store


@pytest.fixture
def api_service(populated_store: PublishedStore, api_config: ApiConfig) -> Api:
    return Api(store=populated_store, config=api_config)


@pytest.fixture
def test_client(api_service: Api) -> TestClient:
    """FastAPI TestClient from the Api service."""
    app = api_service._build_app()
    return TestClient(app)
