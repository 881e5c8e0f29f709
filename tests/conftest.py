"""Shared pytest fixtures for the privacy gateway tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from privacy_gateway.main import create_app
from privacy_gateway.ohttp import OHTTPClient, OHTTPGateway
from tests.helpers import KEY_ID, SEED, TARGET_BODY, RecordingMetricsFactory, make_settings


@pytest.fixture
def metrics_factory() -> RecordingMetricsFactory:
    """Return a fresh recording metrics factory."""
    return RecordingMetricsFactory()


@pytest.fixture
def gateway() -> OHTTPGateway:
    """Return a gateway with a deterministic key."""
    return OHTTPGateway.from_seed(KEY_ID, SEED)


@pytest.fixture
def ohttp_client(gateway: OHTTPGateway) -> OHTTPClient:
    """Return a client for the gateway's published configuration."""
    return gateway.client(KEY_ID)


@pytest.fixture
def target_requests() -> list[httpx.Request]:
    """Requests received by the mocked target origin."""
    return []


@pytest.fixture
def target_client(target_requests: list[httpx.Request]) -> httpx.AsyncClient:
    """Return an HTTP client whose transport answers for every target."""

    def handler(request: httpx.Request) -> httpx.Response:
        target_requests.append(request)
        return httpx.Response(
            200,
            headers={"content-type": "text/plain", "x-target": request.url.host},
            content=TARGET_BODY,
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_client(
    gateway: OHTTPGateway,
    metrics_factory: RecordingMetricsFactory,
    target_client: httpx.AsyncClient,
) -> Callable[..., TestClient]:
    """Return a factory building a test client with settings overrides."""

    def _make(**overrides) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            gateway=gateway,
            metrics_factory=metrics_factory,
            target_client=target_client,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    """Return a test client with default settings."""
    return make_client()


@pytest.fixture
def debug_client(make_client: Callable[..., TestClient]) -> TestClient:
    """Return a test client with debug mode enabled."""
    return make_client(debug=True)
