"""Tests for the health and metrics endpoints."""

from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from privacy_gateway import __version__
from privacy_gateway.main import create_app
from privacy_gateway.observability import PrometheusMetricsFactory
from privacy_gateway.ohttp import OHTTPClient, OHTTPGateway
from tests.helpers import OHTTP_REQUEST_HEADERS, make_settings


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "service": "privacy-gateway",
        "version": __version__,
    }


class TestPrometheusMetrics:
    def _client(
        self,
        gateway: OHTTPGateway,
        target_client: httpx.AsyncClient,
        factory: PrometheusMetricsFactory,
        **overrides,
    ) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            gateway=gateway,
            metrics_factory=factory,
            target_client=target_client,
        )
        return TestClient(app)

    def test_counts_gateway_results(
        self,
        gateway: OHTTPGateway,
        ohttp_client: OHTTPClient,
        target_client: httpx.AsyncClient,
    ) -> None:
        factory = PrometheusMetricsFactory()
        client = self._client(gateway, target_client, factory)
        request, _ = ohttp_client.encapsulate_request(b"echo me")

        client.post("/gateway-echo", content=request.marshal(), headers=OHTTP_REQUEST_HEADERS)
        client.get("/gateway-echo")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert (
            'privacy_gateway_events_total{event="gateway_request",result="success"} 1.0'
            in response.text
        )
        assert (
            'privacy_gateway_events_total{event="gateway_request",result="invalid_method"} 1.0'
            in response.text
        )

    def test_registries_are_isolated(self) -> None:
        first = PrometheusMetricsFactory()
        second = PrometheusMetricsFactory()

        first.create("gateway_request").fire("success")

        assert first.registry.get_sample_value(
            "privacy_gateway_events_total",
            {"event": "gateway_request", "result": "success"},
        ) == 1.0
        assert second.registry.get_sample_value(
            "privacy_gateway_events_total",
            {"event": "gateway_request", "result": "success"},
        ) is None

    def test_endpoint_disabled(
        self, gateway: OHTTPGateway, target_client: httpx.AsyncClient
    ) -> None:
        client = self._client(
            gateway, target_client, PrometheusMetricsFactory(), metrics_enabled=False
        )

        assert client.get("/metrics").status_code == 404

    def test_not_exposed_without_registry(self, client: TestClient) -> None:
        # the recording factory used by default has no registry
        assert client.get("/metrics").status_code == 404
