"""Per-request metrics events.

A :class:`MetricsFactory` creates one :class:`Metrics` per request, bound to an
event category (``gateway_request``, ``marshal_request``). Code paths then fire
named results on it. Firing is fire-and-forget: a failure to record never
affects the request.
"""

from __future__ import annotations

from typing import Protocol

from prometheus_client import CollectorRegistry, Counter

from privacy_gateway.observability.logger import get_logger

logger = get_logger(__name__)


class Metrics(Protocol):
    """Records results for one request within one event category."""

    def fire(self, result: str) -> None: ...


class MetricsFactory(Protocol):
    """Creates a :class:`Metrics` instance per request."""

    def create(self, event: str) -> Metrics: ...


class PrometheusMetrics:
    """Metrics bound to one event category, backed by a Prometheus counter."""

    def __init__(self, counter: Counter, event: str) -> None:
        self._counter = counter
        self.event = event

    def fire(self, result: str) -> None:
        try:
            self._counter.labels(event=self.event, result=result).inc()
        except Exception as e:
            logger.error("metrics.fire.failed", event=self.event, result=result, error=str(e))


class PrometheusMetricsFactory:
    """Prometheus-based metrics factory.

    Each factory owns its registry so several apps can coexist in one process.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.events_total = Counter(
            "privacy_gateway_events_total",
            "Total number of gateway request events by category and result.",
            ["event", "result"],
            registry=self.registry,
        )

    def create(self, event: str) -> PrometheusMetrics:
        return PrometheusMetrics(self.events_total, event)
