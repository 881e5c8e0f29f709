"""Observability layer for the privacy gateway.

This module provides structured logging, request tracing via correlation IDs,
and per-request metrics events.

Usage:
    from privacy_gateway.observability import get_logger

    logger = get_logger(__name__)
    logger.info("gateway.request.received", path=path)
"""

from privacy_gateway.observability.context import (
    correlation_id_var,
    get_correlation_id,
    set_correlation_id,
)
from privacy_gateway.observability.logger import configure_logging, get_logger
from privacy_gateway.observability.metrics import (
    Metrics,
    MetricsFactory,
    PrometheusMetrics,
    PrometheusMetricsFactory,
)
from privacy_gateway.observability.middleware import (
    CorrelationIDMiddleware,
    RequestLoggingMiddleware,
)
from privacy_gateway.observability.sanitizer import sanitize_headers, truncate_body

__all__ = [
    # Context
    "correlation_id_var",
    "get_correlation_id",
    "set_correlation_id",
    # Logger
    "configure_logging",
    "get_logger",
    # Metrics
    "Metrics",
    "MetricsFactory",
    "PrometheusMetrics",
    "PrometheusMetricsFactory",
    # Middleware
    "CorrelationIDMiddleware",
    "RequestLoggingMiddleware",
    # Sanitizer
    "sanitize_headers",
    "truncate_body",
]
