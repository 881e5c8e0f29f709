"""API endpoint routers."""

from privacy_gateway.api.endpoints.health import build_health_router
from privacy_gateway.api.endpoints.metrics import build_metrics_router

__all__ = ["build_health_router", "build_metrics_router"]
