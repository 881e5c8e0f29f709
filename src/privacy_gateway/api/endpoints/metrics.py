"""Prometheus exposition endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest


def build_metrics_router(path: str, registry: CollectorRegistry) -> APIRouter:
    """Create the router exposing ``registry`` in the Prometheus text format."""
    router = APIRouter(tags=["metrics"])

    async def metrics() -> Response:
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    router.add_api_route(path, metrics, methods=["GET"], include_in_schema=False)
    return router
