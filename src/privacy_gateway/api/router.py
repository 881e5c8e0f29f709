"""API router configuration."""

from fastapi import APIRouter

from privacy_gateway.api.resource import GatewayResource
from privacy_gateway.core.config import Settings

# Method validation happens in the resource so non-POST requests get the
# gateway's own 400 rather than a framework 405
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def build_gateway_router(resource: GatewayResource, settings: Settings) -> APIRouter:
    """Register the content, marshal and key configuration routes."""
    router = APIRouter(tags=["gateway"])

    for path in resource.handlers:
        router.add_api_route(
            path,
            resource.gateway_handler,
            methods=ALL_METHODS,
            include_in_schema=False,
        )
        router.add_api_route(
            resource.marshal_prefix + path,
            resource.marshal_handler,
            methods=ALL_METHODS,
            include_in_schema=False,
        )

    if settings.config_path:
        router.add_api_route(settings.config_path, resource.config_handler, methods=["GET"])
    if settings.keys_path:
        router.add_api_route(settings.keys_path, resource.keys_handler, methods=["GET"])

    return router
