"""HTTP API of the privacy gateway."""

from privacy_gateway.api.resource import GatewayResource
from privacy_gateway.api.router import build_gateway_router

__all__ = ["GatewayResource", "build_gateway_router"]
